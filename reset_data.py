"""
reset_data.py
-------------
Utility script to clear all stored data (clients, vehicles, rentals) from the local data.pkl file.

Usage:
    $ python reset_data.py

After running this script, you can repopulate sample data by executing:
    $ python seeds.py
"""

from locadora.models.store import Store


def main():
    """Clear every collection of the singleton store and persist the empty state."""
    store = Store.instance()
    store.clear()

    print("Store has been successfully cleared.")
    print("Tip: Run `python seeds.py` to regenerate demo data.")


if __name__ == "__main__":
    main()
