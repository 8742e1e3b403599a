from locadora.exceptions import DuplicateEntityError
from locadora.models.store import Store
from locadora.services.client_service import ClientService
from locadora.services.vehicle_service import VehicleService

DEMO_CLIENTS = [
    {"tax_id": "088.326.614-89", "full_name": "Cliente Demo", "birth_date": "1990-05-17"},
    {"tax_id": "12.345.678/0001-95", "full_name": "Transportes Demo Ltda"},
]

DEMO_VEHICLES = [
    {"chassis": "9BWZZZ377VT004251", "plate": "TST1234", "brand": "Fiat", "model": "Argo"},
    {"chassis": "9BD15822786043112", "plate": "BRA2E19", "brand": "Chevrolet", "model": "Onix"},
    {"chassis": "93HGK5860BZ204719", "plate": "QWE4R56", "brand": "Honda", "model": "City"},
]


def ensure(register, payload):
    """Register a record, ignoring the ones already present (idempotent)."""
    try:
        register(payload)
    except DuplicateEntityError:
        pass


def main():
    store = Store.instance()
    clients = ClientService(store)
    vehicles = VehicleService(store)

    for payload in DEMO_CLIENTS:
        ensure(clients.register_client, payload)
    for payload in DEMO_VEHICLES:
        ensure(vehicles.register_vehicle, payload)

    store.save()

    print("Seed complete.")
    print(f"Clients: {len(store.clients)}  Vehicles: {len(store.vehicles)}  Rentals: {len(store.rentals)}")


if __name__ == "__main__":
    main()
