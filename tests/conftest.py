import os
import pathlib
import sys
from datetime import datetime, timedelta, timezone

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
os.environ.setdefault("APP_ENV", "test")

import pytest

from locadora import create_app
from locadora.models.store import Store
from locadora.services.client_service import ClientService
from locadora.services.rental_service import RentalService
from locadora.services.vehicle_service import VehicleService

ACTIVE_CPF = "08832661489"
INACTIVE_CPF = "11122233396"


class FakeClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start=datetime(2024, 12, 1, 12, 0, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def store():
    """Clean, isolated in-memory store (no pickle file)."""
    return Store(persist=False)


@pytest.fixture
def seeded(store):
    """
    Two clients (one active, one inactive) and four vehicles, one of them in
    maintenance.
    """
    clients = ClientService(store)
    clients.register_client({"tax_id": ACTIVE_CPF, "full_name": "Cliente Teste"})
    clients.register_client({"tax_id": INACTIVE_CPF, "full_name": "Cliente Inativo",
                             "status": "inactive"})

    vehicles = VehicleService(store)
    vehicles.register_vehicle({"chassis": "CHASSI0001", "plate": "TST1234",
                               "brand": "Fiat", "model": "Argo"})
    vehicles.register_vehicle({"chassis": "CHASSI0002", "plate": "BRA2E19",
                               "brand": "Chevrolet", "model": "Onix"})
    vehicles.register_vehicle({"chassis": "CHASSI0003", "plate": "QWE4R56",
                               "brand": "Honda", "model": "City"})
    vehicles.register_vehicle({"chassis": "CHASSI0004", "plate": "MNT1A23",
                               "brand": "VW", "model": "Gol", "status": "maintenance"})
    return store


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(seeded, clock):
    return RentalService(store=seeded, clock=clock)


@pytest.fixture
def make_payload():
    """Factory for a valid create-rental payload; keyword overrides replace fields."""

    def make(**overrides):
        payload = {
            "clientId": ACTIVE_CPF,
            "plate": "TST1234",
            "startDate": "20/12/2024",
            "endDate": "27/12/2024",
            "amount": 500.00,
            "additionalServiceIds": ["GPS", "SEGURO"],
        }
        payload.update(overrides)
        return payload

    return make


@pytest.fixture
def app(seeded):
    app = create_app({"TESTING": True, "STORE": seeded, "LOG_LEVEL": "WARNING"})
    return app


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c
