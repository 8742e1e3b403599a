from __future__ import annotations

import logging
from typing import Optional, Tuple

from locadora.exceptions import (
    DuplicateEntityError,
    ValidationError,
    VehicleNotFoundError,
    VehicleUnavailableError,
)
from locadora.models.store import Store
from locadora.models.vehicle import Vehicle
from locadora.services.common import _store, iso, utc_now
from locadora.utils.constants import Collection, RentalStatus, VehicleStatus
from locadora.utils.validators import validate_plate, validate_status

logger = logging.getLogger(__name__)


class VehicleService:
    """Vehicle registry: register, look up by plate, change status, delete."""

    def __init__(self, store: Optional[Store] = None):
        self.store = store or _store()

    def find_by_plate(self, plate: str) -> Optional[Tuple[str, Vehicle]]:
        """Return (vehicle_id, vehicle) for a normalized plate, or None."""
        matches = self.store.where(Collection.VEHICLES, plate=plate)
        if not matches:
            return None
        doc = matches[0]
        return doc["id"], Vehicle.from_dict(doc)

    def get_vehicle(self, vehicle_id: str) -> Vehicle:
        """Return a vehicle by chassis or raise VehicleNotFoundError."""
        doc = self.store.get(Collection.VEHICLES, vehicle_id)
        if doc is None:
            raise VehicleNotFoundError(f"Error: vehicle with ID '{vehicle_id}' not found")
        return Vehicle.from_dict(doc)

    def register_vehicle(self, payload: dict) -> Vehicle:
        """
        Create a vehicle record. The chassis is the immutable document id and
        the plate must be unique across the fleet.
        """
        chassis = (payload.get("chassis") or "").strip().upper()
        if not chassis:
            raise ValidationError("Error: chassis is required", field="chassis")
        plate = validate_plate(payload.get("plate"))
        status = validate_status(payload.get("status") or VehicleStatus.AVAILABLE, VehicleStatus)

        vehicle = Vehicle(
            chassis=chassis,
            plate=plate,
            brand=(payload.get("brand") or "").strip(),
            model=(payload.get("model") or "").strip(),
            status=status,
            updated_at=iso(utc_now()),
        )

        def create(tx):
            if tx.get(Collection.VEHICLES, chassis) is not None:
                raise DuplicateEntityError("Error: chassis already registered", field="chassis")
            if tx.where(Collection.VEHICLES, plate=plate):
                raise DuplicateEntityError("Error: plate already registered", field="plate")
            tx.set(Collection.VEHICLES, chassis, vehicle.to_dict())

        self.store.run_transaction(create)
        logger.info("Vehicle %s (%s) registered", chassis, plate)
        return vehicle

    def update_status(self, vehicle_id: str, status, timestamp: Optional[str] = None) -> Vehicle:
        new_status = validate_status(status, VehicleStatus)
        fields = {"status": new_status.value, "updated_at": timestamp or iso(utc_now())}
        if not self.store.update(Collection.VEHICLES, vehicle_id, fields):
            raise VehicleNotFoundError(f"Error: vehicle with ID '{vehicle_id}' not found")
        logger.info("Vehicle %s status -> %s", vehicle_id, new_status.value)
        return self.get_vehicle(vehicle_id)

    def delete_vehicle(self, vehicle_id: str) -> None:
        """
        Delete a vehicle if and only if:
        - the vehicle exists,
        - the vehicle itself is not rented,
        - there are no active rentals referencing this vehicle.
        """

        def delete(tx):
            veh = tx.get(Collection.VEHICLES, vehicle_id)
            if veh is None:
                raise VehicleNotFoundError(f"Error: vehicle with ID '{vehicle_id}' not found")

            # Guard 1: vehicle status must not be rented
            if veh.get("status") == VehicleStatus.RENTED.value:
                raise VehicleUnavailableError("Error: cannot delete a rented vehicle")

            # Guard 2: no active rentals referencing this vehicle
            if tx.where(Collection.RENTALS, vehicle_id=vehicle_id, status=RentalStatus.ACTIVE.value):
                raise VehicleUnavailableError("Error: cannot delete, active rentals exist")

            tx.delete(Collection.VEHICLES, vehicle_id)

        self.store.run_transaction(delete)
        logger.info("Vehicle %s deleted", vehicle_id)
