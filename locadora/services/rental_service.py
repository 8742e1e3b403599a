"""Rental lifecycle service: the only writer of rental records."""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Optional

from locadora.exceptions import (
    ClientInactiveError,
    ClientNotFoundError,
    InvalidRangeError,
    InvalidTransitionError,
    RentalNotFoundError,
    ValidationError,
    VehicleNotFoundError,
    VehicleUnavailableError,
)
from locadora.models.rental import (
    RELEASE_ON_DELETE,
    Rental,
    RentalRequest,
    RentalUpdate,
    allowed_transition,
    is_terminal,
)
from locadora.models.store import Store, Transaction
from locadora.services.client_service import ClientService
from locadora.services.common import _store, iso, new_id, utc_now
from locadora.services.responses import format_success, operation
from locadora.services.vehicle_service import VehicleService
from locadora.utils.constants import (
    DATE_FMT,
    MAX_ID_LENGTH,
    Collection,
    RentalStatus,
    VehicleStatus,
)
from locadora.utils.filters import display_rental
from locadora.utils.validators import (
    parse_date,
    validate_limit,
    validate_plate,
    validate_status,
    validate_tax_id,
)

logger = logging.getLogger(__name__)

LIST_FILTERS = {"status": "status", "clientId": "client_id", "client_id": "client_id"}


def _require_id(rental_id) -> str:
    if not isinstance(rental_id, str) or not rental_id.strip():
        raise ValidationError("Error: rental id is required", field="id")
    if len(rental_id) > MAX_ID_LENGTH:
        raise ValidationError("Error: rental id is too long", field="id")
    return rental_id.strip()


def _newest_first(docs: list[dict], key: str) -> list[dict]:
    return sorted(docs, key=lambda d: (d.get(key) or "", d.get("created_at") or "", d["id"]),
                  reverse=True)


class RentalService:
    """
    Create, list, read, update and delete rentals while keeping the vehicle
    status in step with active rentals.

    Every multi-document change runs inside one store transaction that re-reads
    what it is about to write; the pre-transaction lookups are only optimistic
    checks. Public methods return result dicts and never raise.
    """

    def __init__(
            self,
            store: Optional[Store] = None,
            clock: Optional[Callable[[], datetime]] = None,
            id_factory: Optional[Callable[[], str]] = None,
            expose_details: bool = False,
    ):
        self.store = store or _store()
        self.clock = clock or utc_now
        self.id_factory = id_factory or new_id
        self.expose_details = expose_details
        self.clients = ClientService(self.store)
        self.vehicles = VehicleService(self.store)

    def _now(self) -> str:
        return iso(self.clock())

    # --------------- Commands ---------------
    @operation("create rental")
    def create_rental(self, payload: dict) -> dict:
        """
        Validate the request, check client and vehicle, then atomically write
        the rental (status active) and flip the vehicle to rented.
        """
        request = RentalRequest.from_payload(payload)

        # Optimistic pre-checks, issued concurrently
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="rental-lookup") as pool:
            client_f = pool.submit(self.clients.find_by_id, request.client_id)
            vehicle_f = pool.submit(self.vehicles.find_by_plate, request.plate)
            client = client_f.result()
            found = vehicle_f.result()

        if client is None:
            raise ClientNotFoundError(f"Error: client '{request.client_id}' not found")
        if not client.is_active:
            raise ClientInactiveError(f"Error: client '{request.client_id}' is {client.status.value}")
        if request.renter_name is not None and not client.has_name(request.renter_name):
            raise ValidationError(
                "Error: renter name does not match the client tax id", field="renterName")
        if found is None:
            raise VehicleNotFoundError(f"Error: vehicle with plate '{request.plate}' not found")
        vehicle_id, vehicle = found
        if not vehicle.is_available:
            raise VehicleUnavailableError(
                f"Error: vehicle '{request.plate}' is {vehicle.status.value}")

        rental_id = self.id_factory()

        def create(tx: Transaction):
            # Source of truth for availability: the pre-check may be stale
            veh = tx.get(Collection.VEHICLES, vehicle_id)
            if veh is None:
                raise VehicleNotFoundError(f"Error: vehicle with plate '{request.plate}' not found")
            if veh.get("status") != VehicleStatus.AVAILABLE.value:
                raise VehicleUnavailableError(
                    f"Error: vehicle '{request.plate}' is {veh.get('status')}")

            now = self._now()
            rental = Rental.open(rental_id, request, vehicle_id, now)
            tx.set(Collection.RENTALS, rental_id, rental.to_dict())
            tx.update(Collection.VEHICLES, vehicle_id,
                      {"status": VehicleStatus.RENTED.value, "updated_at": now})

        self.store.run_transaction(create)
        logger.info("Rental %s created: client=%s vehicle=%s", rental_id, request.client_id, vehicle_id)
        return format_success(id=rental_id)

    @operation("update rental")
    def update_rental(self, rental_id: str, fields: dict) -> dict:
        rental_id = _require_id(rental_id)
        changes = RentalUpdate.from_payload(fields)

        def update(tx: Transaction):
            doc = tx.get(Collection.RENTALS, rental_id)
            if doc is None:
                raise RentalNotFoundError(f"Error: rental '{rental_id}' not found")
            rental = Rental.from_dict(doc)

            patch = {}
            if changes.end_date is not None:
                start = parse_date(rental.start_date, "startDate")
                if changes.end_date <= start:
                    raise InvalidRangeError("Error: end date must be after start date", field="endDate")
                patch["end_date"] = changes.end_date.strftime(DATE_FMT)
            if changes.amount is not None:
                patch["amount"] = changes.amount
            if changes.additional_service_ids is not None:
                patch["additional_service_ids"] = list(changes.additional_service_ids)

            release = False
            if changes.status is not None:
                if not allowed_transition(rental.status, changes.status):
                    raise InvalidTransitionError(
                        f"Error: cannot change status from '{rental.status.value}' "
                        f"to '{changes.status.value}'", field="status")
                patch["status"] = changes.status.value
                release = is_terminal(changes.status) and self._can_release(tx, rental)

            now = self._now()
            patch["updated_at"] = now
            tx.update(Collection.RENTALS, rental_id, patch)
            if release:
                self._release(tx, rental.vehicle_id, now)

        self.store.run_transaction(update)
        return format_success()

    @operation("delete rental")
    def delete_rental(self, rental_id: str) -> dict:
        """
        Delete a rental. Active and canceled rentals hand their vehicle back
        to the fleet; completed ones leave the vehicle untouched.
        """
        rental_id = _require_id(rental_id)

        def delete(tx: Transaction):
            doc = tx.get(Collection.RENTALS, rental_id)
            if doc is None:
                raise RentalNotFoundError(f"Error: rental '{rental_id}' not found")
            rental = Rental.from_dict(doc)
            release = rental.status in RELEASE_ON_DELETE and self._can_release(tx, rental)

            tx.delete(Collection.RENTALS, rental_id)
            if release:
                self._release(tx, rental.vehicle_id, self._now())

        self.store.run_transaction(delete)
        return format_success()

    def _can_release(self, tx: Transaction, rental: Rental) -> bool:
        """
        A vehicle goes back to available only if it is still marked rented and
        no other active rental claims it.
        """
        if not rental.holds_vehicle:
            return False
        veh = tx.get(Collection.VEHICLES, rental.vehicle_id)
        if veh is None:
            logger.warning("Rental %s references missing vehicle %s", rental.rental_id, rental.vehicle_id)
            return False
        if veh.get("status") != VehicleStatus.RENTED.value:
            return False
        others = [
            r for r in tx.where(Collection.RENTALS, vehicle_id=rental.vehicle_id,
                                status=RentalStatus.ACTIVE.value)
            if r["id"] != rental.rental_id
        ]
        if others:
            logger.warning("Vehicle %s kept rented: still claimed by rental %s",
                           rental.vehicle_id, others[0]["id"])
            return False
        return True

    @staticmethod
    def _release(tx: Transaction, vehicle_id: str, now: str):
        tx.update(Collection.VEHICLES, vehicle_id,
                  {"status": VehicleStatus.AVAILABLE.value, "updated_at": now})

    # --------------- Queries ---------------
    @operation("get rental")
    def get_rental(self, rental_id: str) -> dict:
        rental_id = _require_id(rental_id)
        doc = self.store.get(Collection.RENTALS, rental_id)
        if doc is None:
            raise RentalNotFoundError(f"Error: rental '{rental_id}' not found")
        return format_success(rental=doc)

    @operation("list rentals")
    def list_rentals(self, limit=None, cursor: Optional[str] = None, filters: Optional[dict] = None) -> dict:
        """
        Newest first. ``cursor`` is the id of the last rental of the previous
        page; the next page starts strictly after it.
        """
        limit = validate_limit(limit)
        equals = self._list_filters(filters)

        docs = self.store.where(Collection.RENTALS, **equals)
        docs.sort(key=lambda d: (d.get("created_at") or "", d["id"]), reverse=True)

        if cursor:
            anchor = self.store.get(Collection.RENTALS, cursor)
            if anchor is None:
                raise ValidationError("Error: invalid cursor", field="cursor")
            key = (anchor.get("created_at") or "", anchor["id"])
            docs = [d for d in docs if (d.get("created_at") or "", d["id"]) < key]

        page = docs[:limit]
        has_more = len(docs) > limit
        return format_success(
            rentals=[display_rental(d) for d in page],
            total=len(page),
            pagination={
                "has_more": has_more,
                "next_cursor": page[-1]["id"] if has_more else None,
            },
        )

    @staticmethod
    def _list_filters(filters) -> dict:
        if not filters:
            return {}
        if not isinstance(filters, dict):
            raise ValidationError("Error: filters must be an object", field="filters")
        equals = {}
        for key, value in filters.items():
            name = LIST_FILTERS.get(key)
            if name is None:
                raise ValidationError(f"Error: unsupported filter '{key}'", field="filters")
            if name == "status":
                equals["status"] = validate_status(value, RentalStatus).value
            else:
                equals["client_id"] = validate_tax_id(value, field="clientId")
        return equals

    @operation("client rental history")
    def client_history(self, tax_id: str) -> dict:
        client_id = validate_tax_id(tax_id, field="clientId")
        docs = self.store.where(Collection.RENTALS, client_id=client_id)
        rentals = [display_rental(d) for d in _newest_first(docs, "start_date")]
        return format_success(client_id=client_id, rentals=rentals, total=len(rentals))

    @operation("vehicle rental history")
    def vehicle_history(self, plate: str) -> dict:
        plate = validate_plate(plate)
        found = self.vehicles.find_by_plate(plate)
        if found is None:
            raise VehicleNotFoundError(f"Error: vehicle with plate '{plate}' not found")
        vehicle_id, _ = found
        docs = self.store.where(Collection.RENTALS, vehicle_id=vehicle_id)
        rentals = [display_rental(d) for d in _newest_first(docs, "start_date")]
        return format_success(plate=plate, vehicle_id=vehicle_id, rentals=rentals, total=len(rentals))
