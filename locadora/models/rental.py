from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from locadora.exceptions import InvalidValueError, ValidationError
from locadora.utils.constants import DATE_FMT, RentalStatus
from locadora.utils.validators import (
    parse_date,
    validate_date_range,
    validate_name,
    validate_plate,
    validate_positive_amount,
    validate_service_ids,
    validate_status,
    validate_tax_id,
)

# Rental status state machine: active is the only non-terminal state.
TRANSITIONS: dict[RentalStatus, frozenset] = {
    RentalStatus.ACTIVE: frozenset({RentalStatus.COMPLETED, RentalStatus.CANCELED}),
    RentalStatus.COMPLETED: frozenset(),
    RentalStatus.CANCELED: frozenset(),
}

# Rental statuses whose deletion hands the vehicle back to the fleet.
RELEASE_ON_DELETE = frozenset({RentalStatus.ACTIVE, RentalStatus.CANCELED})


def allowed_transition(current, target) -> bool:
    return RentalStatus.parse(target) in TRANSITIONS[RentalStatus.parse(current)]


def is_terminal(status) -> bool:
    return not TRANSITIONS[RentalStatus.parse(status)]


# Payload keys accepted at the boundary -> canonical field names.
CREATE_ALIASES = {
    "clientId": "client_id",
    "client_id": "client_id",
    "cpfLocatario": "client_id",
    "plate": "plate",
    "placaVeiculo": "plate",
    "startDate": "start_date",
    "start_date": "start_date",
    "dataInicio": "start_date",
    "endDate": "end_date",
    "end_date": "end_date",
    "dataFim": "end_date",
    "amount": "amount",
    "valor": "amount",
    "additionalServiceIds": "additional_service_ids",
    "additional_service_ids": "additional_service_ids",
    "servicosAdicionaisIds": "additional_service_ids",
    "renterName": "renter_name",
    "renter_name": "renter_name",
    "nomeLocatario": "renter_name",
}

UPDATE_ALIASES = {
    "endDate": "end_date",
    "end_date": "end_date",
    "dataFim": "end_date",
    "amount": "amount",
    "valor": "amount",
    "additionalServiceIds": "additional_service_ids",
    "additional_service_ids": "additional_service_ids",
    "servicosAdicionaisIds": "additional_service_ids",
    "status": "status",
}


def _canonical(payload, aliases: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Error: request body must be an object")
    out = {}
    for key, value in payload.items():
        name = aliases.get(key)
        if name is not None and name not in out:
            out[name] = value
    return out


@dataclass(frozen=True)
class RentalRequest:
    """Validated input for creating a rental."""
    client_id: str
    plate: str
    start_date: date
    end_date: date
    amount: float
    additional_service_ids: tuple = ()
    renter_name: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "RentalRequest":
        """Validate every field before any I/O happens."""
        data = _canonical(payload, CREATE_ALIASES)
        client_id = validate_tax_id(data.get("client_id"))
        plate = validate_plate(data.get("plate"))
        start, end = validate_date_range(data.get("start_date"), data.get("end_date"))
        amount = validate_positive_amount(data.get("amount"))
        services = validate_service_ids(data.get("additional_service_ids"))
        renter_name = None
        if data.get("renter_name") is not None:
            renter_name = validate_name(data["renter_name"], field="renterName")
        return cls(client_id, plate, start, end, amount, tuple(services), renter_name)


@dataclass(frozen=True)
class RentalUpdate:
    """
    Validated partial update. ``None`` means "not provided"; each provided
    field is checked independently. Checks that need the stored rental
    (end date after start, legal status transition) run inside the transaction.
    """
    end_date: Optional[date] = None
    amount: Optional[float] = None
    additional_service_ids: Optional[tuple] = None
    status: Optional[RentalStatus] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "RentalUpdate":
        data = _canonical(payload, UPDATE_ALIASES)
        if not data:
            raise ValidationError("Error: no valid field provided")
        kwargs = {}
        if "end_date" in data:
            kwargs["end_date"] = parse_date(data["end_date"], "endDate")
        if "amount" in data:
            kwargs["amount"] = validate_positive_amount(data["amount"])
        if "additional_service_ids" in data:
            if data["additional_service_ids"] is None:
                raise InvalidValueError(
                    "Error: additional services must be a list", field="additionalServiceIds")
            kwargs["additional_service_ids"] = tuple(
                validate_service_ids(data["additional_service_ids"]))
        if "status" in data:
            kwargs["status"] = validate_status(data["status"], RentalStatus)
        return cls(**kwargs)


@dataclass
class Rental:
    """A time-bounded lease of one vehicle to one client."""
    rental_id: str
    client_id: str
    vehicle_id: str
    plate: str
    start_date: str
    end_date: str
    amount: float
    status: RentalStatus
    additional_service_ids: list = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def holds_vehicle(self) -> bool:
        return bool(self.vehicle_id)

    @classmethod
    def open(cls, rental_id: str, request: RentalRequest, vehicle_id: str, now: str) -> "Rental":
        return cls(
            rental_id=rental_id,
            client_id=request.client_id,
            vehicle_id=vehicle_id,
            plate=request.plate,
            start_date=request.start_date.strftime(DATE_FMT),
            end_date=request.end_date.strftime(DATE_FMT),
            amount=request.amount,
            status=RentalStatus.ACTIVE,
            additional_service_ids=list(request.additional_service_ids),
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def from_dict(cls, d: dict) -> "Rental":
        return cls(
            rental_id=d["id"],
            client_id=d.get("client_id", ""),
            vehicle_id=d.get("vehicle_id", ""),
            plate=d.get("plate", ""),
            start_date=d.get("start_date", ""),
            end_date=d.get("end_date", ""),
            amount=float(d.get("amount") or 0),
            status=RentalStatus.parse(d.get("status")),
            additional_service_ids=list(d.get("additional_service_ids") or []),
            created_at=d.get("created_at"),
            updated_at=d.get("updated_at"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.rental_id,
            "client_id": self.client_id,
            "vehicle_id": self.vehicle_id,
            "plate": self.plate,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "amount": self.amount,
            "additional_service_ids": list(self.additional_service_ids),
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
