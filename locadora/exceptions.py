"""
Custom exception classes for the rental engine.

Each error kind carries a stable machine-readable ``code`` and the HTTP
``status`` the boundary layer answers with, so callers can branch on the code
instead of matching messages.
"""

from typing import Optional


class RentalError(Exception):
    """Base class for every classified error raised by the engine."""

    code = "INTERNAL_ERROR"
    status = 500
    default_message = "Error: internal error"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None) -> None:
        self.message = message or self.default_message
        self.field = field
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class ValidationError(RentalError):
    """Raised when input is malformed or a required field is missing."""

    code = "VALIDATION_ERROR"
    status = 400
    default_message = "Error: invalid input"


class InvalidFormatError(ValidationError):
    """Raised when a tax id or plate does not match its expected pattern."""

    default_message = "Error: invalid format"


class InvalidRangeError(ValidationError):
    """Raised when a date cannot be parsed or a date range is empty or reversed."""

    default_message = "Error: invalid date range"


class InvalidValueError(ValidationError):
    """Raised when a numeric or list value is out of its allowed domain."""

    default_message = "Error: invalid value"


class ClientNotFoundError(RentalError):
    """Raised when a client tax id cannot be found in the system."""

    code = "CLIENT_NOT_FOUND"
    status = 404
    default_message = "Error: client not found"


class VehicleNotFoundError(RentalError):
    """Raised when a plate or vehicle id cannot be found in the system."""

    code = "VEHICLE_NOT_FOUND"
    status = 404
    default_message = "Error: vehicle not found"


class RentalNotFoundError(RentalError):
    """Raised when a rental record cannot be found in the system."""

    code = "RENTAL_NOT_FOUND"
    status = 404
    default_message = "Error: rental not found"


class ClientInactiveError(RentalError):
    """Raised when the client exists but is not allowed to rent."""

    code = "CLIENT_INACTIVE"
    status = 400
    default_message = "Error: client is not active"


class VehicleUnavailableError(RentalError):
    """Raised when the vehicle exists but is not available for rental."""

    code = "VEHICLE_UNAVAILABLE"
    status = 409
    default_message = "Error: vehicle is not available"


class InvalidTransitionError(RentalError):
    """Raised when a status change is not allowed by the rental state machine."""

    code = "INVALID_TRANSITION"
    status = 409
    default_message = "Error: invalid status transition"


class ConcurrentModificationError(RentalError):
    """Raised when a transaction lost a write race; the caller should retry."""

    code = "CONCURRENT_MODIFICATION"
    status = 409
    default_message = "Error: the record was modified concurrently, please retry"


class DuplicateEntityError(RentalError):
    """Raised when registering a client or vehicle whose key is already taken."""

    code = "ALREADY_EXISTS"
    status = 409
    default_message = "Error: record already exists"


class InternalError(RentalError):
    """Unclassified failure; details are hidden from callers outside development."""

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.details = details
