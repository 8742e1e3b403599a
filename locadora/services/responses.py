"""
Uniform result shapes for engine operations.

Public engine operations never raise: every outcome is a dict with a
``success`` flag. Failures carry a human-readable ``error``, a stable
``code`` and, for validation errors, the offending ``field``.
"""

import logging
from functools import wraps

from locadora import exceptions as exc_mod
from locadora.exceptions import ConcurrentModificationError, InternalError, RentalError
from locadora.models.store import TransactionConflict

logger = logging.getLogger(__name__)

INTERNAL_MESSAGE = "Error: internal server error"

# code -> HTTP status, derived from the exception classes themselves
CODE_STATUS = {
    cls.code: cls.status
    for cls in vars(exc_mod).values()
    if isinstance(cls, type) and issubclass(cls, RentalError)
}


def classify(exc: BaseException) -> RentalError:
    """Map any exception onto the closed error taxonomy."""
    if isinstance(exc, RentalError):
        return exc
    if isinstance(exc, TransactionConflict):
        return ConcurrentModificationError()
    return InternalError(INTERNAL_MESSAGE, details=f"{type(exc).__name__}: {exc}")


def format_error(exc: BaseException, expose_details: bool = False) -> dict:
    err = classify(exc)
    body = {"success": False, "error": err.message, "code": err.code}
    if err.field:
        body["field"] = err.field
    if expose_details and isinstance(err, InternalError) and err.details:
        body["details"] = err.details
    return body


def format_success(**data) -> dict:
    return {"success": True, **data}


def http_status(result: dict, ok_status: int = 200) -> int:
    if result.get("success"):
        return ok_status
    return CODE_STATUS.get(result.get("code"), 500)


def operation(name: str):
    """
    Decorator for engine methods: converts raised errors into failure results.
    The wrapped object may set ``expose_details`` to leak internal error text
    (development only).
    """

    def deco(fn):
        @wraps(fn)
        def wrapper(self, *args, **kwargs):
            try:
                result = fn(self, *args, **kwargs)
            except RentalError as e:
                logger.warning("%s failed: %s %s", name, e.code, e.message)
                return format_error(e)
            except TransactionConflict as e:
                logger.warning("%s lost a write race: %s", name, e)
                return format_error(e)
            except Exception as e:
                logger.exception("%s failed unexpectedly", name)
                return format_error(e, expose_details=getattr(self, "expose_details", False))
            logger.info("%s succeeded", name)
            return result

        return wrapper

    return deco
