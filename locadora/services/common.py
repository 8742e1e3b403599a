"""Shared service helpers."""

import uuid
from datetime import datetime, timezone

from locadora.models.store import Store


def _store() -> Store:
    """Get the singleton store instance."""
    return Store.instance()


def utc_now() -> datetime:
    """Wrapper for easier testing/mocking."""
    return datetime.now(timezone.utc)


def iso(dt: datetime) -> str:
    return dt.isoformat(timespec="microseconds")


def new_id() -> str:
    return str(uuid.uuid4())
