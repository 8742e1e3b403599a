from __future__ import annotations

import logging
from typing import Optional

from locadora.exceptions import ClientNotFoundError, DuplicateEntityError
from locadora.models.client import Client
from locadora.models.store import Store
from locadora.services.common import _store
from locadora.utils.constants import ClientStatus, Collection
from locadora.utils.validators import parse_date, validate_name, validate_status, validate_tax_id

logger = logging.getLogger(__name__)


class ClientService:
    """Client registry: register, look up by tax id, change status."""

    def __init__(self, store: Optional[Store] = None):
        self.store = store or _store()

    def find_by_id(self, tax_id: str) -> Optional[Client]:
        """Return the client for a normalized tax id, or None."""
        doc = self.store.get(Collection.CLIENTS, tax_id)
        return Client.from_dict(doc) if doc else None

    def register_client(self, payload: dict) -> Client:
        tax_id = validate_tax_id(payload.get("tax_id") or payload.get("cpf"), field="tax_id")
        name = validate_name(payload.get("full_name") or payload.get("name"))
        birth = payload.get("birth_date")
        if birth:
            birth = parse_date(birth, "birth_date").isoformat()
        status = validate_status(payload.get("status") or ClientStatus.ACTIVE, ClientStatus)

        client = Client(client_id=tax_id, full_name=name, birth_date=birth, status=status)

        def create(tx):
            if tx.get(Collection.CLIENTS, tax_id) is not None:
                raise DuplicateEntityError("Error: tax id already registered", field="tax_id")
            tx.set(Collection.CLIENTS, tax_id, client.to_dict())

        self.store.run_transaction(create)
        logger.info("Client %s registered", tax_id)
        return client

    def set_status(self, tax_id: str, status) -> Client:
        tax_id = validate_tax_id(tax_id, field="tax_id")
        new_status = validate_status(status, ClientStatus)
        if not self.store.update(Collection.CLIENTS, tax_id, {"status": new_status.value}):
            raise ClientNotFoundError(f"Error: client '{tax_id}' not found")
        logger.info("Client %s status -> %s", tax_id, new_status.value)
        return self.find_by_id(tax_id)
