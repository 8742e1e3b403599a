# locadora/utils/constants.py

"""
Global constants for collections, statuses and input patterns.
These constants are imported by models, services and controllers.
"""

import re
from enum import Enum

# Stored date format (rental start/end) and the display formats
DATE_FMT = "%Y-%m-%d"
DISPLAY_DATE_FMT = "%d/%m/%Y"
DISPLAY_DATETIME_FMT = "%d/%m/%Y %H:%M"
DISPLAY_TZ = "America/Sao_Paulo"


class Collection:
    CLIENTS = "clients"
    VEHICLES = "vehicles"
    RENTALS = "rentals"

    ALL = (CLIENTS, VEHICLES, RENTALS)


class _Status(str, Enum):
    """String enum that also understands the legacy Portuguese spellings."""

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        key = LEGACY_STATUS_ALIASES.get(key, key)
        return cls(key)


class ClientStatus(_Status):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BLOCKED = "blocked"


class VehicleStatus(_Status):
    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
    SOLD = "sold"


class RentalStatus(_Status):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELED = "canceled"


LEGACY_STATUS_ALIASES = {
    # clients
    "ativo": "active",
    "inativo": "inactive",
    "bloqueado": "blocked",
    # vehicles
    "disponivel": "available",
    "alugado": "rented",
    "manutencao": "maintenance",
    "vendido": "sold",
    # rentals
    "ativa": "active",
    "concluida": "completed",
    "cancelada": "canceled",
    "cancelled": "canceled",
}

# --- Input patterns ---
CPF_LENGTH = 11
CNPJ_LENGTH = 14
PLATE_LEGACY = re.compile(r"^[A-Z]{3}[0-9]{4}$")
PLATE_MERCOSUL = re.compile(r"^[A-Z]{3}[0-9][A-Z][0-9]{2}$")

# --- Pagination ---
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
MAX_ID_LENGTH = 100
