from dataclasses import dataclass
from typing import Optional

from locadora.utils.constants import ClientStatus


@dataclass
class Client:
    """
    Renter record owned by the client registry. The rental engine only reads it;
    ``client_id`` is the normalized CPF/CNPJ and doubles as the document id.
    """
    client_id: str
    full_name: str
    birth_date: Optional[str]
    status: ClientStatus

    @property
    def is_active(self) -> bool:
        return self.status == ClientStatus.ACTIVE

    def has_name(self, name: str) -> bool:
        """Case-insensitive match against the registered name."""
        return " ".join(name.split()).casefold() == " ".join(self.full_name.split()).casefold()

    @property
    def kind(self) -> str:
        """'PF' for individuals (CPF), 'PJ' for companies (CNPJ)."""
        return "PF" if len(self.client_id) == 11 else "PJ"

    @classmethod
    def from_dict(cls, d: dict) -> "Client":
        return cls(
            client_id=d["id"],
            full_name=d.get("full_name", ""),
            birth_date=d.get("birth_date"),
            status=ClientStatus.parse(d.get("status") or ClientStatus.ACTIVE),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.client_id,
            "type": self.kind,
            "full_name": self.full_name,
            "birth_date": self.birth_date,
            "status": self.status.value,
        }
