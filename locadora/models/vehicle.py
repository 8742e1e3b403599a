from dataclasses import dataclass
from typing import Optional

from locadora.utils.constants import VehicleStatus


@dataclass
class Vehicle:
    """
    Fleet vehicle. The chassis number is immutable and is the document id;
    the plate can change over the vehicle's life and is what rentals look up.
    """
    chassis: str
    plate: str
    brand: str
    model: str
    status: VehicleStatus
    updated_at: Optional[str] = None

    @property
    def is_available(self) -> bool:
        return self.status == VehicleStatus.AVAILABLE

    @classmethod
    def from_dict(cls, d: dict) -> "Vehicle":
        return cls(
            chassis=d["id"],
            plate=d.get("plate", ""),
            brand=d.get("brand", ""),
            model=d.get("model", ""),
            status=VehicleStatus.parse(d.get("status") or VehicleStatus.AVAILABLE),
            updated_at=d.get("updated_at"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.chassis,
            "plate": self.plate,
            "brand": self.brand,
            "model": self.model,
            "status": self.status.value,
            "updated_at": self.updated_at,
        }
