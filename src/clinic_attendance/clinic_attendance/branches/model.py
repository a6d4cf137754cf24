from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..geofence.model import GeoPoint


@dataclass(frozen=True)
class Branch:
    """Domain entity: one physical site of a clinic with its own attendance zone."""

    branch_id: int
    clinic_id: int
    branch_name: str
    latitude: Optional[float]
    longitude: Optional[float]
    attendance_radius_meters: int
    address: Optional[str] = None
    is_active: bool = True
    display_order: int = 0

    @property
    def location(self) -> Optional[GeoPoint]:
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(latitude=float(self.latitude), longitude=float(self.longitude))

    def to_dict(self) -> dict:
        return {
            "id": self.branch_id,
            "clinic_id": self.clinic_id,
            "branch_name": self.branch_name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "attendance_radius_meters": self.attendance_radius_meters,
            "is_active": self.is_active,
            "display_order": self.display_order,
        }


@dataclass(frozen=True)
class NewBranch:
    clinic_id: int
    branch_name: str
    location: Optional[GeoPoint]
    attendance_radius_meters: int
    address: Optional[str] = None
    display_order: int = 0


@dataclass(frozen=True)
class BranchMatch:
    """Nearest branch to a reported location."""

    branch: Branch
    distance_meters: float

    @property
    def within_radius(self) -> bool:
        return self.distance_meters <= float(self.branch.attendance_radius_meters)
