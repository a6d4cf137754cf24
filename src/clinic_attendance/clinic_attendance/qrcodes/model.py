from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import RefreshPeriod
from ..geofence.model import GeoPoint


@dataclass(frozen=True)
class QRCode:
    """Domain entity: a clinic's attendance QR code and its validity window.

    ``branch_id`` is None for a clinic-wide code; scans of such a code are
    attributed to the nearest branch by location.
    """

    qr_id: int
    clinic_id: int
    code: str
    anchor_latitude: Optional[float]
    anchor_longitude: Optional[float]
    radius_meters: int
    refresh_period: RefreshPeriod
    valid_date: date
    valid_until: date
    created_at: datetime
    active: bool = True
    branch_id: Optional[int] = None

    @property
    def anchor(self) -> Optional[GeoPoint]:
        if self.anchor_latitude is None or self.anchor_longitude is None:
            return None
        return GeoPoint(latitude=float(self.anchor_latitude), longitude=float(self.anchor_longitude))

    def covers(self, day: date) -> bool:
        return self.valid_date <= day <= self.valid_until

    def is_usable_on(self, day: date) -> bool:
        return self.active and self.covers(day)

    def to_dict(self) -> dict:
        return {
            "id": self.qr_id,
            "clinic_id": self.clinic_id,
            "branch_id": self.branch_id,
            "code": self.code,
            "anchor_latitude": self.anchor_latitude,
            "anchor_longitude": self.anchor_longitude,
            "radius_meters": self.radius_meters,
            "refresh_period": self.refresh_period.value,
            "valid_date": self.valid_date.isoformat(),
            "valid_until": self.valid_until.isoformat(),
            "created_at": self.created_at.isoformat(),
            "active": self.active,
        }


@dataclass(frozen=True)
class NewQRCode:
    clinic_id: int
    code: str
    anchor: Optional[GeoPoint]
    radius_meters: int
    refresh_period: RefreshPeriod
    valid_date: date
    valid_until: date
    created_at: datetime
    branch_id: Optional[int] = None
