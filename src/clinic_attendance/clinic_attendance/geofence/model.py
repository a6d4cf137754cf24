from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..common.validators import require_latitude, require_longitude


@dataclass(frozen=True)
class GeoPoint:
    """WGS-84 coordinate pair."""

    latitude: float
    longitude: float

    @classmethod
    def of(cls, latitude, longitude) -> "GeoPoint":
        return cls(latitude=require_latitude(latitude), longitude=require_longitude(longitude))

    @classmethod
    def maybe(cls, latitude, longitude) -> Optional["GeoPoint"]:
        """Both coordinates or neither; a half-specified point is treated as absent."""
        if latitude is None or longitude is None:
            return None
        return cls.of(latitude, longitude)


@dataclass(frozen=True)
class GeofenceResult:
    passed: bool
    distance_meters: Optional[float]
    location_verified: bool
    skipped_reason: Optional[str] = None
