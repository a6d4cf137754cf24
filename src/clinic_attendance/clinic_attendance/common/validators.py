from __future__ import annotations

from typing import Any, Optional

from ..core.constants import MAX_RADIUS_METERS
from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_id(value: Any, field_name: str) -> int:
    try:
        ident = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is required")
    if ident <= 0:
        raise ValidationError(f"{field_name} is invalid")
    return ident


def require_radius(value: Any) -> int:
    try:
        radius = int(value)
    except (TypeError, ValueError):
        raise ValidationError("radius_meters must be a number")
    if radius <= 0 or radius > MAX_RADIUS_METERS:
        raise ValidationError(f"radius_meters must be between 1 and {MAX_RADIUS_METERS}")
    return radius


def require_latitude(value: Any) -> float:
    lat = float(value)
    if not -90.0 <= lat <= 90.0:
        raise ValidationError("latitude must be between -90 and 90")
    return lat


def require_longitude(value: Any) -> float:
    lon = float(value)
    if not -180.0 <= lon <= 180.0:
        raise ValidationError("longitude must be between -180 and 180")
    return lon
