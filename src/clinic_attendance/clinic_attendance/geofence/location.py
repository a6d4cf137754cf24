from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ..core.constants import DEFAULT_GEOLOCATION_TIMEOUT_SECONDS
from ..core.enums import LocationOutcomeKind
from ..core.exceptions import GeolocationTimeoutError, ValidationError
from .model import GeoPoint

LocationProvider = Callable[[], Awaitable[GeoPoint]]


@dataclass(frozen=True)
class LocationOutcome:
    """Result of asking the device for its position: a value, a timeout, or a denial."""

    kind: LocationOutcomeKind
    point: Optional[GeoPoint] = None
    accuracy_meters: Optional[float] = None

    @classmethod
    def of(cls, point: GeoPoint, accuracy_meters: Optional[float] = None) -> "LocationOutcome":
        return cls(kind=LocationOutcomeKind.VALUE, point=point, accuracy_meters=accuracy_meters)

    @classmethod
    def timeout(cls) -> "LocationOutcome":
        return cls(kind=LocationOutcomeKind.TIMEOUT)

    @classmethod
    def denied(cls) -> "LocationOutcome":
        return cls(kind=LocationOutcomeKind.DENIED)

    @classmethod
    def unavailable(cls) -> "LocationOutcome":
        return cls(kind=LocationOutcomeKind.UNAVAILABLE)

    @classmethod
    def from_payload(cls, data: Optional[dict]) -> "LocationOutcome":
        """Build from a request body.

        Accepts ``{"latitude": .., "longitude": .., "accuracy": ..}`` or
        ``{"location_error": "timeout" | "denied"}`` as reported by the client.
        """
        data = data or {}
        error = (data.get("location_error") or "").strip().lower()
        if error == LocationOutcomeKind.TIMEOUT.value:
            return cls.timeout()
        if error == LocationOutcomeKind.DENIED.value:
            return cls.denied()

        lat = data.get("latitude")
        lon = data.get("longitude")
        if lat is None or lon is None:
            return cls.unavailable()
        try:
            point = GeoPoint.of(lat, lon)
        except (TypeError, ValueError):
            raise ValidationError("latitude/longitude must be numbers")
        accuracy = data.get("accuracy")
        return cls.of(point, float(accuracy) if accuracy is not None else None)

    @property
    def has_value(self) -> bool:
        return self.kind == LocationOutcomeKind.VALUE

    def require(self) -> GeoPoint:
        """Return the point or raise; for callers where location is mandatory."""
        if self.kind == LocationOutcomeKind.TIMEOUT:
            raise GeolocationTimeoutError("Timed out while getting the device location")
        if self.point is None:
            raise ValidationError(f"Device location is not available ({self.kind.value})")
        return self.point


async def acquire_location(
    provider: LocationProvider,
    *,
    timeout_seconds: float = DEFAULT_GEOLOCATION_TIMEOUT_SECONDS,
) -> LocationOutcome:
    """Await a location provider with a hard timeout.

    The provider raises PermissionError when the user denies access. Timeouts
    and denials degrade to an outcome without a point; they never block the
    attendance flow.
    """
    try:
        point = await asyncio.wait_for(provider(), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        return LocationOutcome.timeout()
    except PermissionError:
        return LocationOutcome.denied()
    return LocationOutcome.of(point)
