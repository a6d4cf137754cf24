from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

from ..branches.model import Branch, BranchMatch
from ..core.constants import EARTH_RADIUS_METERS
from .model import GeofenceResult, GeoPoint

logger = logging.getLogger(__name__)


def haversine_distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in meters between two WGS-84 points."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    dphi = math.radians(b.latitude - a.latitude)
    dlambda = math.radians(b.longitude - a.longitude)

    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_METERS * c


class GeofenceValidator:
    """Decide whether a reported location lies inside a circular zone.

    - No anchor configured: check skipped, always passes.
    - No reported location (denied / timed out on the device): passes, but
      ``location_verified`` is False so callers can flag it.
    """

    def validate(
        self,
        anchor: Optional[GeoPoint],
        radius_meters: int,
        reported: Optional[GeoPoint],
    ) -> GeofenceResult:
        if anchor is None:
            return GeofenceResult(
                passed=True,
                distance_meters=None,
                location_verified=False,
                skipped_reason="no_anchor",
            )

        if reported is None:
            return GeofenceResult(
                passed=True,
                distance_meters=None,
                location_verified=False,
                skipped_reason="no_location",
            )

        distance = haversine_distance_meters(anchor, reported)
        passed = distance <= float(radius_meters)
        if not passed:
            logger.info("Geofence rejected: distance=%.1fm radius=%dm", distance, radius_meters)
        return GeofenceResult(passed=passed, distance_meters=distance, location_verified=True)

    def nearest_branch(self, branches: Iterable[Branch], reported: Optional[GeoPoint]) -> Optional[BranchMatch]:
        """Closest branch with a known location, or None when none can be compared."""
        if reported is None:
            return None
        located = [b for b in branches if b.location is not None]
        if not located:
            return None

        match = min(
            (BranchMatch(branch=b, distance_meters=haversine_distance_meters(b.location, reported)) for b in located),
            key=lambda m: m.distance_meters,
        )
        logger.info(
            "Nearest branch: branch_id=%s distance=%.1fm radius=%dm",
            match.branch.branch_id, match.distance_meters, match.branch.attendance_radius_meters,
        )
        return match
