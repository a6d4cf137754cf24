from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..common.validators import require_id, require_non_empty, require_radius
from ..core.constants import DEFAULT_RADIUS_METERS
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, RecordNotFound, ValidationError
from ..geofence.model import GeoPoint
from .model import Branch, NewBranch
from .repository import BranchRepository

logger = logging.getLogger(__name__)


def require_branch(branches: BranchRepository, clinic_id: int, branch_id) -> Branch:
    """Active branch of ``clinic_id`` or RecordNotFound."""
    branch = branches.get_by_id(require_id(branch_id, "branch_id"))
    if not branch or not branch.is_active or branch.clinic_id != int(clinic_id):
        raise RecordNotFound("Branch not found")
    return branch


class BranchService:
    """Admin-side registration of clinic branches and their attendance zones."""

    def __init__(self, branches: BranchRepository):
        self._branches = branches

    def list(self, *, clinic_id: int) -> Sequence[Branch]:
        return self._branches.list_active_for_clinic(require_id(clinic_id, "clinic_id"))

    def create(
        self,
        *,
        current_role: Role,
        clinic_id: int,
        branch_name: str,
        latitude=None,
        longitude=None,
        attendance_radius_meters: Optional[int] = None,
        address: Optional[str] = None,
        display_order: int = 0,
    ) -> Branch:
        if not Role(current_role).can_manage:
            raise AuthorizationError("Only owners and managers can manage branches")
        clinic_id = require_id(clinic_id, "clinic_id")
        branch_name = require_non_empty(branch_name, "branch_name")
        if (latitude is None) != (longitude is None):
            raise ValidationError("Both latitude and longitude are required to set a location")
        try:
            location = GeoPoint.maybe(latitude, longitude)
            display_order = int(display_order or 0)
        except (TypeError, ValueError):
            raise ValidationError("latitude/longitude/display_order must be numbers")
        radius = require_radius(DEFAULT_RADIUS_METERS if attendance_radius_meters is None else attendance_radius_meters)

        branch = self._branches.create(
            NewBranch(
                clinic_id=clinic_id,
                branch_name=branch_name,
                location=location,
                attendance_radius_meters=radius,
                address=address.strip() if address else None,
                display_order=display_order,
            )
        )
        if location is None:
            logger.warning("Branch registered without location: clinic_id=%s branch_id=%s", clinic_id, branch.branch_id)
        logger.info("Branch registered: clinic_id=%s branch_id=%s name=%s", clinic_id, branch.branch_id, branch_name)
        return branch
