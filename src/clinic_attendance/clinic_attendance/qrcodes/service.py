from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from typing import Callable, Optional

from ..branches.repository import BranchRepository
from ..branches.service import require_branch
from ..common.datetime_utils import Clock, SystemClock
from ..common.validators import require_id, require_radius
from ..core.constants import DEFAULT_RADIUS_METERS, QR_URL_MARKER
from ..core.enums import RefreshPeriod
from ..core.exceptions import DuplicateRecordError, QRCodeExpiredOrMismatch, ValidationError
from ..geofence.model import GeoPoint
from .model import NewQRCode, QRCode
from .repository import QRCodeRepository

logger = logging.getLogger(__name__)


def extract_token(scanned: str) -> str:
    """Return the opaque token from a raw scan.

    Phones scanning the printed code hand us the full URL
    (``https://host/qr/<token>``); manual entry gives the bare token.
    """
    value = (scanned or "").strip()
    if QR_URL_MARKER in value:
        value = value.rsplit(QR_URL_MARKER, 1)[-1]
    return value.split("?", 1)[0].strip("/ ")


def parse_refresh_period(value) -> RefreshPeriod:
    if isinstance(value, RefreshPeriod):
        return value
    try:
        return RefreshPeriod(str(value or RefreshPeriod.DAILY.value).strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in RefreshPeriod)
        raise ValidationError(f"refresh_period must be one of: {allowed}")


class QRCodeManager:
    """Owns the lifecycle of per-clinic attendance QR codes."""

    def __init__(
        self,
        codes: QRCodeRepository,
        *,
        branches: Optional[BranchRepository] = None,
        clock: Optional[Clock] = None,
        base_url: str = "http://localhost:5000",
        default_radius_meters: int = DEFAULT_RADIUS_METERS,
        token_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self._codes = codes
        self._branches = branches
        self._clock = clock or SystemClock()
        self._base_url = base_url.rstrip("/")
        self._token_factory = token_factory
        self._default_radius = default_radius_meters

    @staticmethod
    def validity_window(today: date, refresh_period: RefreshPeriod) -> tuple[date, date]:
        return today, today + timedelta(days=refresh_period.days)

    def generate(
        self,
        clinic_id: int,
        anchor: Optional[GeoPoint] = None,
        radius_meters: Optional[int] = None,
        refresh_period: RefreshPeriod = RefreshPeriod.DAILY,
        force_regenerate: bool = False,
        branch_id: Optional[int] = None,
    ) -> QRCode:
        """Return the active code of the (clinic, branch) scope, creating one if needed.

        A branch code without an explicit anchor takes the branch location and
        radius as its geofence.
        """
        clinic_id = require_id(clinic_id, "clinic_id")
        if branch_id is not None:
            if self._branches is None:
                raise ValidationError("Branches are not configured")
            branch = require_branch(self._branches, clinic_id, branch_id)
            branch_id = branch.branch_id
            if anchor is None and branch.location is not None:
                anchor = branch.location
                if radius_meters is None:
                    radius_meters = branch.attendance_radius_meters
        radius_meters = require_radius(self._default_radius if radius_meters is None else radius_meters)
        refresh_period = parse_refresh_period(refresh_period)

        today = self._clock.today()
        if not force_regenerate:
            existing = self._codes.get_active_for_clinic(clinic_id, today, branch_id)
            if existing:
                return existing

        valid_date, valid_until = self.validity_window(today, refresh_period)
        new = NewQRCode(
            clinic_id=clinic_id,
            code=self._token_factory(),
            anchor=anchor,
            radius_meters=radius_meters,
            refresh_period=refresh_period,
            valid_date=valid_date,
            valid_until=valid_until,
            created_at=self._clock.now(),
            branch_id=branch_id,
        )

        if force_regenerate:
            qr = self._codes.replace_active(new)
            logger.info(
                "QR code regenerated: clinic_id=%s branch_id=%s qr_id=%s valid_until=%s",
                clinic_id, branch_id, qr.qr_id, valid_until,
            )
            return qr

        try:
            qr = self._codes.create(new)
        except DuplicateRecordError:
            # A concurrent request activated a code first; hand that one back.
            existing = self._codes.get_active_for_clinic(clinic_id, today, branch_id)
            if existing:
                return existing
            raise

        if anchor is None:
            logger.warning("QR code generated without geofence anchor: clinic_id=%s", clinic_id)
        logger.info(
            "QR code generated: clinic_id=%s branch_id=%s qr_id=%s valid_until=%s",
            clinic_id, branch_id, qr.qr_id, valid_until,
        )
        return qr

    def get_active_code_for_today(self, clinic_id: int, branch_id: Optional[int] = None) -> Optional[QRCode]:
        if branch_id is not None:
            branch_id = require_id(branch_id, "branch_id")
        return self._codes.get_active_for_clinic(require_id(clinic_id, "clinic_id"), self._clock.today(), branch_id)

    def validate_scan(self, clinic_id: int, scanned: str, on_date: date) -> QRCode:
        token = extract_token(scanned)
        if not token:
            raise ValidationError("QR code is required")

        qr = self._codes.find_active_by_code(require_id(clinic_id, "clinic_id"), token, on_date)
        if qr is None or qr.code != token or not qr.is_usable_on(on_date):
            raise QRCodeExpiredOrMismatch("Invalid or expired QR code. Please scan the current clinic QR code.")
        return qr

    def scan_url(self, qr: QRCode) -> str:
        """URL encoded into the printed QR image."""
        return f"{self._base_url}{QR_URL_MARKER}{qr.code}"
