from __future__ import annotations

import logging
import time
from datetime import date
from typing import Callable, Optional, TypeVar

from .attendance.model import AttendancePage, AttendanceRecord, AutoCheckOutcome, TeamAttendanceStatus
from .attendance.service import AttendanceService, ReportedLocation, build_record_filter
from .common.retry import retry_transient
from .common.validators import require_id
from .core.constants import (
    DEFAULT_GEOLOCATION_TIMEOUT_SECONDS,
    DEFAULT_PAGE_SIZE,
    DEFAULT_STORE_RETRY_ATTEMPTS,
    DEFAULT_STORE_RETRY_BASE_DELAY,
)
from .core.enums import ErrorKind, RefreshPeriod
from .core.exceptions import AuthorizationError, DomainError, PersistenceError, TransientStoreError, ValidationError
from .core.result import Result
from .geofence.location import LocationOutcome, LocationProvider, acquire_location
from .geofence.model import GeoPoint
from .qrcodes.model import QRCode
from .qrcodes.service import QRCodeManager
from .statistics.model import MonthlyStatistics
from .statistics.service import StatisticsAggregator
from .users.model import User
from .users.repository import UserRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AttendanceOperations:
    """Public entry points of the attendance subsystem.

    Every method returns a ``Result``; domain errors never escape. Connection
    level failures are retried with exponential backoff before being reported.
    """

    def __init__(
        self,
        *,
        qr_codes: QRCodeManager,
        attendance: AttendanceService,
        statistics: StatisticsAggregator,
        users: UserRepository,
        retry_attempts: int = DEFAULT_STORE_RETRY_ATTEMPTS,
        retry_base_delay: float = DEFAULT_STORE_RETRY_BASE_DELAY,
        geolocation_timeout_seconds: float = DEFAULT_GEOLOCATION_TIMEOUT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._qr_codes = qr_codes
        self._attendance = attendance
        self._statistics = statistics
        self._users = users
        self._retry_attempts = retry_attempts
        self._retry_base_delay = retry_base_delay
        self._sleep = sleep
        self._geolocation_timeout = geolocation_timeout_seconds

    def _run(self, operation: str, call: Callable[[], T], *, message: str = "", retry: bool = True) -> Result[T]:
        try:
            data = retry_transient(
                call,
                attempts=self._retry_attempts if retry else 1,
                base_delay=self._retry_base_delay,
                sleep=self._sleep,
                label=operation,
            )
        except (TransientStoreError, PersistenceError) as e:
            logger.error("%s store error: %s", operation, e, exc_info=True)
            return Result.from_error(e)
        except DomainError as e:
            logger.info("%s rejected: %s: %s", operation, e.kind.value, e)
            return Result.from_error(e)
        except Exception as e:
            logger.error("%s unexpected error: %s", operation, e, exc_info=True)
            return Result.err(ErrorKind.INTERNAL, "An unexpected error occurred. Please try again.")
        return Result.ok(data, message)

    def _manager_of(self, user_id: int, clinic_id: int) -> User:
        user = self._users.get_by_id(require_id(user_id, "user_id"))
        if not user or not user.belongs_to(clinic_id) or not user.role.can_manage:
            raise AuthorizationError("Only owners and managers of this clinic can perform this action")
        return user

    def _member(self, user_id: int) -> User:
        user = self._users.get_by_id(require_id(user_id, "user_id"))
        if not user or not user.is_active:
            raise AuthorizationError("User is not an active clinic member")
        return user

    # QR codes

    def generate_qr_code(
        self,
        clinic_id: int,
        *,
        anchor_latitude: Optional[float] = None,
        anchor_longitude: Optional[float] = None,
        radius_meters: Optional[int] = None,
        refresh_period: str = RefreshPeriod.DAILY.value,
        force_regenerate: bool = False,
        requested_by: int,
        branch_id: Optional[int] = None,
    ) -> Result[QRCode]:
        """Return the active code of the clinic (or of one branch), creating one if needed.

        ``force_regenerate`` rotates the code and is not retried on connection
        loss: the first attempt may have committed before the link dropped.
        """

        def call() -> QRCode:
            if (anchor_latitude is None) != (anchor_longitude is None):
                raise ValidationError("Both anchor_latitude and anchor_longitude are required to set a location")
            self._manager_of(requested_by, require_id(clinic_id, "clinic_id"))
            try:
                anchor = GeoPoint.maybe(anchor_latitude, anchor_longitude)
            except (TypeError, ValueError):
                raise ValidationError("anchor_latitude/anchor_longitude must be numbers")
            return self._qr_codes.generate(
                clinic_id,
                anchor=anchor,
                radius_meters=radius_meters,
                refresh_period=refresh_period,
                force_regenerate=force_regenerate,
                branch_id=branch_id,
            )

        return self._run("generate_qr_code", call, message="QR code is ready", retry=not force_regenerate)

    def get_today_qr_code(self, clinic_id: int, branch_id: Optional[int] = None) -> Result[Optional[QRCode]]:
        result = self._run(
            "get_today_qr_code", lambda: self._qr_codes.get_active_code_for_today(clinic_id, branch_id=branch_id)
        )
        if result.success and result.data is None:
            return Result.ok(None, "No QR code has been generated for today")
        return result

    # Attendance

    async def locate(self, provider: LocationProvider) -> LocationOutcome:
        """Ask the device for its position, giving up after the configured timeout.

        A timeout or denial yields an outcome without a point; pass it on to
        ``check_in``/``check_out`` and the scan is recorded unverified.
        """
        outcome = await acquire_location(provider, timeout_seconds=self._geolocation_timeout)
        if not outcome.has_value:
            logger.info("Device location not obtained: %s", outcome.kind.value)
        return outcome

    def check_in(
        self,
        user_id: int,
        clinic_id: int,
        qr_code: str,
        *,
        work_date: Optional[date] = None,
        location: ReportedLocation = None,
        device_info: Optional[str] = None,
    ) -> Result[AttendanceRecord]:
        result = self._run(
            "check_in",
            lambda: self._attendance.check_in(
                user_id, clinic_id, qr_code, work_date=work_date, location=location, device_info=device_info
            ),
            message="Checked in successfully",
        )
        return _with_location_flag(result, location)

    def check_out(
        self,
        user_id: int,
        clinic_id: int,
        qr_code: str,
        *,
        work_date: Optional[date] = None,
        location: ReportedLocation = None,
        device_info: Optional[str] = None,
    ) -> Result[AttendanceRecord]:
        result = self._run(
            "check_out",
            lambda: self._attendance.check_out(
                user_id, clinic_id, qr_code, work_date=work_date, location=location, device_info=device_info
            ),
            message="Checked out successfully",
        )
        return _with_location_flag(result, location)

    def auto_check(
        self,
        user_id: int,
        clinic_id: int,
        scanned: str,
        *,
        location: ReportedLocation = None,
        device_info: Optional[str] = None,
    ) -> Result[AutoCheckOutcome]:
        result = self._run(
            "auto_check",
            lambda: self._attendance.auto_check(user_id, clinic_id, scanned, location=location, device_info=device_info),
        )
        if result.success and result.data is not None:
            message = "Checked in successfully" if result.data.action == "check_in" else "Checked out successfully"
            result = Result.ok(result.data, message, action=result.data.action)
        return _with_location_flag(result, location)

    def get_today_attendance(self, user_id: int, clinic_id: Optional[int] = None) -> Result[AttendanceRecord]:
        return self._run("get_today_attendance", lambda: self._attendance.get_today(user_id, clinic_id))

    def list_records(
        self,
        viewer_id: int,
        *,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        branch_id: Optional[int] = None,
    ) -> Result[AttendancePage]:
        """Records of the viewer's clinic. Staff only ever see their own."""

        def call() -> AttendancePage:
            viewer = self._member(viewer_id)
            target = user_id if viewer.role.can_manage else viewer.user_id
            return self._attendance.list_records(
                build_record_filter(
                    clinic_id=viewer.clinic_id,
                    user_id=target,
                    status=status,
                    start_date=start_date,
                    end_date=end_date,
                    page=page,
                    page_size=page_size,
                    branch_id=branch_id,
                )
            )

        return self._run("list_records", call)

    def get_team_status(
        self,
        viewer_id: int,
        clinic_id: int,
        work_date: Optional[date] = None,
        branch_id: Optional[int] = None,
    ) -> Result[TeamAttendanceStatus]:
        def call() -> TeamAttendanceStatus:
            self._manager_of(viewer_id, require_id(clinic_id, "clinic_id"))
            return self._attendance.team_status(clinic_id, work_date, branch_id=branch_id)

        return self._run("get_team_status", call)

    def edit_record(self, editor_id: int, clinic_id: int, attendance_id: int, **changes) -> Result[AttendanceRecord]:
        return self._run(
            "edit_record",
            lambda: self._attendance.edit_record(
                editor_id=editor_id, clinic_id=clinic_id, attendance_id=attendance_id, **changes
            ),
            message="Attendance record updated",
        )

    # Statistics

    def recompute_monthly_statistics(
        self,
        user_id: int,
        year: int,
        month: int,
        *,
        clinic_id: Optional[int] = None,
    ) -> Result[MonthlyStatistics]:
        return self._run(
            "recompute_monthly_statistics",
            lambda: self._statistics.recompute(user_id, year, month, clinic_id=clinic_id),
        )

    def get_monthly_statistics(self, user_id: int, year: int, month: int) -> Result[Optional[MonthlyStatistics]]:
        result = self._run("get_monthly_statistics", lambda: self._statistics.get(user_id, year, month))
        if result.success and result.data is None:
            return Result.ok(None, "Statistics have not been calculated for this month")
        return result


def _with_location_flag(result: Result[T], location: ReportedLocation) -> Result[T]:
    if not result.success:
        return result
    point = location.point if isinstance(location, LocationOutcome) else location
    details = dict(result.details)
    details["location_verified"] = point is not None
    return Result.ok(result.data, result.message, **details)
