from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Optional, Union

from ..branches.repository import BranchRepository
from ..branches.service import require_branch
from ..common.datetime_utils import Clock, SystemClock, whole_minutes
from ..common.validators import require_id
from ..core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..core.enums import AttendancePhase, AttendanceStatus
from ..core.exceptions import (
    AlreadyCheckedIn,
    AlreadyCheckedOut,
    AuthorizationError,
    DuplicateRecordError,
    GeofenceViolation,
    NotCheckedInYet,
    RecordNotFound,
    ValidationError,
)
from ..geofence.location import LocationOutcome
from ..geofence.model import GeoPoint
from ..geofence.validator import GeofenceValidator
from ..qrcodes.model import QRCode
from ..qrcodes.service import QRCodeManager
from ..schedules.model import ScheduledShift
from ..schedules.resolver import ScheduleResolver
from ..users.model import User
from ..users.repository import UserRepository
from .factory import AttendanceStrategyFactory
from .model import (
    AttendancePage,
    AttendanceRecord,
    AutoCheckOutcome,
    CheckOutUpdate,
    NewCheckIn,
    RecordFilter,
    TeamAttendanceStatus,
    TeamMemberStatus,
)
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

ReportedLocation = Union[LocationOutcome, GeoPoint, None]

_UNSET = object()


def _reported_point(location: ReportedLocation) -> Optional[GeoPoint]:
    if isinstance(location, LocationOutcome):
        return location.point
    return location


def _snapshot_shift(record: AttendanceRecord) -> Optional[ScheduledShift]:
    if record.scheduled_start is None or record.scheduled_end is None:
        return None
    return ScheduledShift(start_time=record.scheduled_start, end_time=record.scheduled_end, source="snapshot")


class AttendanceService:
    """Check-in / check-out state machine per (user, work_date).

    NOT_CHECKED_IN -> CHECKED_IN -> CHECKED_OUT. Both transitions require a
    valid clinic QR code and, when the code carries an anchor, a location
    inside its radius.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        qr_codes: QRCodeManager,
        schedules: ScheduleResolver,
        *,
        branches: Optional[BranchRepository] = None,
        geofence: Optional[GeofenceValidator] = None,
        clock: Optional[Clock] = None,
        strategy_factory: Optional[AttendanceStrategyFactory] = None,
    ):
        self._attendance = attendance
        self._users = users
        self._qr_codes = qr_codes
        self._schedules = schedules
        self._branches = branches
        self._geofence = geofence or GeofenceValidator()
        self._clock = clock or SystemClock()
        self._factory = strategy_factory or AttendanceStrategyFactory()

    def _authorize(self, user_id: int, clinic_id: int) -> User:
        user = self._users.get_by_id(require_id(user_id, "user_id"))
        if not user or not user.belongs_to(require_id(clinic_id, "clinic_id")):
            raise AuthorizationError("User is not an active member of this clinic")
        return user

    def _require_manager(self, user_id: int, clinic_id: int) -> User:
        user = self._authorize(user_id, clinic_id)
        if not user.role.can_manage:
            raise AuthorizationError("Only owners and managers can perform this action")
        return user

    def _verify_scan(
        self,
        *,
        user_id: int,
        clinic_id: int,
        qr_code: str,
        work_date: date,
        location: ReportedLocation,
    ) -> QRCode:
        qr = self._qr_codes.validate_scan(clinic_id, qr_code, work_date)

        point = _reported_point(location)
        result = self._geofence.validate(qr.anchor, qr.radius_meters, point)
        if not result.passed:
            raise GeofenceViolation(
                f"You are {round(result.distance_meters or 0)}m away from the clinic "
                f"(allowed: {qr.radius_meters}m).",
                distance_meters=result.distance_meters or 0.0,
                radius_meters=qr.radius_meters,
            )
        if result.skipped_reason == "no_location":
            kind = location.kind.value if isinstance(location, LocationOutcome) else "missing"
            logger.info(
                "Attendance scan without device location: user_id=%s clinic_id=%s reason=%s location_verified=false",
                user_id, clinic_id, kind,
            )
        return qr

    def check_in(
        self,
        user_id: int,
        clinic_id: int,
        qr_code: str,
        *,
        work_date: Optional[date] = None,
        location: ReportedLocation = None,
        device_info: Optional[str] = None,
    ) -> AttendanceRecord:
        self._authorize(user_id, clinic_id)
        now = self._clock.now()
        work_date = work_date or now.date()

        qr = self._verify_scan(user_id=user_id, clinic_id=clinic_id, qr_code=qr_code, work_date=work_date, location=location)
        point = _reported_point(location)
        branch_id = self._branch_for_scan(qr, clinic_id, point)

        existing = self._attendance.get_for_user_and_date(user_id, work_date)
        if existing and existing.check_in_time is not None:
            raise AlreadyCheckedIn("Already checked in for today")

        shift = self._schedules.resolve(user_id, work_date, clinic_id)
        strategy = self._factory.for_checkin(check_in_time=now, work_date=work_date, shift=shift)
        decision = strategy.decide_checkin(check_in_time=now, work_date=work_date, shift=shift)

        new = NewCheckIn(
            user_id=user_id,
            clinic_id=clinic_id,
            work_date=work_date,
            check_in_time=now,
            status=decision.status,
            scheduled_start=shift.start_time if shift else None,
            scheduled_end=shift.end_time if shift else None,
            late_minutes=decision.late_minutes,
            latitude=point.latitude if point else None,
            longitude=point.longitude if point else None,
            device_info=device_info,
            branch_id=branch_id,
        )
        if existing:
            # Pre-created row (absent/leave placeholder): fill it in place.
            if not self._attendance.record_checkin_on_existing(int(existing.attendance_id), new):
                raise AlreadyCheckedIn("Already checked in for today")
            record = replace(
                existing,
                branch_id=branch_id,
                check_in_time=now,
                status=new.status,
                scheduled_start=new.scheduled_start,
                scheduled_end=new.scheduled_end,
                late_minutes=new.late_minutes,
                check_in_latitude=new.latitude,
                check_in_longitude=new.longitude,
                check_in_device_info=device_info,
            )
        else:
            try:
                record = self._attendance.create_checkin(new)
            except DuplicateRecordError:
                raise AlreadyCheckedIn("Already checked in for today")

        logger.info(
            "Checked in: user_id=%s clinic_id=%s branch_id=%s date=%s status=%s late_minutes=%s",
            user_id, clinic_id, branch_id, work_date, record.status.value, record.late_minutes,
        )
        return record

    def _branch_for_scan(self, qr: QRCode, clinic_id: int, point: Optional[GeoPoint]) -> Optional[int]:
        """Branch the scan is attributed to.

        A branch code names its branch. A clinic-wide code is matched to the
        nearest located branch, and the scan must fall inside that branch's
        radius. Without a location or located branches the scan stays unassigned.
        """
        if qr.branch_id is not None:
            return qr.branch_id
        if point is None or self._branches is None:
            return None

        match = self._geofence.nearest_branch(self._branches.list_active_for_clinic(clinic_id), point)
        if match is None:
            return None
        if not match.within_radius:
            radius = match.branch.attendance_radius_meters
            raise GeofenceViolation(
                f"You are {round(match.distance_meters)}m away from the nearest branch "
                f"({match.branch.branch_name}, allowed: {radius}m).",
                distance_meters=match.distance_meters,
                radius_meters=radius,
            )
        return match.branch.branch_id

    def check_out(
        self,
        user_id: int,
        clinic_id: int,
        qr_code: str,
        *,
        work_date: Optional[date] = None,
        location: ReportedLocation = None,
        device_info: Optional[str] = None,
    ) -> AttendanceRecord:
        self._authorize(user_id, clinic_id)
        now = self._clock.now()
        work_date = work_date or now.date()

        self._verify_scan(user_id=user_id, clinic_id=clinic_id, qr_code=qr_code, work_date=work_date, location=location)

        record = self._attendance.get_for_user_and_date(user_id, work_date)
        if not record or record.check_in_time is None:
            raise NotCheckedInYet("No check-in record for today. Please check in first.")
        if record.check_out_time is not None:
            raise AlreadyCheckedOut("Already checked out for today")

        shift = _snapshot_shift(record)
        strategy = self._factory.for_checkout(check_out_time=now, work_date=work_date, shift=shift)
        decision = strategy.decide_checkout(check_out_time=now, work_date=work_date, shift=shift, current=record.status)
        total = max(0, whole_minutes(record.check_in_time, now))

        point = _reported_point(location)
        update = CheckOutUpdate(
            attendance_id=int(record.attendance_id),
            check_out_time=now,
            status=decision.status,
            early_leave_minutes=decision.early_leave_minutes,
            overtime_minutes=decision.overtime_minutes,
            total_work_minutes=total,
            latitude=point.latitude if point else None,
            longitude=point.longitude if point else None,
            device_info=device_info,
        )
        if not self._attendance.update_checkout(update):
            raise AlreadyCheckedOut("Already checked out for today")

        logger.info(
            "Checked out: user_id=%s clinic_id=%s date=%s status=%s total_minutes=%s",
            user_id, clinic_id, work_date, decision.status.value, total,
        )
        return replace(
            record,
            check_out_time=now,
            status=decision.status,
            early_leave_minutes=update.early_leave_minutes,
            overtime_minutes=update.overtime_minutes,
            total_work_minutes=total,
            check_out_latitude=update.latitude,
            check_out_longitude=update.longitude,
            check_out_device_info=device_info,
        )

    def auto_check(
        self,
        user_id: int,
        clinic_id: int,
        scanned: str,
        *,
        location: ReportedLocation = None,
        device_info: Optional[str] = None,
    ) -> AutoCheckOutcome:
        """Route one scan to check-in or check-out depending on today's state."""
        self._authorize(user_id, clinic_id)
        work_date = self._clock.today()
        current = self._attendance.get_for_user_and_date(user_id, work_date)

        if current and current.phase == AttendancePhase.CHECKED_OUT:
            raise AlreadyCheckedOut("Attendance for today is already complete")
        if current and current.phase == AttendancePhase.CHECKED_IN:
            record = self.check_out(
                user_id, clinic_id, scanned, work_date=work_date, location=location, device_info=device_info
            )
            return AutoCheckOutcome(action="check_out", record=record)

        record = self.check_in(
            user_id, clinic_id, scanned, work_date=work_date, location=location, device_info=device_info
        )
        return AutoCheckOutcome(action="check_in", record=record)

    def get_today(self, user_id: int, clinic_id: Optional[int] = None) -> AttendanceRecord:
        user = self._users.get_by_id(require_id(user_id, "user_id"))
        if not user or (clinic_id is not None and not user.belongs_to(clinic_id)):
            raise AuthorizationError("User is not an active member of this clinic")

        today = self._clock.today()
        record = self._attendance.get_for_user_and_date(user.user_id, today)
        return record or AttendanceRecord.not_checked_in(user_id=user.user_id, clinic_id=user.clinic_id, work_date=today)

    def list_records(self, filters: RecordFilter) -> AttendancePage:
        if filters.page < 1:
            raise ValidationError("page must be 1 or greater")
        if not 1 <= filters.page_size <= MAX_PAGE_SIZE:
            raise ValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
        if filters.start_date and filters.end_date and filters.start_date > filters.end_date:
            raise ValidationError("start_date must not be after end_date")

        records, total = self._attendance.list_records(filters)
        return AttendancePage(records=list(records), total_count=total, page=filters.page, page_size=filters.page_size)

    def team_status(
        self,
        clinic_id: int,
        work_date: Optional[date] = None,
        branch_id: Optional[int] = None,
    ) -> TeamAttendanceStatus:
        """``branch_id`` narrows the roster to that branch's staff plus staff with no primary branch."""
        clinic_id = require_id(clinic_id, "clinic_id")
        work_date = work_date or self._clock.today()

        staff = list(self._users.list_active_for_clinic(clinic_id))
        if branch_id is not None:
            if self._branches is None:
                raise ValidationError("Branches are not configured")
            branch_id = require_branch(self._branches, clinic_id, branch_id).branch_id
            staff = [u for u in staff if u.primary_branch_id in (None, branch_id)]
        by_user = {r.user_id: r for r in self._attendance.list_for_clinic_date(clinic_id, work_date)}

        members = []
        checked_in = on_leave = late_count = 0
        for user in staff:
            record = by_user.get(user.user_id)
            if record is None:
                members.append(
                    TeamMemberStatus(
                        user_id=user.user_id,
                        full_name=user.full_name,
                        status=AttendanceStatus.NOT_CHECKED_IN,
                        check_in_time=None,
                        scheduled_start=None,
                    )
                )
                continue

            if record.check_in_time is not None:
                checked_in += 1
            elif record.status == AttendanceStatus.LEAVE:
                on_leave += 1
            if record.late_minutes > 0:
                late_count += 1
            members.append(
                TeamMemberStatus(
                    user_id=user.user_id,
                    full_name=user.full_name,
                    status=record.status,
                    check_in_time=record.check_in_time,
                    scheduled_start=record.scheduled_start,
                    late_minutes=record.late_minutes,
                )
            )

        return TeamAttendanceStatus(
            clinic_id=clinic_id,
            work_date=work_date,
            total_staff=len(staff),
            checked_in=checked_in,
            not_checked_in=len(staff) - checked_in - on_leave,
            on_leave=on_leave,
            late_count=late_count,
            members=members,
            branch_id=branch_id,
        )

    def edit_record(
        self,
        *,
        editor_id: int,
        clinic_id: int,
        attendance_id: int,
        check_in_time=_UNSET,
        check_out_time=_UNSET,
        status: Optional[AttendanceStatus] = None,
        notes=_UNSET,
    ) -> AttendanceRecord:
        """Manual correction by an owner or manager of the record's clinic.

        Minute fields are re-derived from the stored schedule snapshot when
        the times change; an explicit ``status`` wins over the derived one.
        """
        editor = self._require_manager(editor_id, clinic_id)
        record = self._attendance.get_by_id(require_id(attendance_id, "attendance_id"))
        if not record or record.clinic_id != editor.clinic_id:
            raise RecordNotFound("Attendance record not found")

        new_in = record.check_in_time if check_in_time is _UNSET else check_in_time
        new_out = record.check_out_time if check_out_time is _UNSET else check_out_time
        new_notes = record.notes if notes is _UNSET else notes

        if new_out is not None and new_in is None:
            raise ValidationError("check_out_time requires check_in_time")
        if new_in is not None and new_out is not None and new_out < new_in:
            raise ValidationError("check_out_time must not be earlier than check_in_time")

        late = early = overtime = 0
        derived = AttendanceStatus.PRESENT if new_in is not None else record.status
        shift = _snapshot_shift(record)
        if new_in is not None:
            decision = self._factory.for_checkin(check_in_time=new_in, work_date=record.work_date, shift=shift).decide_checkin(
                check_in_time=new_in, work_date=record.work_date, shift=shift
            )
            derived, late = decision.status, decision.late_minutes
        if new_out is not None:
            decision = self._factory.for_checkout(check_out_time=new_out, work_date=record.work_date, shift=shift).decide_checkout(
                check_out_time=new_out, work_date=record.work_date, shift=shift, current=derived
            )
            derived, early, overtime = decision.status, decision.early_leave_minutes, decision.overtime_minutes
        total = max(0, whole_minutes(new_in, new_out)) if new_in is not None and new_out is not None else 0

        final_status = status or derived
        edited_at = self._clock.now()
        if not self._attendance.admin_update(
            attendance_id=int(record.attendance_id),
            check_in_time=new_in,
            check_out_time=new_out,
            status=final_status,
            late_minutes=late,
            early_leave_minutes=early,
            overtime_minutes=overtime,
            total_work_minutes=total,
            notes=new_notes,
            edited_by=editor.user_id,
            edited_at=edited_at,
        ):
            raise RecordNotFound("Attendance record not found")

        logger.info(
            "Attendance record edited: attendance_id=%s editor_id=%s status=%s",
            record.attendance_id, editor.user_id, final_status.value,
        )
        return replace(
            record,
            check_in_time=new_in,
            check_out_time=new_out,
            status=final_status,
            late_minutes=late,
            early_leave_minutes=early,
            overtime_minutes=overtime,
            total_work_minutes=total,
            notes=new_notes,
            is_manually_edited=True,
            edited_by=editor.user_id,
            edited_at=edited_at,
        )


def build_record_filter(
    *,
    clinic_id: Optional[int] = None,
    branch_id: Optional[int] = None,
    user_id: Optional[int] = None,
    status: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> RecordFilter:
    try:
        parsed_status = AttendanceStatus(status) if status else None
    except ValueError:
        raise ValidationError(f"Unknown attendance status: {status!r}")
    return RecordFilter(
        clinic_id=clinic_id,
        branch_id=branch_id,
        user_id=user_id,
        status=parsed_status,
        start_date=start_date,
        end_date=end_date,
        page=int(page),
        page_size=int(page_size),
    )
