from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import List, Optional, Sequence

from ..core.enums import AttendancePhase, AttendanceStatus


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one user's attendance for one work date."""

    attendance_id: Optional[int]
    user_id: int
    clinic_id: int
    work_date: date
    check_in_time: Optional[datetime]
    check_out_time: Optional[datetime]
    status: AttendanceStatus
    branch_id: Optional[int] = None
    scheduled_start: Optional[time] = None
    scheduled_end: Optional[time] = None
    late_minutes: int = 0
    early_leave_minutes: int = 0
    overtime_minutes: int = 0
    total_work_minutes: int = 0
    check_in_latitude: Optional[float] = None
    check_in_longitude: Optional[float] = None
    check_in_device_info: Optional[str] = None
    check_out_latitude: Optional[float] = None
    check_out_longitude: Optional[float] = None
    check_out_device_info: Optional[str] = None
    notes: Optional[str] = None
    is_manually_edited: bool = False
    edited_by: Optional[int] = None
    edited_at: Optional[datetime] = None

    @classmethod
    def not_checked_in(cls, *, user_id: int, clinic_id: int, work_date: date) -> "AttendanceRecord":
        """Placeholder returned when no row exists yet for the date."""
        return cls(
            attendance_id=None,
            user_id=user_id,
            clinic_id=clinic_id,
            work_date=work_date,
            check_in_time=None,
            check_out_time=None,
            status=AttendanceStatus.NOT_CHECKED_IN,
        )

    @property
    def phase(self) -> AttendancePhase:
        if self.check_in_time is None:
            return AttendancePhase.NOT_CHECKED_IN
        if self.check_out_time is None:
            return AttendancePhase.CHECKED_IN
        return AttendancePhase.CHECKED_OUT

    def to_dict(self) -> dict:
        return {
            "id": self.attendance_id,
            "user_id": self.user_id,
            "clinic_id": self.clinic_id,
            "branch_id": self.branch_id,
            "work_date": self.work_date.isoformat(),
            "check_in_time": _iso(self.check_in_time),
            "check_out_time": _iso(self.check_out_time),
            "scheduled_start": self.scheduled_start.strftime("%H:%M:%S") if self.scheduled_start else None,
            "scheduled_end": self.scheduled_end.strftime("%H:%M:%S") if self.scheduled_end else None,
            "status": self.status.value,
            "phase": self.phase.value,
            "late_minutes": self.late_minutes,
            "early_leave_minutes": self.early_leave_minutes,
            "overtime_minutes": self.overtime_minutes,
            "total_work_minutes": self.total_work_minutes,
            "check_in_latitude": self.check_in_latitude,
            "check_in_longitude": self.check_in_longitude,
            "check_in_device_info": self.check_in_device_info,
            "check_out_latitude": self.check_out_latitude,
            "check_out_longitude": self.check_out_longitude,
            "check_out_device_info": self.check_out_device_info,
            "notes": self.notes,
            "is_manually_edited": self.is_manually_edited,
            "edited_by": self.edited_by,
            "edited_at": _iso(self.edited_at),
        }


@dataclass(frozen=True)
class NewCheckIn:
    user_id: int
    clinic_id: int
    work_date: date
    check_in_time: datetime
    status: AttendanceStatus
    scheduled_start: Optional[time]
    scheduled_end: Optional[time]
    late_minutes: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    device_info: Optional[str] = None
    branch_id: Optional[int] = None


@dataclass(frozen=True)
class CheckOutUpdate:
    attendance_id: int
    check_out_time: datetime
    status: AttendanceStatus
    early_leave_minutes: int
    overtime_minutes: int
    total_work_minutes: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    device_info: Optional[str] = None


@dataclass(frozen=True)
class RecordFilter:
    """Criteria for the paginated record listing."""

    clinic_id: Optional[int] = None
    branch_id: Optional[int] = None
    user_id: Optional[int] = None
    status: Optional[AttendanceStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    page: int = 1
    page_size: int = 50

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class AttendancePage:
    records: Sequence[AttendanceRecord]
    total_count: int
    page: int
    page_size: int

    @property
    def has_more(self) -> bool:
        return self.page * self.page_size < self.total_count

    def to_dict(self) -> dict:
        return {
            "records": [r.to_dict() for r in self.records],
            "total_count": self.total_count,
            "page": self.page,
            "page_size": self.page_size,
            "has_more": self.has_more,
        }


@dataclass(frozen=True)
class TeamMemberStatus:
    user_id: int
    full_name: str
    status: AttendanceStatus
    check_in_time: Optional[datetime]
    scheduled_start: Optional[time]
    late_minutes: int = 0


@dataclass(frozen=True)
class TeamAttendanceStatus:
    """Snapshot of a clinic's attendance for one date."""

    clinic_id: int
    work_date: date
    total_staff: int
    checked_in: int
    not_checked_in: int
    on_leave: int
    late_count: int
    members: List[TeamMemberStatus] = field(default_factory=list)
    branch_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "clinic_id": self.clinic_id,
            "branch_id": self.branch_id,
            "date": self.work_date.isoformat(),
            "total_staff": self.total_staff,
            "checked_in": self.checked_in,
            "not_checked_in": self.not_checked_in,
            "on_leave": self.on_leave,
            "late_count": self.late_count,
            "members": [
                {
                    "user_id": m.user_id,
                    "full_name": m.full_name,
                    "status": m.status.value,
                    "check_in_time": _iso(m.check_in_time),
                    "scheduled_start": m.scheduled_start.strftime("%H:%M:%S") if m.scheduled_start else None,
                    "late_minutes": m.late_minutes,
                }
                for m in self.members
            ],
        }


@dataclass(frozen=True)
class AutoCheckOutcome:
    """Result of a single scan that was routed to check-in or check-out."""

    action: str
    record: AttendanceRecord

    def to_dict(self) -> dict:
        return {"action": self.action, "record": self.record.to_dict()}
