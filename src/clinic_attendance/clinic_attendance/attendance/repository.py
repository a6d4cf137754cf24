from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence, Tuple

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, CheckOutUpdate, NewCheckIn, RecordFilter


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create_checkin(self, new: NewCheckIn) -> AttendanceRecord:
        """Insert the day's record. Raises DuplicateRecordError if one already exists."""

        raise NotImplementedError

    def record_checkin_on_existing(self, attendance_id: int, new: NewCheckIn) -> bool:
        """Fill check-in fields of a pre-created row (absent/leave placeholder).

        Only applies while check_in_time IS NULL; returns False otherwise.
        """

        raise NotImplementedError

    def update_checkout(self, update: CheckOutUpdate) -> bool:
        """Set check-out fields only while check_out_time IS NULL.

        Returns False when another request already checked out.
        """

        raise NotImplementedError

    def list_records(self, filters: RecordFilter) -> Tuple[Sequence[AttendanceRecord], int]:
        """One page of records plus the total count matching the filters."""

        raise NotImplementedError

    def list_for_clinic_date(self, clinic_id: int, work_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_user_range(self, user_id: int, start: date, end: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def admin_update(
        self,
        *,
        attendance_id: int,
        check_in_time: Optional[datetime],
        check_out_time: Optional[datetime],
        status: AttendanceStatus,
        late_minutes: int,
        early_leave_minutes: int,
        overtime_minutes: int,
        total_work_minutes: int,
        notes: Optional[str],
        edited_by: int,
        edited_at: datetime,
    ) -> bool:
        """Manual correction by a manager; marks the row as edited."""

        raise NotImplementedError
