from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import Clock, SystemClock, month_bounds
from ..common.validators import require_id
from ..core.enums import AttendanceStatus
from ..core.exceptions import RecordNotFound, ValidationError
from ..schedules.resolver import ScheduleResolver
from ..users.repository import UserRepository
from .model import MonthlyStatistics
from .repository import StatisticsRepository

logger = logging.getLogger(__name__)


def _avg(total: int, count: int) -> float:
    return round(total / count, 2) if count else 0.0


def attendance_rate(present_days: int, total_work_days: int) -> float:
    if total_work_days <= 0:
        return 0.0
    return round(present_days / total_work_days * 100, 2)


class StatisticsAggregator:
    """Monthly attendance summaries.

    Work days are the days of the month that resolve to a scheduled shift,
    counted up to today for the current month. Past scheduled days without
    any record count as absent. Only attended work days count as present, so
    the attendance rate never exceeds 100; minutes worked on unscheduled days
    still add to the work totals.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        statistics: StatisticsRepository,
        schedules: ScheduleResolver,
        users: UserRepository,
        *,
        clock: Optional[Clock] = None,
    ):
        self._attendance = attendance
        self._statistics = statistics
        self._schedules = schedules
        self._users = users
        self._clock = clock or SystemClock()

    def _validate_period(self, year: int, month: int) -> tuple[int, int]:
        try:
            year, month = int(year), int(month)
        except (TypeError, ValueError):
            raise ValidationError("year and month must be numbers")
        if not 2000 <= year <= 2100:
            raise ValidationError("year is out of range")
        month_bounds(year, month)
        return year, month

    def recompute(self, user_id: int, year: int, month: int, *, clinic_id: Optional[int] = None) -> MonthlyStatistics:
        user_id = require_id(user_id, "user_id")
        year, month = self._validate_period(year, month)
        if clinic_id is None:
            user = self._users.get_by_id(user_id)
            if not user:
                raise RecordNotFound("User not found")
            clinic_id = user.clinic_id

        start, end = month_bounds(year, month)
        today = self._clock.today()
        snapshot_end = min(end, today)

        records = self._attendance.list_for_user_range(user_id, start, end)
        shifts = self._schedules.resolve_range(user_id, start, snapshot_end, clinic_id) if start <= snapshot_end else {}
        expected_days = sorted(day for day, shift in shifts.items() if shift is not None)

        stats = self._summarize(
            user_id=user_id,
            clinic_id=clinic_id,
            year=year,
            month=month,
            records=records,
            expected_days=expected_days,
            absent_before=today,
        )
        self._statistics.replace(stats)
        logger.info(
            "Monthly statistics recomputed: user_id=%s period=%04d-%02d work_days=%s present=%s rate=%s",
            user_id, year, month, stats.total_work_days, stats.present_days, stats.attendance_rate,
        )
        return stats

    def get(self, user_id: int, year: int, month: int) -> Optional[MonthlyStatistics]:
        year, month = self._validate_period(year, month)
        return self._statistics.get(require_id(user_id, "user_id"), year, month)

    def _summarize(
        self,
        *,
        user_id: int,
        clinic_id: Optional[int],
        year: int,
        month: int,
        records: Sequence[AttendanceRecord],
        expected_days: Sequence[date],
        absent_before: date,
    ) -> MonthlyStatistics:
        recorded_days = {r.work_date for r in records}
        expected = set(expected_days)
        present = [r for r in records if r.status.attended]
        present_days = len({r.work_date for r in present if r.work_date in expected})
        explicit_absent = sum(1 for r in records if r.status == AttendanceStatus.ABSENT)
        implicit_absent = sum(1 for d in expected_days if d < absent_before and d not in recorded_days)

        late = [r.late_minutes for r in records if r.late_minutes > 0]
        early = [r.early_leave_minutes for r in records if r.early_leave_minutes > 0]
        overtime = [r.overtime_minutes for r in records if r.overtime_minutes > 0]
        total_work_minutes = sum(r.total_work_minutes for r in present)

        return MonthlyStatistics(
            user_id=user_id,
            clinic_id=clinic_id,
            year=year,
            month=month,
            total_work_days=len(expected_days),
            present_days=present_days,
            absent_days=explicit_absent + implicit_absent,
            leave_days=sum(1 for r in records if r.status == AttendanceStatus.LEAVE),
            holiday_days=sum(1 for r in records if r.status == AttendanceStatus.HOLIDAY),
            late_count=len(late),
            total_late_minutes=sum(late),
            avg_late_minutes=_avg(sum(late), len(late)),
            early_leave_count=len(early),
            total_early_leave_minutes=sum(early),
            avg_early_leave_minutes=_avg(sum(early), len(early)),
            overtime_count=len(overtime),
            total_overtime_minutes=sum(overtime),
            avg_overtime_minutes=_avg(sum(overtime), len(overtime)),
            total_work_minutes=total_work_minutes,
            avg_work_minutes_per_day=_avg(total_work_minutes, len(present)),
            attendance_rate=attendance_rate(present_days, len(expected_days)),
            last_calculated_at=self._clock.now(),
        )
