from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ...common.datetime_utils import whole_minutes
from ...core.enums import AttendanceStatus
from ...schedules.model import ScheduledShift
from .base import AttendanceStrategy, StatusDecision, shift_end


class EarlyLeaveStrategy(AttendanceStrategy):
    """Check-out before the scheduled end. Overrides a late check-in."""

    def decide_checkin(self, *, check_in_time: datetime, work_date: date, shift: Optional[ScheduledShift]) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)

    def decide_checkout(
        self,
        *,
        check_out_time: datetime,
        work_date: date,
        shift: Optional[ScheduledShift],
        current: AttendanceStatus,
    ) -> StatusDecision:
        early = whole_minutes(check_out_time, shift_end(work_date, shift)) if shift else 0
        return StatusDecision(status=AttendanceStatus.EARLY_LEAVE, early_leave_minutes=max(0, early))
