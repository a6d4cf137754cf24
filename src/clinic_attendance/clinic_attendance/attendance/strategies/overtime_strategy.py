from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ...common.datetime_utils import whole_minutes
from ...core.enums import AttendanceStatus
from ...schedules.model import ScheduledShift
from .base import AttendanceStrategy, StatusDecision, shift_end


class OvertimeStrategy(AttendanceStrategy):
    """Check-out after the scheduled end. Status is left as it was at check-in."""

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
        extra = whole_minutes(shift_end(work_date, shift), check_out_time) if shift else 0
        return StatusDecision(status=current, overtime_minutes=max(0, extra))
