from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ...common.datetime_utils import whole_minutes
from ...core.enums import AttendanceStatus
from ...schedules.model import ScheduledShift
from .base import AttendanceStrategy, StatusDecision, shift_start


class LateStrategy(AttendanceStrategy):
    """Late check-in; minutes counted from the scheduled start."""

    def decide_checkin(self, *, check_in_time: datetime, work_date: date, shift: Optional[ScheduledShift]) -> StatusDecision:
        late = whole_minutes(shift_start(work_date, shift), check_in_time) if shift else 0
        return StatusDecision(status=AttendanceStatus.LATE, late_minutes=max(0, late))

    def decide_checkout(
        self,
        *,
        check_out_time: datetime,
        work_date: date,
        shift: Optional[ScheduledShift],
        current: AttendanceStatus,
    ) -> StatusDecision:
        return StatusDecision(status=current)
