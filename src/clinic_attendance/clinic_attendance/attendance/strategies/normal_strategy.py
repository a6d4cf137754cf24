from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...schedules.model import ScheduledShift
from .base import AttendanceStrategy, StatusDecision


class NormalStrategy(AttendanceStrategy):
    """On-time check-in, check-out at or after the end of the shift."""

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
        return StatusDecision(status=current)
