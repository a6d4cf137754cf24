from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import whole_minutes
from ..schedules.model import ScheduledShift
from .strategies.base import AttendanceStrategy, shift_end, shift_start
from .strategies.early_strategy import EarlyLeaveStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy
from .strategies.overtime_strategy import OvertimeStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules.

    Minutes are whole minutes (floored), so an arrival 30 seconds after the
    start is still on time.
    """

    grace_minutes: int = 0

    def for_checkin(self, *, check_in_time: datetime, work_date: date, shift: Optional[ScheduledShift]) -> AttendanceStrategy:
        if not shift:
            return NormalStrategy()

        late = whole_minutes(shift_start(work_date, shift), check_in_time)
        if late > max(0, int(self.grace_minutes)):
            return LateStrategy()
        return NormalStrategy()

    def for_checkout(self, *, check_out_time: datetime, work_date: date, shift: Optional[ScheduledShift]) -> AttendanceStrategy:
        if not shift:
            return NormalStrategy()

        end = shift_end(work_date, shift)
        if whole_minutes(check_out_time, end) > 0:
            return EarlyLeaveStrategy()
        if whole_minutes(end, check_out_time) > 0:
            return OvertimeStrategy()
        return NormalStrategy()
