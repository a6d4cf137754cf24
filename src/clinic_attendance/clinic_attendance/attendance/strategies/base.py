from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...schedules.model import ScheduledShift


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    late_minutes: int = 0
    early_leave_minutes: int = 0
    overtime_minutes: int = 0


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how we decide an attendance status."""

    @abstractmethod
    def decide_checkin(self, *, check_in_time: datetime, work_date: date, shift: Optional[ScheduledShift]) -> StatusDecision:
        raise NotImplementedError

    @abstractmethod
    def decide_checkout(
        self,
        *,
        check_out_time: datetime,
        work_date: date,
        shift: Optional[ScheduledShift],
        current: AttendanceStatus,
    ) -> StatusDecision:
        raise NotImplementedError


def shift_start(work_date: date, shift: ScheduledShift) -> datetime:
    return datetime.combine(work_date, shift.start_time)


def shift_end(work_date: date, shift: ScheduledShift) -> datetime:
    return datetime.combine(work_date, shift.end_time)
