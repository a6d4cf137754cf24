from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Optional

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class Schedule:
    """Domain entity: an expected working slot.

    Exactly one of ``day_of_week`` (0=Monday .. 6=Sunday, as ``date.weekday()``)
    or ``specific_date`` is set. ``user_id`` is None for clinic-wide default hours.
    """

    schedule_id: int
    clinic_id: int
    user_id: Optional[int]
    day_of_week: Optional[int]
    specific_date: Optional[date]
    start_time: Optional[time]
    end_time: Optional[time]
    is_work_day: bool = True
    effective_from: Optional[date] = None
    effective_until: Optional[date] = None
    note: Optional[str] = None

    @property
    def is_override(self) -> bool:
        return self.specific_date is not None

    def effective_on(self, day: date) -> bool:
        if self.effective_from and day < self.effective_from:
            return False
        if self.effective_until and day > self.effective_until:
            return False
        return True

    def to_dict(self) -> dict:
        return {
            "id": self.schedule_id,
            "clinic_id": self.clinic_id,
            "user_id": self.user_id,
            "day_of_week": self.day_of_week,
            "day_name": WEEKDAY_NAMES[self.day_of_week] if self.day_of_week is not None else None,
            "specific_date": self.specific_date.isoformat() if self.specific_date else None,
            "start_time": self.start_time.strftime("%H:%M:%S") if self.start_time else None,
            "end_time": self.end_time.strftime("%H:%M:%S") if self.end_time else None,
            "is_work_day": self.is_work_day,
            "effective_from": self.effective_from.isoformat() if self.effective_from else None,
            "effective_until": self.effective_until.isoformat() if self.effective_until else None,
            "note": self.note or "",
        }


@dataclass(frozen=True)
class ScheduledShift:
    """Expected start/end for one user on one date."""

    start_time: time
    end_time: time
    source: str = "weekly"


@dataclass(frozen=True)
class NewSchedule:
    clinic_id: int
    user_id: Optional[int]
    day_of_week: Optional[int]
    specific_date: Optional[date]
    start_time: Optional[time]
    end_time: Optional[time]
    is_work_day: bool = True
    effective_from: Optional[date] = None
    effective_until: Optional[date] = None
    note: Optional[str] = None
