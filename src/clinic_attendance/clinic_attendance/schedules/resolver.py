from __future__ import annotations

from datetime import date
from typing import Dict, Optional, Sequence

from ..common.datetime_utils import iter_days
from .model import Schedule, ScheduledShift
from .repository import ScheduleRepository


def _as_shift(entry: Schedule, source: str) -> Optional[ScheduledShift]:
    if not entry.is_work_day or entry.start_time is None or entry.end_time is None:
        return None
    return ScheduledShift(start_time=entry.start_time, end_time=entry.end_time, source=source)


def _weekly_for(entries: Sequence[Schedule], day: date) -> Optional[Schedule]:
    candidates = [
        e for e in entries
        if not e.is_override and e.day_of_week == day.weekday() and e.effective_on(day)
    ]
    if not candidates:
        return None
    # Most recently effective entry wins when windows overlap.
    return max(candidates, key=lambda e: (e.effective_from or date.min, e.schedule_id))


def pick_shift(
    user_entries: Sequence[Schedule],
    clinic_defaults: Sequence[Schedule],
    day: date,
) -> Optional[ScheduledShift]:
    """Resolve the shift for ``day`` from already-loaded entries.

    Order: date override, user's weekly entry, clinic default hours. An entry
    marked as a day off stops the lookup and yields None.
    """
    overrides = [e for e in user_entries if e.specific_date == day]
    if overrides:
        return _as_shift(max(overrides, key=lambda e: e.schedule_id), "override")

    weekly = _weekly_for(user_entries, day)
    if weekly is not None:
        return _as_shift(weekly, "weekly")

    default = _weekly_for(clinic_defaults, day)
    if default is not None:
        return _as_shift(default, "clinic_default")

    return None


class ScheduleResolver:
    """Resolve a user's expected shift for a date. Read-only."""

    def __init__(self, schedules: ScheduleRepository, *, use_clinic_default: bool = True):
        self._schedules = schedules
        self._use_clinic_default = use_clinic_default

    def _clinic_defaults(self, clinic_id: int) -> Sequence[Schedule]:
        if not self._use_clinic_default:
            return ()
        return self._schedules.list_clinic_defaults(clinic_id)

    def resolve(self, user_id: int, work_date: date, clinic_id: int) -> Optional[ScheduledShift]:
        """Shift of ``user_id`` in ``clinic_id``; entries written under another clinic never apply."""
        return pick_shift(self._schedules.list_for_user(user_id, clinic_id), self._clinic_defaults(clinic_id), work_date)

    def resolve_range(
        self,
        user_id: int,
        start: date,
        end: date,
        clinic_id: int,
    ) -> Dict[date, Optional[ScheduledShift]]:
        """Resolve every day of [start, end] with a single load of schedule data."""
        entries = self._schedules.list_for_user(user_id, clinic_id)
        defaults = self._clinic_defaults(clinic_id)
        return {day: pick_shift(entries, defaults, day) for day in iter_days(start, end)}
