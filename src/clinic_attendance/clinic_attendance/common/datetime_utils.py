from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date (YYYY-MM-DD): {value!r}")


def parse_clock_time(value: str) -> time:
    """Parse HH:MM or HH:MM:SS into time."""
    v = (value or "").strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(v, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"Invalid time (HH:MM): {value!r}")


def parse_iso_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid datetime: {value!r}")


def whole_minutes(start: datetime, end: datetime) -> int:
    """Floor of (end - start) in minutes; negative when end precedes start."""
    return int((end - start).total_seconds() // 60)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= int(month) <= 12:
        raise ValidationError("Month must be between 1 and 12")
    last_day = monthrange(int(year), int(month))[1]
    return date(int(year), int(month), 1), date(int(year), int(month), last_day)


def iter_days(start: date, end: date) -> Iterator[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


class Clock(Protocol):
    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        raise NotImplementedError


class SystemClock:
    """Wall clock in the clinic's local time.

    Returns naive datetimes (local wall time), which is how work dates and
    scheduled shift times are stored.
    """

    def __init__(self, tz_name: Optional[str] = None):
        self._tz: Optional[ZoneInfo] = None
        if tz_name:
            try:
                self._tz = ZoneInfo(tz_name)
            except ZoneInfoNotFoundError:
                raise ValidationError(f"Unknown timezone: {tz_name}")

    def now(self) -> datetime:
        if self._tz is None:
            return datetime.now()
        return datetime.now(self._tz).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()


@dataclass
class FixedClock:
    """Clock pinned to a given instant (tests, back-fills)."""

    current: datetime

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)
