from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class MonthlyStatistics:
    """Derived monthly summary per (user_id, year, month). Recomputed wholesale."""

    user_id: int
    clinic_id: Optional[int]
    year: int
    month: int
    total_work_days: int
    present_days: int
    absent_days: int
    leave_days: int
    holiday_days: int
    late_count: int
    total_late_minutes: int
    avg_late_minutes: float
    early_leave_count: int
    total_early_leave_minutes: int
    avg_early_leave_minutes: float
    overtime_count: int
    total_overtime_minutes: int
    avg_overtime_minutes: float
    total_work_minutes: int
    avg_work_minutes_per_day: float
    attendance_rate: float
    last_calculated_at: datetime

    def to_dict(self) -> dict:
        data = asdict(self)
        data["last_calculated_at"] = self.last_calculated_at.isoformat()
        return data
