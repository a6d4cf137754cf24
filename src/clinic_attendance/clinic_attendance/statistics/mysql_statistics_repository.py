from __future__ import annotations

from dataclasses import fields
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import MonthlyStatistics
from .repository import StatisticsRepository

_FIELDS = [f.name for f in fields(MonthlyStatistics)]
_FLOAT_FIELDS = {
    "avg_late_minutes",
    "avg_early_leave_minutes",
    "avg_overtime_minutes",
    "avg_work_minutes_per_day",
    "attendance_rate",
}


def _row_to_stats(r: dict) -> MonthlyStatistics:
    values = {}
    for name in _FIELDS:
        value = r.get(name)
        if name in _FLOAT_FIELDS:
            value = float(value or 0)
        elif name == "clinic_id":
            value = int(value) if value is not None else None
        elif name != "last_calculated_at":
            value = int(value or 0)
        values[name] = value
    return MonthlyStatistics(**values)


class MySQLStatisticsRepository(StatisticsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, user_id: int, year: int, month: int) -> Optional[MonthlyStatistics]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {", ".join(_FIELDS)}
                FROM attendance_statistics
                WHERE user_id=%s AND year=%s AND month=%s
                """,
                (int(user_id), int(year), int(month)),
            )
            r = fetchone(cur)
            return _row_to_stats(r) if r else None

    def replace(self, stats: MonthlyStatistics) -> None:
        placeholders = ",".join(["%s"] * len(_FIELDS))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"REPLACE INTO attendance_statistics({', '.join(_FIELDS)}) VALUES({placeholders})",
                tuple(getattr(stats, name) for name in _FIELDS),
            )
