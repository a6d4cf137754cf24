from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, normalize_mysql_time
from .model import NewSchedule, Schedule
from .repository import ScheduleRepository

_COLUMNS = """
    schedule_id, clinic_id, user_id, day_of_week, specific_date, start_time, end_time,
    is_work_day, effective_from, effective_until, note
"""


def _row_to_schedule(r: dict) -> Schedule:
    return Schedule(
        schedule_id=int(r["schedule_id"]),
        clinic_id=int(r["clinic_id"]),
        user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
        day_of_week=int(r["day_of_week"]) if r.get("day_of_week") is not None else None,
        specific_date=r.get("specific_date"),
        start_time=normalize_mysql_time(r.get("start_time")),
        end_time=normalize_mysql_time(r.get("end_time")),
        is_work_day=bool(r.get("is_work_day", 1)),
        effective_from=r.get("effective_from"),
        effective_until=r.get("effective_until"),
        note=r.get("note"),
    )


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_user(self, user_id: int, clinic_id: int) -> Sequence[Schedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM work_schedules WHERE user_id=%s AND clinic_id=%s ORDER BY schedule_id",
                (int(user_id), int(clinic_id)),
            )
            return [_row_to_schedule(r) for r in fetchall(cur)]

    def list_clinic_defaults(self, clinic_id: int) -> Sequence[Schedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM work_schedules
                WHERE clinic_id=%s AND user_id IS NULL AND day_of_week IS NOT NULL
                ORDER BY schedule_id
                """,
                (int(clinic_id),),
            )
            return [_row_to_schedule(r) for r in fetchall(cur)]

    def list_for_clinic(self, clinic_id: int, *, user_id: Optional[int] = None) -> Sequence[Schedule]:
        clauses = ["clinic_id=%s"]
        params: list[object] = [int(clinic_id)]
        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))
        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM work_schedules
                WHERE {where}
                ORDER BY user_id, specific_date, day_of_week
                """,
                tuple(params),
            )
            return [_row_to_schedule(r) for r in fetchall(cur)]

    def create(self, new: NewSchedule) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO work_schedules(
                    clinic_id, user_id, day_of_week, specific_date, start_time, end_time,
                    is_work_day, effective_from, effective_until, note
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    new.clinic_id,
                    new.user_id,
                    new.day_of_week,
                    new.specific_date,
                    new.start_time,
                    new.end_time,
                    1 if new.is_work_day else 0,
                    new.effective_from,
                    new.effective_until,
                    new.note,
                ),
            )
            return int(cur.lastrowid)

    def delete(self, *, schedule_id: int, clinic_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM work_schedules WHERE schedule_id=%s AND clinic_id=%s",
                (int(schedule_id), int(clinic_id)),
            )
            return cur.rowcount > 0
