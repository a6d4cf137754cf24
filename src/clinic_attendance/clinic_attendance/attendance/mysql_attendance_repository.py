from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence, Tuple

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time, optional_float
from .model import AttendanceRecord, CheckOutUpdate, NewCheckIn, RecordFilter
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, user_id, clinic_id, branch_id, work_date, check_in_time, check_out_time,
    scheduled_start, scheduled_end, status, late_minutes, early_leave_minutes,
    overtime_minutes, total_work_minutes,
    check_in_latitude, check_in_longitude, check_in_device_info,
    check_out_latitude, check_out_longitude, check_out_device_info,
    notes, is_manually_edited, edited_by, edited_at
"""


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        clinic_id=int(r["clinic_id"]),
        branch_id=int(r["branch_id"]) if r.get("branch_id") is not None else None,
        work_date=r["work_date"],
        check_in_time=r.get("check_in_time"),
        check_out_time=r.get("check_out_time"),
        status=AttendanceStatus(r["status"]),
        scheduled_start=normalize_mysql_time(r.get("scheduled_start")),
        scheduled_end=normalize_mysql_time(r.get("scheduled_end")),
        late_minutes=int(r.get("late_minutes") or 0),
        early_leave_minutes=int(r.get("early_leave_minutes") or 0),
        overtime_minutes=int(r.get("overtime_minutes") or 0),
        total_work_minutes=int(r.get("total_work_minutes") or 0),
        check_in_latitude=optional_float(r.get("check_in_latitude")),
        check_in_longitude=optional_float(r.get("check_in_longitude")),
        check_in_device_info=r.get("check_in_device_info"),
        check_out_latitude=optional_float(r.get("check_out_latitude")),
        check_out_longitude=optional_float(r.get("check_out_longitude")),
        check_out_device_info=r.get("check_out_device_info"),
        notes=r.get("notes"),
        is_manually_edited=bool(r.get("is_manually_edited") or 0),
        edited_by=int(r["edited_by"]) if r.get("edited_by") is not None else None,
        edited_at=r.get("edited_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s",
                (int(attendance_id),),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE user_id=%s AND work_date=%s",
                (int(user_id), work_date),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def create_checkin(self, new: NewCheckIn) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    user_id, clinic_id, work_date, check_in_time, scheduled_start, scheduled_end,
                    status, late_minutes, check_in_latitude, check_in_longitude, check_in_device_info, branch_id
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    new.user_id,
                    new.clinic_id,
                    new.work_date,
                    new.check_in_time,
                    new.scheduled_start,
                    new.scheduled_end,
                    new.status.value,
                    new.late_minutes,
                    new.latitude,
                    new.longitude,
                    new.device_info,
                    new.branch_id,
                ),
            )
            attendance_id = int(cur.lastrowid)

        return AttendanceRecord(
            attendance_id=attendance_id,
            user_id=new.user_id,
            clinic_id=new.clinic_id,
            branch_id=new.branch_id,
            work_date=new.work_date,
            check_in_time=new.check_in_time,
            check_out_time=None,
            status=new.status,
            scheduled_start=new.scheduled_start,
            scheduled_end=new.scheduled_end,
            late_minutes=new.late_minutes,
            check_in_latitude=new.latitude,
            check_in_longitude=new.longitude,
            check_in_device_info=new.device_info,
        )

    def record_checkin_on_existing(self, attendance_id: int, new: NewCheckIn) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_in_time=%s, scheduled_start=%s, scheduled_end=%s, status=%s, late_minutes=%s,
                    check_in_latitude=%s, check_in_longitude=%s, check_in_device_info=%s, branch_id=%s
                WHERE attendance_id=%s AND check_in_time IS NULL
                """,
                (
                    new.check_in_time,
                    new.scheduled_start,
                    new.scheduled_end,
                    new.status.value,
                    new.late_minutes,
                    new.latitude,
                    new.longitude,
                    new.device_info,
                    new.branch_id,
                    int(attendance_id),
                ),
            )
            return cur.rowcount > 0

    def update_checkout(self, update: CheckOutUpdate) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_out_time=%s, status=%s, early_leave_minutes=%s, overtime_minutes=%s,
                    total_work_minutes=%s, check_out_latitude=%s, check_out_longitude=%s,
                    check_out_device_info=%s
                WHERE attendance_id=%s AND check_out_time IS NULL
                """,
                (
                    update.check_out_time,
                    update.status.value,
                    update.early_leave_minutes,
                    update.overtime_minutes,
                    update.total_work_minutes,
                    update.latitude,
                    update.longitude,
                    update.device_info,
                    int(update.attendance_id),
                ),
            )
            return cur.rowcount > 0

    def list_records(self, filters: RecordFilter) -> Tuple[Sequence[AttendanceRecord], int]:
        clauses = ["1=1"]
        params: list[object] = []

        if filters.clinic_id is not None:
            clauses.append("clinic_id=%s")
            params.append(int(filters.clinic_id))
        if filters.branch_id is not None:
            clauses.append("branch_id=%s")
            params.append(int(filters.branch_id))
        if filters.user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(filters.user_id))
        if filters.status is not None:
            clauses.append("status=%s")
            params.append(filters.status.value)
        if filters.start_date is not None:
            clauses.append("work_date >= %s")
            params.append(filters.start_date)
        if filters.end_date is not None:
            clauses.append("work_date <= %s")
            params.append(filters.end_date)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS cnt FROM attendance_records WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("cnt") or 0)

            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_records
                WHERE {where}
                ORDER BY work_date DESC, attendance_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params) + (int(filters.page_size), int(filters.offset)),
            )
            return [_row_to_record(r) for r in fetchall(cur)], total

    def list_for_clinic_date(self, clinic_id: int, work_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE clinic_id=%s AND work_date=%s",
                (int(clinic_id), work_date),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_for_user_range(self, user_id: int, start: date, end: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_records
                WHERE user_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date
                """,
                (int(user_id), start, end),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def admin_update(
        self,
        *,
        attendance_id: int,
        check_in_time: Optional[datetime],
        check_out_time: Optional[datetime],
        status: AttendanceStatus,
        late_minutes: int,
        early_leave_minutes: int,
        overtime_minutes: int,
        total_work_minutes: int,
        notes: Optional[str],
        edited_by: int,
        edited_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_in_time=%s, check_out_time=%s, status=%s, late_minutes=%s,
                    early_leave_minutes=%s, overtime_minutes=%s, total_work_minutes=%s,
                    notes=%s, is_manually_edited=1, edited_by=%s, edited_at=%s
                WHERE attendance_id=%s
                """,
                (
                    check_in_time,
                    check_out_time,
                    status.value,
                    late_minutes,
                    early_leave_minutes,
                    overtime_minutes,
                    total_work_minutes,
                    notes,
                    int(edited_by),
                    edited_at,
                    int(attendance_id),
                ),
            )
            return cur.rowcount > 0
