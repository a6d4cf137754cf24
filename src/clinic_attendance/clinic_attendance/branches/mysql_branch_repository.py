from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, optional_float
from .model import Branch, NewBranch
from .repository import BranchRepository

_COLUMNS = """
    branch_id, clinic_id, branch_name, address, latitude, longitude,
    attendance_radius_meters, is_active, display_order
"""


def _row_to_branch(r: dict) -> Branch:
    return Branch(
        branch_id=int(r["branch_id"]),
        clinic_id=int(r["clinic_id"]),
        branch_name=r["branch_name"],
        address=r.get("address"),
        latitude=optional_float(r.get("latitude")),
        longitude=optional_float(r.get("longitude")),
        attendance_radius_meters=int(r["attendance_radius_meters"]),
        is_active=bool(r.get("is_active", 1)),
        display_order=int(r.get("display_order") or 0),
    )


class MySQLBranchRepository(BranchRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, branch_id: int) -> Optional[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM clinic_branches WHERE branch_id=%s", (int(branch_id),))
            r = fetchone(cur)
            return _row_to_branch(r) if r else None

    def list_active_for_clinic(self, clinic_id: int) -> Sequence[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM clinic_branches
                WHERE clinic_id=%s AND is_active=1
                ORDER BY display_order, branch_id
                """,
                (int(clinic_id),),
            )
            return [_row_to_branch(r) for r in fetchall(cur)]

    def create(self, new: NewBranch) -> Branch:
        latitude = new.location.latitude if new.location else None
        longitude = new.location.longitude if new.location else None
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO clinic_branches(
                    clinic_id, branch_name, address, latitude, longitude,
                    attendance_radius_meters, is_active, display_order
                )
                VALUES(%s,%s,%s,%s,%s,%s,1,%s)
                """,
                (
                    new.clinic_id,
                    new.branch_name,
                    new.address,
                    latitude,
                    longitude,
                    new.attendance_radius_meters,
                    new.display_order,
                ),
            )
            branch_id = int(cur.lastrowid)

        return Branch(
            branch_id=branch_id,
            clinic_id=new.clinic_id,
            branch_name=new.branch_name,
            address=new.address,
            latitude=latitude,
            longitude=longitude,
            attendance_radius_meters=new.attendance_radius_meters,
            display_order=new.display_order,
        )
