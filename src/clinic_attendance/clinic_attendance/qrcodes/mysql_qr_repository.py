from __future__ import annotations

from datetime import date
from typing import Optional

from ..core.enums import RefreshPeriod
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, optional_float
from .model import NewQRCode, QRCode
from .repository import QRCodeRepository

_COLUMNS = """
    qr_id, clinic_id, branch_id, code, anchor_latitude, anchor_longitude, radius_meters,
    refresh_period, valid_date, valid_until, created_at, is_active
"""

# <=> matches NULL to NULL, so a clinic-wide code (branch_id NULL) is its own scope.
_SCOPE = "clinic_id=%s AND branch_id <=> %s"


def _row_to_qr(r: dict) -> QRCode:
    return QRCode(
        qr_id=int(r["qr_id"]),
        clinic_id=int(r["clinic_id"]),
        branch_id=int(r["branch_id"]) if r.get("branch_id") is not None else None,
        code=r["code"],
        anchor_latitude=optional_float(r.get("anchor_latitude")),
        anchor_longitude=optional_float(r.get("anchor_longitude")),
        radius_meters=int(r["radius_meters"]),
        refresh_period=RefreshPeriod(r["refresh_period"]),
        valid_date=r["valid_date"],
        valid_until=r["valid_until"],
        created_at=r["created_at"],
        active=bool(r["is_active"]),
    )


class MySQLQRCodeRepository(QRCodeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_active_for_clinic(self, clinic_id: int, on_date: date, branch_id: Optional[int] = None) -> Optional[QRCode]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_qr_codes
                WHERE {_SCOPE} AND is_active=1 AND valid_date <= %s AND valid_until >= %s
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (int(clinic_id), branch_id, on_date, on_date),
            )
            r = fetchone(cur)
            return _row_to_qr(r) if r else None

    def find_active_by_code(self, clinic_id: int, code: str, on_date: date) -> Optional[QRCode]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_qr_codes
                WHERE clinic_id=%s AND code=%s AND is_active=1 AND valid_date <= %s AND valid_until >= %s
                """,
                (int(clinic_id), code, on_date, on_date),
            )
            r = fetchone(cur)
            return _row_to_qr(r) if r else None

    def _insert(self, cur, new: NewQRCode) -> QRCode:
        cur.execute(
            """
            INSERT INTO attendance_qr_codes(
                clinic_id, branch_id, code, anchor_latitude, anchor_longitude, radius_meters,
                refresh_period, valid_date, valid_until, created_at, is_active
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
            """,
            (
                new.clinic_id,
                new.branch_id,
                new.code,
                new.anchor.latitude if new.anchor else None,
                new.anchor.longitude if new.anchor else None,
                new.radius_meters,
                new.refresh_period.value,
                new.valid_date,
                new.valid_until,
                new.created_at,
            ),
        )
        return QRCode(
            qr_id=int(cur.lastrowid),
            clinic_id=new.clinic_id,
            branch_id=new.branch_id,
            code=new.code,
            anchor_latitude=new.anchor.latitude if new.anchor else None,
            anchor_longitude=new.anchor.longitude if new.anchor else None,
            radius_meters=new.radius_meters,
            refresh_period=new.refresh_period,
            valid_date=new.valid_date,
            valid_until=new.valid_until,
            created_at=new.created_at,
            active=True,
        )

    def create(self, new: NewQRCode) -> QRCode:
        with db_cursor(self._conn_factory) as (_, cur):
            # Expired codes still hold the one-active slot; release them first.
            cur.execute(
                f"UPDATE attendance_qr_codes SET is_active=0 WHERE {_SCOPE} AND is_active=1 AND valid_until < %s",
                (new.clinic_id, new.branch_id, new.valid_date),
            )
            return self._insert(cur, new)

    def replace_active(self, new: NewQRCode) -> QRCode:
        # Both statements run in one transaction (db_cursor commits at exit).
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT qr_id FROM attendance_qr_codes WHERE {_SCOPE} AND is_active=1 FOR UPDATE",
                (new.clinic_id, new.branch_id),
            )
            cur.fetchall()
            cur.execute(
                f"UPDATE attendance_qr_codes SET is_active=0 WHERE {_SCOPE} AND is_active=1",
                (new.clinic_id, new.branch_id),
            )
            return self._insert(cur, new)
