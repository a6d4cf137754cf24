from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import User
from .repository import UserRepository


def _row_to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        clinic_id=int(row["clinic_id"]),
        full_name=row["full_name"],
        role=Role(row["role"]),
        is_active=bool(row.get("is_active", True)),
        primary_branch_id=int(row["primary_branch_id"]) if row.get("primary_branch_id") is not None else None,
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id, clinic_id, full_name, role, is_active, primary_branch_id
                FROM users
                WHERE user_id=%s
                """,
                (int(user_id),),
            )
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def list_active_for_clinic(self, clinic_id: int) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id, clinic_id, full_name, role, is_active, primary_branch_id
                FROM users
                WHERE clinic_id=%s AND is_active=1
                ORDER BY full_name
                """,
                (int(clinic_id),),
            )
            return [_row_to_user(r) for r in fetchall(cur)]
