from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: a clinic staff member.

    Plain data object; no database access here.
    """

    user_id: int
    clinic_id: int
    full_name: str
    role: Role
    is_active: bool = True
    primary_branch_id: Optional[int] = None

    def belongs_to(self, clinic_id: int) -> bool:
        return self.is_active and self.clinic_id == int(clinic_id)
