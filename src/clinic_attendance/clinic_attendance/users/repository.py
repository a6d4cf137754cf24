from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import User


class UserRepository(Protocol):
    """Read-only view of clinic staff. Account management lives elsewhere."""

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def list_active_for_clinic(self, clinic_id: int) -> Sequence[User]:
        raise NotImplementedError
