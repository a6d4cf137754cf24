from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import NewSchedule, Schedule


class ScheduleRepository(Protocol):
    def list_for_user(self, user_id: int, clinic_id: int) -> Sequence[Schedule]:
        """All weekly entries and date overrides of a user within one clinic."""

        raise NotImplementedError

    def list_clinic_defaults(self, clinic_id: int) -> Sequence[Schedule]:
        """Clinic-wide weekly entries (user_id IS NULL)."""

        raise NotImplementedError

    def list_for_clinic(self, clinic_id: int, *, user_id: Optional[int] = None) -> Sequence[Schedule]:
        raise NotImplementedError

    def create(self, new: NewSchedule) -> int:
        """Insert a schedule entry. Returns schedule_id."""

        raise NotImplementedError

    def delete(self, *, schedule_id: int, clinic_id: int) -> bool:
        raise NotImplementedError
