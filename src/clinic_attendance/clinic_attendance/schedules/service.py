from __future__ import annotations

import logging
from datetime import date, time
from typing import Optional, Sequence

from ..common.validators import require_id
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, RecordNotFound, ValidationError
from ..users.repository import UserRepository
from .model import NewSchedule, Schedule
from .repository import ScheduleRepository

logger = logging.getLogger(__name__)


def _check_times(start_time: Optional[time], end_time: Optional[time], is_work_day: bool) -> None:
    if not is_work_day:
        return
    if start_time is None or end_time is None:
        raise ValidationError("start_time and end_time are required for a work day")
    if start_time >= end_time:
        raise ValidationError("start_time must be earlier than end_time")


def _check_window(effective_from: Optional[date], effective_until: Optional[date]) -> None:
    if effective_from and effective_until and effective_from > effective_until:
        raise ValidationError("effective_from must not be after effective_until")


class ScheduleService:
    """Admin-side management of weekly hours and per-date overrides."""

    def __init__(self, schedules: ScheduleRepository, users: UserRepository):
        self._schedules = schedules
        self._users = users

    @staticmethod
    def _require_manager(current_role: Role) -> None:
        if not Role(current_role).can_manage:
            raise AuthorizationError("Only owners and managers can change schedules")

    def _require_member(self, user_id, clinic_id: int) -> int:
        user = self._users.get_by_id(require_id(user_id, "user_id"))
        if not user or not user.belongs_to(clinic_id):
            raise AuthorizationError("User is not an active member of this clinic")
        return user.user_id

    def list(self, *, clinic_id: int, user_id: Optional[int] = None) -> Sequence[Schedule]:
        return self._schedules.list_for_clinic(require_id(clinic_id, "clinic_id"), user_id=user_id)

    def assign_weekly(
        self,
        *,
        current_role: Role,
        clinic_id: int,
        user_id: Optional[int],
        day_of_week: int,
        start_time: Optional[time],
        end_time: Optional[time],
        is_work_day: bool = True,
        effective_from: Optional[date] = None,
        effective_until: Optional[date] = None,
        note: Optional[str] = None,
    ) -> int:
        """Add a weekly entry. ``user_id=None`` sets the clinic default hours."""
        self._require_manager(current_role)
        clinic_id = require_id(clinic_id, "clinic_id")
        if user_id is not None:
            user_id = self._require_member(user_id, clinic_id)
        try:
            day_of_week = int(day_of_week)
        except (TypeError, ValueError):
            raise ValidationError("day_of_week is required")
        if not 0 <= day_of_week <= 6:
            raise ValidationError("day_of_week must be between 0 (Monday) and 6 (Sunday)")
        _check_times(start_time, end_time, is_work_day)
        _check_window(effective_from, effective_until)

        schedule_id = self._schedules.create(
            NewSchedule(
                clinic_id=clinic_id,
                user_id=user_id,
                day_of_week=day_of_week,
                specific_date=None,
                start_time=start_time if is_work_day else None,
                end_time=end_time if is_work_day else None,
                is_work_day=is_work_day,
                effective_from=effective_from,
                effective_until=effective_until,
                note=note.strip() if note else None,
            )
        )
        logger.info(
            "Weekly schedule added: schedule_id=%s clinic_id=%s user_id=%s day=%s",
            schedule_id, clinic_id, user_id, day_of_week,
        )
        return schedule_id

    def assign_override(
        self,
        *,
        current_role: Role,
        clinic_id: int,
        user_id: int,
        specific_date: date,
        start_time: Optional[time],
        end_time: Optional[time],
        is_work_day: bool = True,
        note: Optional[str] = None,
    ) -> int:
        """Pin hours (or a day off) for one user on one date."""
        self._require_manager(current_role)
        clinic_id = require_id(clinic_id, "clinic_id")
        user_id = self._require_member(user_id, clinic_id)
        if specific_date is None:
            raise ValidationError("specific_date is required")
        _check_times(start_time, end_time, is_work_day)

        schedule_id = self._schedules.create(
            NewSchedule(
                clinic_id=clinic_id,
                user_id=user_id,
                day_of_week=None,
                specific_date=specific_date,
                start_time=start_time if is_work_day else None,
                end_time=end_time if is_work_day else None,
                is_work_day=is_work_day,
                note=note.strip() if note else None,
            )
        )
        logger.info(
            "Schedule override added: schedule_id=%s user_id=%s date=%s work_day=%s",
            schedule_id, user_id, specific_date, is_work_day,
        )
        return schedule_id

    def delete(self, *, current_role: Role, clinic_id: int, schedule_id: int) -> None:
        self._require_manager(current_role)
        if not self._schedules.delete(
            schedule_id=require_id(schedule_id, "schedule_id"),
            clinic_id=require_id(clinic_id, "clinic_id"),
        ):
            raise RecordNotFound("Schedule not found")
