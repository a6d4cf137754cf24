from datetime import date, time

import pytest

from clinic_attendance.core.enums import Role
from clinic_attendance.core.exceptions import AuthorizationError, RecordNotFound, ValidationError
from clinic_attendance.schedules.model import NewSchedule
from clinic_attendance.schedules.resolver import ScheduleResolver
from conftest import CLINIC_ID, INACTIVE_ID, OTHER_CLINIC_ID, OUTSIDER_ID, STAFF_ID

MONDAY = date(2024, 3, 4)
TUESDAY = date(2024, 3, 5)
SATURDAY = date(2024, 3, 9)


def test_weekly_entry_resolves(world):
    world.add_weekly(0, time(9, 0), time(18, 0))

    shift = world.container.schedule_resolver.resolve(STAFF_ID, MONDAY, CLINIC_ID)

    assert (shift.start_time, shift.end_time, shift.source) == (time(9, 0), time(18, 0), "weekly")
    assert world.container.schedule_resolver.resolve(STAFF_ID, TUESDAY, CLINIC_ID) is None


def test_override_beats_weekly(world):
    world.add_weekly(0, time(9, 0), time(18, 0))
    world.add_override(MONDAY, time(13, 0), time(20, 0))

    shift = world.container.schedule_resolver.resolve(STAFF_ID, MONDAY, CLINIC_ID)

    assert shift.start_time == time(13, 0)
    assert shift.source == "override"


def test_day_off_override_clears_shift(world):
    world.add_weekly(0, time(9, 0), time(18, 0))
    world.add_override(MONDAY)

    assert world.container.schedule_resolver.resolve(STAFF_ID, MONDAY, CLINIC_ID) is None


def test_clinic_default_used_when_user_has_no_entry(world):
    world.add_weekly(5, time(9, 0), time(13, 0), user_id=None)

    shift = world.container.schedule_resolver.resolve(STAFF_ID, SATURDAY, CLINIC_ID)

    assert shift.source == "clinic_default"
    assert shift.end_time == time(13, 0)


def test_user_weekly_day_off_beats_clinic_default(world):
    world.add_weekly(5, time(9, 0), time(13, 0), user_id=None)
    world.add_weekly(5, None, None, is_work_day=False)

    assert world.container.schedule_resolver.resolve(STAFF_ID, SATURDAY, CLINIC_ID) is None


def test_clinic_default_can_be_disabled(world):
    world.add_weekly(5, time(9, 0), time(13, 0), user_id=None)
    resolver = ScheduleResolver(world.schedules, use_clinic_default=False)

    assert resolver.resolve(STAFF_ID, SATURDAY, CLINIC_ID) is None


def test_latest_effective_entry_wins(world):
    world.add_weekly(0, time(9, 0), time(18, 0), effective_from=date(2024, 1, 1))
    world.add_weekly(0, time(10, 0), time(19, 0), effective_from=date(2024, 3, 1))
    world.add_weekly(0, time(7, 0), time(15, 0), effective_from=date(2024, 4, 1))

    shift = world.container.schedule_resolver.resolve(STAFF_ID, MONDAY, CLINIC_ID)

    assert shift.start_time == time(10, 0)


def test_expired_entry_ignored(world):
    world.add_weekly(0, time(9, 0), time(18, 0), effective_until=date(2024, 2, 29))

    assert world.container.schedule_resolver.resolve(STAFF_ID, MONDAY, CLINIC_ID) is None


def test_resolve_range_covers_every_day(world):
    world.add_weekly(0, time(9, 0), time(18, 0))

    shifts = world.container.schedule_resolver.resolve_range(STAFF_ID, MONDAY, date(2024, 3, 10), CLINIC_ID)

    assert len(shifts) == 7
    assert [d for d, s in shifts.items() if s is not None] == [MONDAY]


def test_assign_weekly_and_override(world):
    service = world.container.schedule_service

    weekly_id = service.assign_weekly(
        current_role=Role.MANAGER,
        clinic_id=CLINIC_ID,
        user_id=STAFF_ID,
        day_of_week=1,
        start_time=time(9, 0),
        end_time=time(18, 0),
        note="  front desk ",
    )
    override_id = service.assign_override(
        current_role=Role.OWNER,
        clinic_id=CLINIC_ID,
        user_id=STAFF_ID,
        specific_date=TUESDAY,
        start_time=time(9, 0),
        end_time=time(18, 0),
        is_work_day=False,
    )

    rows = {s.schedule_id: s for s in service.list(clinic_id=CLINIC_ID, user_id=STAFF_ID)}
    assert rows[weekly_id].note == "front desk"
    assert rows[weekly_id].to_dict()["day_name"] == "tuesday"
    assert rows[override_id].start_time is None
    assert world.container.schedule_resolver.resolve(STAFF_ID, TUESDAY, CLINIC_ID) is None


def test_staff_cannot_change_schedules(world):
    with pytest.raises(AuthorizationError):
        world.container.schedule_service.assign_weekly(
            current_role=Role.STAFF,
            clinic_id=CLINIC_ID,
            user_id=STAFF_ID,
            day_of_week=0,
            start_time=time(9, 0),
            end_time=time(18, 0),
        )


@pytest.mark.parametrize(
    "kwargs",
    [
        {"day_of_week": 7, "start_time": time(9, 0), "end_time": time(18, 0)},
        {"day_of_week": 0, "start_time": time(18, 0), "end_time": time(9, 0)},
        {"day_of_week": 0, "start_time": None, "end_time": time(9, 0)},
        {
            "day_of_week": 0,
            "start_time": time(9, 0),
            "end_time": time(18, 0),
            "effective_from": date(2024, 5, 1),
            "effective_until": date(2024, 4, 1),
        },
    ],
)
def test_assign_weekly_validation(world, kwargs):
    with pytest.raises(ValidationError):
        world.container.schedule_service.assign_weekly(
            current_role=Role.MANAGER, clinic_id=CLINIC_ID, user_id=STAFF_ID, **kwargs
        )


def test_delete_schedule(world):
    schedule_id = world.add_weekly(0, time(9, 0), time(18, 0))
    service = world.container.schedule_service

    service.delete(current_role=Role.MANAGER, clinic_id=CLINIC_ID, schedule_id=schedule_id)

    assert world.schedules.rows == []
    with pytest.raises(RecordNotFound):
        service.delete(current_role=Role.MANAGER, clinic_id=CLINIC_ID, schedule_id=schedule_id)


def test_entries_of_another_clinic_are_ignored(world):
    world.schedules.create(
        NewSchedule(
            clinic_id=OTHER_CLINIC_ID,
            user_id=STAFF_ID,
            day_of_week=None,
            specific_date=MONDAY,
            start_time=time(6, 0),
            end_time=time(12, 0),
        )
    )
    world.add_weekly(0, time(9, 0), time(18, 0))

    shift = world.container.schedule_resolver.resolve(STAFF_ID, MONDAY, CLINIC_ID)

    assert (shift.start_time, shift.source) == (time(9, 0), "weekly")
    assert world.container.schedule_resolver.resolve(STAFF_ID, MONDAY, OTHER_CLINIC_ID).start_time == time(6, 0)


@pytest.mark.parametrize("user_id", [OUTSIDER_ID, INACTIVE_ID, 99])
def test_schedules_only_for_clinic_members(world, user_id):
    service = world.container.schedule_service

    with pytest.raises(AuthorizationError):
        service.assign_override(
            current_role=Role.MANAGER,
            clinic_id=CLINIC_ID,
            user_id=user_id,
            specific_date=MONDAY,
            start_time=time(9, 0),
            end_time=time(18, 0),
        )
    with pytest.raises(AuthorizationError):
        service.assign_weekly(
            current_role=Role.MANAGER,
            clinic_id=CLINIC_ID,
            user_id=user_id,
            day_of_week=0,
            start_time=time(9, 0),
            end_time=time(18, 0),
        )
    assert world.schedules.rows == []
