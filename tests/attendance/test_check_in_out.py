from dataclasses import replace
from datetime import date, datetime, time

import pytest

from clinic_attendance.container import wire_container
from clinic_attendance.core.enums import AttendancePhase, AttendanceStatus, ErrorKind
from clinic_attendance.core.exceptions import AlreadyCheckedIn
from clinic_attendance.geofence.location import LocationOutcome
from clinic_attendance.geofence.model import GeoPoint
from conftest import (
    ANCHOR,
    CLINIC_ID,
    INACTIVE_ID,
    MANAGER_ID,
    OTHER_CLINIC_ID,
    OUTSIDER_ID,
    STAFF_ID,
    north_of,
)

MONDAY = date(2024, 3, 4)
AT_CLINIC = LocationOutcome.of(GeoPoint(*north_of(*ANCHOR, 20)))
FAR_AWAY = GeoPoint(*north_of(*ANCHOR, 150))


@pytest.fixture
def shift_world(world):
    world.add_weekly(0, time(9, 0), time(18, 0))
    return world


def test_late_check_in_then_early_leave(shift_world, clock):
    w = shift_world
    qr = w.issue_qr()

    checked_in = w.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC, device_info="iPhone")

    assert checked_in.success
    assert checked_in.message == "Checked in successfully"
    assert checked_in.details["location_verified"] is True
    record = checked_in.data
    assert record.status == AttendanceStatus.LATE
    assert record.late_minutes == 15
    assert (record.scheduled_start, record.scheduled_end) == (time(9, 0), time(18, 0))
    assert record.check_in_device_info == "iPhone"
    assert record.phase == AttendancePhase.CHECKED_IN

    clock.current = datetime(2024, 3, 4, 17, 30)
    checked_out = w.ops.check_out(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC)

    assert checked_out.success
    record = checked_out.data
    assert record.status == AttendanceStatus.EARLY_LEAVE
    assert record.early_leave_minutes == 30
    assert record.late_minutes == 15
    assert record.total_work_minutes == 495
    assert record.phase == AttendancePhase.CHECKED_OUT
    stored = w.attendance.get_for_user_and_date(STAFF_ID, MONDAY)
    assert stored.total_work_minutes == 495
    assert stored.status == AttendanceStatus.EARLY_LEAVE


def test_on_time_with_overtime(shift_world, clock):
    w = shift_world
    qr = w.issue_qr()
    clock.current = datetime(2024, 3, 4, 8, 55)

    record = w.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC).unwrap()
    assert record.status == AttendanceStatus.PRESENT
    assert record.late_minutes == 0

    clock.current = datetime(2024, 3, 4, 19, 10)
    record = w.ops.check_out(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC).unwrap()

    assert record.status == AttendanceStatus.PRESENT
    assert record.overtime_minutes == 70
    assert record.total_work_minutes == 615


def test_grace_minutes_keep_status_present(world, clock, test_settings):
    test_settings.LATE_GRACE_MINUTES = 20
    container = wire_container(
        users_repo=world.users,
        branches_repo=world.branches,
        qr_repo=world.qr_codes,
        schedules_repo=world.schedules,
        attendance_repo=world.attendance,
        statistics_repo=world.statistics,
        clock=clock,
        settings=test_settings,
    )
    world.add_weekly(0, time(9, 0), time(18, 0))
    qr = world.issue_qr()

    record = container.operations.check_in(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC).unwrap()

    assert record.status == AttendanceStatus.PRESENT
    assert record.late_minutes == 0


def test_no_schedule_means_present(world):
    qr = world.issue_qr()

    record = world.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC).unwrap()

    assert record.status == AttendanceStatus.PRESENT
    assert record.scheduled_start is None


def test_second_check_in_rejected(shift_world):
    qr = shift_world.issue_qr()
    shift_world.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC).unwrap()

    again = shift_world.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC)

    assert not again.success
    assert again.error_kind == ErrorKind.ALREADY_CHECKED_IN
    assert len(shift_world.attendance.all()) == 1


def test_duplicate_insert_maps_to_already_checked_in(shift_world, monkeypatch):
    qr = shift_world.issue_qr()
    repo = shift_world.attendance
    # Another request inserted the row between the read and the write.
    monkeypatch.setattr(repo, "get_for_user_and_date", lambda user_id, work_date: None)
    shift_world.seed_record(MONDAY, AttendanceStatus.PRESENT, check_in_time=datetime(2024, 3, 4, 9, 0))

    result = shift_world.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC)

    assert result.error_kind == ErrorKind.ALREADY_CHECKED_IN


@pytest.mark.parametrize(
    "placeholder", [AttendanceStatus.NOT_CHECKED_IN, AttendanceStatus.ABSENT, AttendanceStatus.LEAVE]
)
def test_check_in_fills_placeholder_record(shift_world, placeholder):
    qr = shift_world.issue_qr()
    seeded = shift_world.seed_record(MONDAY, placeholder, notes="pre-created")

    record = shift_world.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC).unwrap()

    assert record.attendance_id == seeded.attendance_id
    assert record.status == AttendanceStatus.LATE
    assert record.late_minutes == 15
    assert record.notes == "pre-created"
    assert len(shift_world.attendance.all()) == 1
    stored = shift_world.attendance.get_by_id(seeded.attendance_id)
    assert stored.check_in_time == datetime(2024, 3, 4, 9, 15)
    assert stored.check_in_latitude == AT_CLINIC.point.latitude


def test_placeholder_filled_concurrently_maps_to_already_checked_in(shift_world, monkeypatch):
    qr = shift_world.issue_qr()
    shift_world.seed_record(MONDAY, AttendanceStatus.ABSENT)
    monkeypatch.setattr(shift_world.attendance, "record_checkin_on_existing", lambda attendance_id, new: False)

    result = shift_world.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC)

    assert result.error_kind == ErrorKind.ALREADY_CHECKED_IN


def test_check_out_without_check_in(shift_world):
    qr = shift_world.issue_qr()

    result = shift_world.ops.check_out(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC)

    assert result.error_kind == ErrorKind.NOT_CHECKED_IN_YET
    assert shift_world.attendance.all() == []


def test_double_check_out_rejected(shift_world, clock):
    qr = shift_world.issue_qr()
    shift_world.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC).unwrap()
    clock.current = datetime(2024, 3, 4, 18, 0)
    first = shift_world.ops.check_out(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC).unwrap()

    clock.current = datetime(2024, 3, 4, 18, 30)
    second = shift_world.ops.check_out(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC)

    assert second.error_kind == ErrorKind.ALREADY_CHECKED_OUT
    stored = shift_world.attendance.get_for_user_and_date(STAFF_ID, MONDAY)
    assert stored.check_out_time == first.check_out_time == datetime(2024, 3, 4, 18, 0)


def test_geofence_violation_reports_distance(shift_world):
    qr = shift_world.issue_qr()

    result = shift_world.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=FAR_AWAY)

    assert result.error_kind == ErrorKind.GEOFENCE_VIOLATION
    assert result.details["distance_meters"] == 150
    assert result.details["radius_meters"] == 100
    assert "150m" in result.message
    assert shift_world.attendance.all() == []


def test_denied_location_is_recorded_unverified(shift_world):
    qr = shift_world.issue_qr()

    result = shift_world.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=LocationOutcome.denied())

    assert result.success
    assert result.details["location_verified"] is False
    assert result.data.check_in_latitude is None


def test_code_without_anchor_skips_geofence(shift_world):
    qr = shift_world.issue_qr(anchor=None)

    result = shift_world.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=FAR_AWAY)

    assert result.success


def test_wrong_code_rejected(shift_world):
    shift_world.issue_qr()

    result = shift_world.ops.check_in(STAFF_ID, CLINIC_ID, "stale-token", location=AT_CLINIC)

    assert result.error_kind == ErrorKind.QR_EXPIRED_OR_MISMATCH


def test_scan_url_accepted_as_code(shift_world):
    qr = shift_world.issue_qr()
    url = shift_world.container.qr_manager.scan_url(qr)

    assert shift_world.ops.check_in(STAFF_ID, CLINIC_ID, url, location=AT_CLINIC).success


@pytest.mark.parametrize("user_id, clinic_id", [(OUTSIDER_ID, CLINIC_ID), (INACTIVE_ID, CLINIC_ID), (STAFF_ID, OTHER_CLINIC_ID), (99, CLINIC_ID)])
def test_non_members_cannot_check_in(shift_world, user_id, clinic_id):
    qr = shift_world.issue_qr()

    result = shift_world.ops.check_in(user_id, clinic_id, qr.code, location=AT_CLINIC)

    assert result.error_kind == ErrorKind.AUTHORIZATION


def test_auto_check_routes_by_state(shift_world, clock):
    qr = shift_world.issue_qr()

    first = shift_world.ops.auto_check(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC)
    assert first.data.action == "check_in"
    assert first.details["action"] == "check_in"

    clock.current = datetime(2024, 3, 4, 18, 5)
    second = shift_world.ops.auto_check(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC)
    assert second.data.action == "check_out"
    assert second.data.record.overtime_minutes == 5

    third = shift_world.ops.auto_check(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC)
    assert third.error_kind == ErrorKind.ALREADY_CHECKED_OUT


def test_today_placeholder_before_check_in(world):
    record = world.ops.get_today_attendance(STAFF_ID, CLINIC_ID).unwrap()

    assert record.attendance_id is None
    assert record.status == AttendanceStatus.NOT_CHECKED_IN
    assert record.work_date == MONDAY


def test_service_raises_domain_errors_directly(shift_world):
    qr = shift_world.issue_qr()
    service = shift_world.container.attendance_service
    service.check_in(STAFF_ID, CLINIC_ID, qr.code)

    with pytest.raises(AlreadyCheckedIn):
        service.check_in(STAFF_ID, CLINIC_ID, qr.code)


def _seed_month(world):
    for day, status in [(1, AttendanceStatus.PRESENT), (2, AttendanceStatus.LATE), (3, AttendanceStatus.ABSENT)]:
        world.seed_record(date(2024, 2, day), status)
    world.seed_record(date(2024, 2, 1), AttendanceStatus.PRESENT, user_id=MANAGER_ID)


def test_staff_list_only_own_records(world):
    _seed_month(world)

    page = world.ops.list_records(STAFF_ID, user_id=MANAGER_ID).unwrap()

    assert page.total_count == 3
    assert {r.user_id for r in page.records} == {STAFF_ID}
    assert [r.work_date.day for r in page.records] == [3, 2, 1]


def test_manager_list_filters_and_paginates(world):
    _seed_month(world)

    everyone = world.ops.list_records(MANAGER_ID, page_size=2).unwrap()
    late = world.ops.list_records(MANAGER_ID, status="late").unwrap()
    ranged = world.ops.list_records(MANAGER_ID, user_id=STAFF_ID, start_date=date(2024, 2, 2), end_date=date(2024, 2, 2)).unwrap()

    assert everyone.total_count == 4
    assert len(everyone.records) == 2
    assert everyone.has_more
    assert [r.status for r in late.records] == [AttendanceStatus.LATE]
    assert [r.work_date for r in ranged.records] == [date(2024, 2, 2)]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"status": "sleeping"},
        {"page": 0},
        {"page_size": 201},
        {"start_date": date(2024, 2, 5), "end_date": date(2024, 2, 1)},
    ],
)
def test_list_records_validation(world, kwargs):
    assert world.ops.list_records(MANAGER_ID, **kwargs).error_kind == ErrorKind.VALIDATION


def test_team_status_counts(shift_world):
    w = shift_world
    qr = w.issue_qr()
    w.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC).unwrap()
    w.seed_record(MONDAY, AttendanceStatus.LEAVE, user_id=MANAGER_ID)

    status = w.ops.get_team_status(MANAGER_ID, CLINIC_ID).unwrap()

    assert status.total_staff == 2
    assert status.checked_in == 1
    assert status.on_leave == 1
    assert status.not_checked_in == 0
    assert status.late_count == 1
    assert status.to_dict()["date"] == "2024-03-04"


def test_team_status_requires_manager(world):
    assert world.ops.get_team_status(STAFF_ID, CLINIC_ID).error_kind == ErrorKind.AUTHORIZATION
    assert world.ops.get_team_status(MANAGER_ID, OTHER_CLINIC_ID).error_kind == ErrorKind.AUTHORIZATION


def test_edit_record_rederives_minutes(shift_world):
    w = shift_world
    qr = w.issue_qr()
    record = w.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC).unwrap()

    edited = w.ops.edit_record(
        MANAGER_ID,
        CLINIC_ID,
        record.attendance_id,
        check_in_time=datetime(2024, 3, 4, 9, 0),
        check_out_time=datetime(2024, 3, 4, 18, 0),
        notes="forgot to scan",
    ).unwrap()

    assert edited.status == AttendanceStatus.PRESENT
    assert edited.late_minutes == 0
    assert edited.total_work_minutes == 540
    assert edited.is_manually_edited
    assert edited.edited_by == MANAGER_ID
    stored = w.attendance.get_by_id(record.attendance_id)
    assert stored.notes == "forgot to scan"
    assert stored.total_work_minutes == 540


def test_edit_record_explicit_status_wins(shift_world):
    record = shift_world.seed_record(MONDAY, AttendanceStatus.ABSENT)

    edited = shift_world.ops.edit_record(MANAGER_ID, CLINIC_ID, record.attendance_id, status=AttendanceStatus.LEAVE).unwrap()

    assert edited.status == AttendanceStatus.LEAVE


def test_edit_record_rules(shift_world):
    w = shift_world
    record = w.seed_record(MONDAY, AttendanceStatus.PRESENT, check_in_time=datetime(2024, 3, 4, 9, 0))

    staff = w.ops.edit_record(STAFF_ID, CLINIC_ID, record.attendance_id, notes="x")
    backwards = w.ops.edit_record(MANAGER_ID, CLINIC_ID, record.attendance_id, check_out_time=datetime(2024, 3, 4, 8, 0))
    missing = w.ops.edit_record(MANAGER_ID, CLINIC_ID, 999, notes="x")

    assert staff.error_kind == ErrorKind.AUTHORIZATION
    assert backwards.error_kind == ErrorKind.VALIDATION
    assert missing.error_kind == ErrorKind.RECORD_NOT_FOUND


def test_clinic_code_scan_assigned_to_nearest_branch(shift_world):
    w = shift_world
    w.add_branch("Main", ANCHOR)
    annex = w.add_branch("Annex", north_of(*ANCHOR, 30), radius_meters=50)
    qr = w.issue_qr(anchor=None)

    record = w.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=LocationOutcome.of(GeoPoint(*north_of(*ANCHOR, 25)))).unwrap()

    assert record.branch_id == annex.branch_id
    assert w.attendance.get_for_user_and_date(STAFF_ID, MONDAY).branch_id == annex.branch_id


def test_scan_outside_nearest_branch_rejected(shift_world):
    w = shift_world
    w.add_branch("Main", ANCHOR, radius_meters=100)
    qr = w.issue_qr(anchor=None)

    result = w.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=FAR_AWAY)

    assert result.error_kind == ErrorKind.GEOFENCE_VIOLATION
    assert "nearest branch (Main, allowed: 100m)" in result.message
    assert result.details["distance_meters"] == 150
    assert w.attendance.all() == []


def test_branch_code_names_its_branch(shift_world):
    w = shift_world
    w.add_branch("Main", ANCHOR)
    annex = w.add_branch("Annex", north_of(*ANCHOR, 40))
    qr = w.ops.generate_qr_code(
        CLINIC_ID, requested_by=MANAGER_ID, branch_id=annex.branch_id, anchor_latitude=ANCHOR[0], anchor_longitude=ANCHOR[1]
    ).unwrap()

    record = w.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC).unwrap()

    assert record.branch_id == annex.branch_id


def test_scan_without_location_stays_unassigned(shift_world):
    shift_world.add_branch("Main", ANCHOR)
    qr = shift_world.issue_qr(anchor=None)

    record = shift_world.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=LocationOutcome.denied()).unwrap()

    assert record.branch_id is None


def test_list_records_by_branch(world):
    main = world.add_branch("Main")
    annex = world.add_branch("Annex")
    world.seed_record(date(2024, 2, 1), AttendanceStatus.PRESENT, branch_id=main.branch_id)
    world.seed_record(date(2024, 2, 2), AttendanceStatus.PRESENT, branch_id=annex.branch_id)
    world.seed_record(date(2024, 2, 1), AttendanceStatus.LATE, user_id=MANAGER_ID, branch_id=annex.branch_id)

    page = world.ops.list_records(MANAGER_ID, branch_id=annex.branch_id).unwrap()

    assert page.total_count == 2
    assert {r.branch_id for r in page.records} == {annex.branch_id}


def test_team_status_by_branch(shift_world):
    w = shift_world
    main = w.add_branch("Main")
    annex = w.add_branch("Annex")
    w.users.users_by_id[MANAGER_ID] = replace(w.users.users_by_id[MANAGER_ID], primary_branch_id=annex.branch_id)
    qr = w.issue_qr()
    w.ops.check_in(STAFF_ID, CLINIC_ID, qr.code, location=AT_CLINIC).unwrap()

    at_main = w.ops.get_team_status(MANAGER_ID, CLINIC_ID, branch_id=main.branch_id).unwrap()
    at_annex = w.ops.get_team_status(MANAGER_ID, CLINIC_ID, branch_id=annex.branch_id).unwrap()
    unknown = w.ops.get_team_status(MANAGER_ID, CLINIC_ID, branch_id=99)

    assert [m.user_id for m in at_main.members] == [STAFF_ID]
    assert at_main.checked_in == 1
    assert at_main.to_dict()["branch_id"] == main.branch_id
    assert at_annex.total_staff == 2
    assert unknown.error_kind == ErrorKind.RECORD_NOT_FOUND
