from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time
from types import SimpleNamespace
from typing import Optional

import pytest

from clinic_attendance.attendance.model import AttendanceRecord, CheckOutUpdate, NewCheckIn, RecordFilter
from clinic_attendance.branches.model import Branch, NewBranch
from clinic_attendance.common.datetime_utils import FixedClock
from clinic_attendance.container import Container, wire_container
from clinic_attendance.core.enums import AttendanceStatus, RefreshPeriod, Role
from clinic_attendance.core.exceptions import DuplicateRecordError
from clinic_attendance.geofence.model import GeoPoint
from clinic_attendance.qrcodes.model import NewQRCode, QRCode
from clinic_attendance.schedules.model import NewSchedule, Schedule
from clinic_attendance.users.model import User

CLINIC_ID = 1
OTHER_CLINIC_ID = 2

STAFF_ID = 1
MANAGER_ID = 2
OUTSIDER_ID = 3
INACTIVE_ID = 4

ANCHOR = (37.5, 127.0)
METERS_PER_DEGREE_LAT = 111_194.93


def north_of(latitude: float, longitude: float, meters: float) -> tuple[float, float]:
    return latitude + meters / METERS_PER_DEGREE_LAT, longitude


class InMemoryUsers:
    def __init__(self, users: list[User]):
        self.users_by_id = {u.user_id: u for u in users}

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.users_by_id.get(user_id)

    def list_active_for_clinic(self, clinic_id: int):
        return sorted(
            (u for u in self.users_by_id.values() if u.clinic_id == clinic_id and u.is_active),
            key=lambda u: u.full_name,
        )


class InMemoryBranches:
    def __init__(self):
        self.rows: list[Branch] = []

    def get_by_id(self, branch_id: int) -> Optional[Branch]:
        return next((b for b in self.rows if b.branch_id == branch_id), None)

    def list_active_for_clinic(self, clinic_id: int):
        return sorted(
            (b for b in self.rows if b.clinic_id == clinic_id and b.is_active),
            key=lambda b: (b.display_order, b.branch_id),
        )

    def create(self, new: NewBranch) -> Branch:
        branch = Branch(
            branch_id=len(self.rows) + 1,
            clinic_id=new.clinic_id,
            branch_name=new.branch_name,
            latitude=new.location.latitude if new.location else None,
            longitude=new.location.longitude if new.location else None,
            attendance_radius_meters=new.attendance_radius_meters,
            address=new.address,
            display_order=new.display_order,
        )
        self.rows.append(branch)
        return branch


class InMemoryQRCodes:
    """Mirrors the MySQL rule: at most one active code per (clinic, branch) scope."""

    def __init__(self):
        self.rows: list[QRCode] = []

    def _insert(self, new: NewQRCode) -> QRCode:
        qr = QRCode(
            qr_id=len(self.rows) + 1,
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
        self.rows.append(qr)
        return qr

    def _deactivate(self, predicate) -> None:
        self.rows = [replace(r, active=False) if r.active and predicate(r) else r for r in self.rows]

    @staticmethod
    def _same_scope(row: QRCode, new: NewQRCode) -> bool:
        return row.clinic_id == new.clinic_id and row.branch_id == new.branch_id

    def get_active_for_clinic(self, clinic_id: int, on_date: date, branch_id: Optional[int] = None) -> Optional[QRCode]:
        for qr in self.rows:
            if qr.clinic_id == clinic_id and qr.branch_id == branch_id and qr.is_usable_on(on_date):
                return qr
        return None

    def find_active_by_code(self, clinic_id: int, code: str, on_date: date) -> Optional[QRCode]:
        for qr in self.rows:
            if qr.clinic_id == clinic_id and qr.code == code and qr.is_usable_on(on_date):
                return qr
        return None

    def create(self, new: NewQRCode) -> QRCode:
        self._deactivate(lambda r: self._same_scope(r, new) and r.valid_until < new.valid_date)
        if any(r.active and self._same_scope(r, new) for r in self.rows):
            raise DuplicateRecordError("Duplicate entry for key 'uq_qr_one_active_per_scope'")
        return self._insert(new)

    def replace_active(self, new: NewQRCode) -> QRCode:
        self._deactivate(lambda r: self._same_scope(r, new))
        return self._insert(new)


class InMemorySchedules:
    def __init__(self):
        self.rows: list[Schedule] = []

    def list_for_user(self, user_id: int, clinic_id: int):
        return [s for s in self.rows if s.user_id == user_id and s.clinic_id == clinic_id]

    def list_clinic_defaults(self, clinic_id: int):
        return [s for s in self.rows if s.clinic_id == clinic_id and s.user_id is None and s.day_of_week is not None]

    def list_for_clinic(self, clinic_id: int, *, user_id: Optional[int] = None):
        return [s for s in self.rows if s.clinic_id == clinic_id and (user_id is None or s.user_id == user_id)]

    def create(self, new: NewSchedule) -> int:
        schedule_id = len(self.rows) + 1
        self.rows.append(Schedule(schedule_id=schedule_id, **new.__dict__))
        return schedule_id

    def delete(self, *, schedule_id: int, clinic_id: int) -> bool:
        before = len(self.rows)
        self.rows = [s for s in self.rows if not (s.schedule_id == schedule_id and s.clinic_id == clinic_id)]
        return len(self.rows) < before


class InMemoryAttendance:
    def __init__(self):
        self._by_user_date: dict[tuple[int, date], AttendanceRecord] = {}
        self._id = 0

    def add(self, record: AttendanceRecord) -> AttendanceRecord:
        """Seed a record directly (bypassing the check-in flow)."""
        self._id += 1
        record = replace(record, attendance_id=self._id)
        self._by_user_date[(record.user_id, record.work_date)] = record
        return record

    def all(self) -> list[AttendanceRecord]:
        return list(self._by_user_date.values())

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return next((r for r in self._by_user_date.values() if r.attendance_id == attendance_id), None)

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        return self._by_user_date.get((user_id, work_date))

    def create_checkin(self, new: NewCheckIn) -> AttendanceRecord:
        if (new.user_id, new.work_date) in self._by_user_date:
            raise DuplicateRecordError("Duplicate entry for key 'uq_attendance_user_date'")
        return self.add(
            AttendanceRecord(
                attendance_id=None,
                user_id=new.user_id,
                clinic_id=new.clinic_id,
                work_date=new.work_date,
                check_in_time=new.check_in_time,
                check_out_time=None,
                status=new.status,
                branch_id=new.branch_id,
                scheduled_start=new.scheduled_start,
                scheduled_end=new.scheduled_end,
                late_minutes=new.late_minutes,
                check_in_latitude=new.latitude,
                check_in_longitude=new.longitude,
                check_in_device_info=new.device_info,
            )
        )

    def record_checkin_on_existing(self, attendance_id: int, new: NewCheckIn) -> bool:
        record = self.get_by_id(attendance_id)
        if record is None or record.check_in_time is not None:
            return False
        self._by_user_date[(record.user_id, record.work_date)] = replace(
            record,
            branch_id=new.branch_id,
            check_in_time=new.check_in_time,
            status=new.status,
            scheduled_start=new.scheduled_start,
            scheduled_end=new.scheduled_end,
            late_minutes=new.late_minutes,
            check_in_latitude=new.latitude,
            check_in_longitude=new.longitude,
            check_in_device_info=new.device_info,
        )
        return True

    def update_checkout(self, update: CheckOutUpdate) -> bool:
        record = self.get_by_id(update.attendance_id)
        if record is None or record.check_out_time is not None:
            return False
        self._by_user_date[(record.user_id, record.work_date)] = replace(
            record,
            check_out_time=update.check_out_time,
            status=update.status,
            early_leave_minutes=update.early_leave_minutes,
            overtime_minutes=update.overtime_minutes,
            total_work_minutes=update.total_work_minutes,
            check_out_latitude=update.latitude,
            check_out_longitude=update.longitude,
            check_out_device_info=update.device_info,
        )
        return True

    def list_records(self, filters: RecordFilter):
        rows = [
            r for r in self._by_user_date.values()
            if (filters.clinic_id is None or r.clinic_id == filters.clinic_id)
            and (filters.branch_id is None or r.branch_id == filters.branch_id)
            and (filters.user_id is None or r.user_id == filters.user_id)
            and (filters.status is None or r.status == filters.status)
            and (filters.start_date is None or r.work_date >= filters.start_date)
            and (filters.end_date is None or r.work_date <= filters.end_date)
        ]
        rows.sort(key=lambda r: (r.work_date, r.attendance_id), reverse=True)
        return rows[filters.offset:filters.offset + filters.page_size], len(rows)

    def list_for_clinic_date(self, clinic_id: int, work_date: date):
        return [r for r in self._by_user_date.values() if r.clinic_id == clinic_id and r.work_date == work_date]

    def list_for_user_range(self, user_id: int, start: date, end: date):
        return sorted(
            (r for r in self._by_user_date.values() if r.user_id == user_id and start <= r.work_date <= end),
            key=lambda r: r.work_date,
        )

    def admin_update(self, *, attendance_id: int, edited_by: int, edited_at: datetime, **fields) -> bool:
        record = self.get_by_id(attendance_id)
        if record is None:
            return False
        self._by_user_date[(record.user_id, record.work_date)] = replace(
            record, is_manually_edited=True, edited_by=edited_by, edited_at=edited_at, **fields
        )
        return True


class InMemoryStatistics:
    def __init__(self):
        self.rows = {}

    def get(self, user_id: int, year: int, month: int):
        return self.rows.get((user_id, year, month))

    def replace(self, stats) -> None:
        self.rows[(stats.user_id, stats.year, stats.month)] = stats


@dataclass
class World:
    """Fully wired services over in-memory repositories."""

    clock: FixedClock
    users: InMemoryUsers
    branches: InMemoryBranches
    qr_codes: InMemoryQRCodes
    schedules: InMemorySchedules
    attendance: InMemoryAttendance
    statistics: InMemoryStatistics
    container: Container

    @property
    def ops(self):
        return self.container.operations

    def issue_qr(self, *, anchor=ANCHOR, radius_meters: int = 100, refresh_period=RefreshPeriod.DAILY) -> QRCode:
        lat, lon = anchor if anchor else (None, None)
        return self.ops.generate_qr_code(
            CLINIC_ID,
            anchor_latitude=lat,
            anchor_longitude=lon,
            radius_meters=radius_meters,
            refresh_period=refresh_period.value,
            requested_by=MANAGER_ID,
        ).unwrap()

    def add_branch(self, name: str, location=ANCHOR, *, radius_meters: int = 100, clinic_id: int = CLINIC_ID) -> Branch:
        lat, lon = location if location else (None, None)
        return self.branches.create(
            NewBranch(
                clinic_id=clinic_id,
                branch_name=name,
                location=GeoPoint(latitude=lat, longitude=lon) if location else None,
                attendance_radius_meters=radius_meters,
            )
        )

    def add_weekly(self, day_of_week: int, start: time, end: time, *, user_id: Optional[int] = STAFF_ID, **kwargs) -> int:
        return self.schedules.create(
            NewSchedule(
                clinic_id=CLINIC_ID,
                user_id=user_id,
                day_of_week=day_of_week,
                specific_date=None,
                start_time=start,
                end_time=end,
                **kwargs,
            )
        )

    def add_override(self, day: date, start: Optional[time] = None, end: Optional[time] = None, *, user_id: int = STAFF_ID) -> int:
        return self.schedules.create(
            NewSchedule(
                clinic_id=CLINIC_ID,
                user_id=user_id,
                day_of_week=None,
                specific_date=day,
                start_time=start,
                end_time=end,
                is_work_day=start is not None,
            )
        )

    def seed_record(self, work_date: date, status: AttendanceStatus, *, user_id: int = STAFF_ID, **fields) -> AttendanceRecord:
        return self.attendance.add(
            AttendanceRecord(
                attendance_id=None,
                user_id=user_id,
                clinic_id=CLINIC_ID,
                work_date=work_date,
                check_in_time=fields.pop("check_in_time", None),
                check_out_time=fields.pop("check_out_time", None),
                status=status,
                **fields,
            )
        )


@pytest.fixture
def fixed_now() -> datetime:
    # Monday
    return datetime(2024, 3, 4, 9, 15)


@pytest.fixture
def clock(fixed_now) -> FixedClock:
    return FixedClock(fixed_now)


@pytest.fixture
def test_settings():
    return SimpleNamespace(
        QR_BASE_URL="http://testserver",
        STORE_RETRY_ATTEMPTS=3,
        STORE_RETRY_BASE_DELAY=0.0,
        GEOLOCATION_TIMEOUT_SECONDS=0.05,
    )


@pytest.fixture
def world(clock, test_settings) -> World:
    users = InMemoryUsers(
        [
            User(user_id=STAFF_ID, clinic_id=CLINIC_ID, full_name="Kim Staff", role=Role.STAFF),
            User(user_id=MANAGER_ID, clinic_id=CLINIC_ID, full_name="Lee Manager", role=Role.MANAGER),
            User(user_id=OUTSIDER_ID, clinic_id=OTHER_CLINIC_ID, full_name="Park Outsider", role=Role.STAFF),
            User(user_id=INACTIVE_ID, clinic_id=CLINIC_ID, full_name="Choi Former", role=Role.STAFF, is_active=False),
        ]
    )
    branches = InMemoryBranches()
    qr_codes = InMemoryQRCodes()
    schedules = InMemorySchedules()
    attendance = InMemoryAttendance()
    statistics = InMemoryStatistics()
    container = wire_container(
        users_repo=users,
        branches_repo=branches,
        qr_repo=qr_codes,
        schedules_repo=schedules,
        attendance_repo=attendance,
        statistics_repo=statistics,
        clock=clock,
        settings=test_settings,
    )
    return World(
        clock=clock,
        users=users,
        branches=branches,
        qr_codes=qr_codes,
        schedules=schedules,
        attendance=attendance,
        statistics=statistics,
        container=container,
    )
