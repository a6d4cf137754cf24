from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .branches.mysql_branch_repository import MySQLBranchRepository
from .branches.repository import BranchRepository
from .branches.service import BranchService
from .common.datetime_utils import Clock, SystemClock
from .core.constants import (
    DEFAULT_GEOLOCATION_TIMEOUT_SECONDS,
    DEFAULT_LATE_GRACE_MINUTES,
    DEFAULT_RADIUS_METERS,
    DEFAULT_STORE_RETRY_ATTEMPTS,
    DEFAULT_STORE_RETRY_BASE_DELAY,
)
from .database.connection import DBConfig, DatabaseConnection
from .geofence.validator import GeofenceValidator
from .operations import AttendanceOperations
from .qrcodes.mysql_qr_repository import MySQLQRCodeRepository
from .qrcodes.repository import QRCodeRepository
from .qrcodes.service import QRCodeManager
from .schedules.mysql_schedule_repository import MySQLScheduleRepository
from .schedules.repository import ScheduleRepository
from .schedules.resolver import ScheduleResolver
from .schedules.service import ScheduleService
from .statistics.mysql_statistics_repository import MySQLStatisticsRepository
from .statistics.repository import StatisticsRepository
from .statistics.service import StatisticsAggregator
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository


@dataclass(frozen=True)
class Container:
    clock: Clock

    users_repo: UserRepository
    branches_repo: BranchRepository
    qr_repo: QRCodeRepository
    schedules_repo: ScheduleRepository
    attendance_repo: AttendanceRepository
    statistics_repo: StatisticsRepository

    branch_service: BranchService
    qr_manager: QRCodeManager
    schedule_resolver: ScheduleResolver
    schedule_service: ScheduleService
    attendance_service: AttendanceService
    statistics_aggregator: StatisticsAggregator
    operations: AttendanceOperations


def wire_container(
    *,
    users_repo: UserRepository,
    branches_repo: BranchRepository,
    qr_repo: QRCodeRepository,
    schedules_repo: ScheduleRepository,
    attendance_repo: AttendanceRepository,
    statistics_repo: StatisticsRepository,
    clock: Optional[Clock] = None,
    settings: Any = None,
) -> Container:
    """Assemble services over the given repositories (MySQL or in-memory)."""
    clock = clock or SystemClock(getattr(settings, "CLINIC_TIMEZONE", None))

    branch_service = BranchService(branches_repo)
    qr_manager = QRCodeManager(
        qr_repo,
        branches=branches_repo,
        clock=clock,
        base_url=str(getattr(settings, "QR_BASE_URL", "http://localhost:5000")),
        default_radius_meters=int(getattr(settings, "DEFAULT_RADIUS_METERS", DEFAULT_RADIUS_METERS)),
    )
    schedule_resolver = ScheduleResolver(
        schedules_repo,
        use_clinic_default=bool(getattr(settings, "CLINIC_DEFAULT_SCHEDULE", True)),
    )
    schedule_service = ScheduleService(schedules_repo, users_repo)
    attendance_service = AttendanceService(
        attendance_repo,
        users_repo,
        qr_manager,
        schedule_resolver,
        geofence=GeofenceValidator(),
        branches=branches_repo,
        clock=clock,
        strategy_factory=AttendanceStrategyFactory(
            grace_minutes=int(getattr(settings, "LATE_GRACE_MINUTES", DEFAULT_LATE_GRACE_MINUTES)),
        ),
    )
    statistics_aggregator = StatisticsAggregator(
        attendance_repo,
        statistics_repo,
        schedule_resolver,
        users_repo,
        clock=clock,
    )
    operations = AttendanceOperations(
        qr_codes=qr_manager,
        attendance=attendance_service,
        statistics=statistics_aggregator,
        users=users_repo,
        retry_attempts=int(getattr(settings, "STORE_RETRY_ATTEMPTS", DEFAULT_STORE_RETRY_ATTEMPTS)),
        retry_base_delay=float(getattr(settings, "STORE_RETRY_BASE_DELAY", DEFAULT_STORE_RETRY_BASE_DELAY)),
        geolocation_timeout_seconds=float(
            getattr(settings, "GEOLOCATION_TIMEOUT_SECONDS", DEFAULT_GEOLOCATION_TIMEOUT_SECONDS)
        ),
    )

    return Container(
        clock=clock,
        users_repo=users_repo,
        branches_repo=branches_repo,
        qr_repo=qr_repo,
        schedules_repo=schedules_repo,
        attendance_repo=attendance_repo,
        statistics_repo=statistics_repo,
        branch_service=branch_service,
        qr_manager=qr_manager,
        schedule_resolver=schedule_resolver,
        schedule_service=schedule_service,
        attendance_service=attendance_service,
        statistics_aggregator=statistics_aggregator,
        operations=operations,
    )


def build_container(*, db_config: dict, settings: Any = None, clock: Optional[Clock] = None) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))

    return wire_container(
        users_repo=MySQLUserRepository(conn),
        branches_repo=MySQLBranchRepository(conn),
        qr_repo=MySQLQRCodeRepository(conn),
        schedules_repo=MySQLScheduleRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        statistics_repo=MySQLStatisticsRepository(conn),
        clock=clock,
        settings=settings,
    )
