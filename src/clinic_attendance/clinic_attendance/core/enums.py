from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles used for permission checks."""

    OWNER = "owner"
    MANAGER = "manager"
    STAFF = "staff"

    @property
    def can_manage(self) -> bool:
        return self in (Role.OWNER, Role.MANAGER)


class AttendanceStatus(str, Enum):
    """Normalized attendance status stored in the database."""

    NOT_CHECKED_IN = "not_checked_in"
    PRESENT = "present"
    LATE = "late"
    EARLY_LEAVE = "early_leave"
    ABSENT = "absent"
    LEAVE = "leave"
    HOLIDAY = "holiday"

    @property
    def attended(self) -> bool:
        return self in (AttendanceStatus.PRESENT, AttendanceStatus.LATE, AttendanceStatus.EARLY_LEAVE)


class AttendancePhase(str, Enum):
    """Position of a (user, work_date) record in the check-in/out state machine."""

    NOT_CHECKED_IN = "NOT_CHECKED_IN"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"


class RefreshPeriod(str, Enum):
    """How long a generated QR code stays valid."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def days(self) -> int:
        return _REFRESH_DAYS[self]


_REFRESH_DAYS = {
    RefreshPeriod.DAILY: 1,
    RefreshPeriod.WEEKLY: 7,
    RefreshPeriod.MONTHLY: 30,
    RefreshPeriod.YEARLY: 365,
}


class LocationOutcomeKind(str, Enum):
    VALUE = "value"
    TIMEOUT = "timeout"
    DENIED = "denied"
    UNAVAILABLE = "unavailable"


class ErrorKind(str, Enum):
    """Error codes surfaced by the operation boundary."""

    VALIDATION = "VALIDATION_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    QR_EXPIRED_OR_MISMATCH = "QR_CODE_EXPIRED_OR_MISMATCH"
    GEOFENCE_VIOLATION = "GEOFENCE_VIOLATION"
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"
    ALREADY_CHECKED_OUT = "ALREADY_CHECKED_OUT"
    NOT_CHECKED_IN_YET = "NOT_CHECKED_IN_YET"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
    TRANSIENT_STORE = "TRANSIENT_STORE_ERROR"
    TIMEOUT = "TIMEOUT"
    PERSISTENCE = "PERSISTENCE_ERROR"
    INTERNAL = "INTERNAL_ERROR"
