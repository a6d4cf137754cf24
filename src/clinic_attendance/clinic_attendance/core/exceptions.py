from __future__ import annotations

from .enums import ErrorKind


class DomainError(Exception):
    """Base exception for business rule violations."""

    kind: ErrorKind = ErrorKind.INTERNAL


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = ErrorKind.VALIDATION


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action (not in clinic, inactive, wrong role)."""

    kind = ErrorKind.AUTHORIZATION


class QRCodeExpiredOrMismatch(DomainError):
    kind = ErrorKind.QR_EXPIRED_OR_MISMATCH


class GeofenceViolation(DomainError):
    kind = ErrorKind.GEOFENCE_VIOLATION

    def __init__(self, message: str, *, distance_meters: float, radius_meters: int):
        super().__init__(message)
        self.distance_meters = distance_meters
        self.radius_meters = radius_meters


class AlreadyCheckedIn(DomainError):
    kind = ErrorKind.ALREADY_CHECKED_IN


class AlreadyCheckedOut(DomainError):
    kind = ErrorKind.ALREADY_CHECKED_OUT


class NotCheckedInYet(DomainError):
    kind = ErrorKind.NOT_CHECKED_IN_YET


class RecordNotFound(DomainError):
    kind = ErrorKind.RECORD_NOT_FOUND


class GeolocationTimeoutError(DomainError):
    """Device location was not obtained within the allowed time."""

    kind = ErrorKind.TIMEOUT


class PersistenceError(DomainError):
    """Raised when the store rejects a write for a non-retryable reason."""

    kind = ErrorKind.PERSISTENCE


class DuplicateRecordError(PersistenceError):
    """Unique constraint hit; callers translate it to the matching domain error."""


class TransientStoreError(DomainError):
    """Connection-level failure; the only error eligible for automatic retry."""

    kind = ErrorKind.TRANSIENT_STORE
