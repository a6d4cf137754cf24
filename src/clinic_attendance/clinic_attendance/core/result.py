from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar

from .enums import ErrorKind
from .exceptions import DomainError, GeofenceViolation

TData = TypeVar("TData")


@dataclass(frozen=True)
class Result(Generic[TData]):
    """Outcome of an operation: ``Ok(data)`` or ``Err(error_kind, message)``.

    Operations never let domain exceptions cross the module boundary; callers
    branch on ``success`` and render ``message`` (or their own localized text
    keyed on ``error_kind``).
    """

    success: bool
    data: Optional[TData] = None
    error_kind: Optional[ErrorKind] = None
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Optional[TData] = None, message: str = "", **details: Any) -> "Result[TData]":
        return cls(success=True, data=data, message=message, details=dict(details))

    @classmethod
    def err(cls, kind: ErrorKind, message: str, *, data: Optional[TData] = None, **details: Any) -> "Result[TData]":
        return cls(success=False, data=data, error_kind=kind, message=message, details=dict(details))

    @classmethod
    def from_error(cls, error: DomainError, *, data: Optional[TData] = None) -> "Result[TData]":
        details: Dict[str, Any] = {}
        if isinstance(error, GeofenceViolation):
            details = {
                "distance_meters": round(error.distance_meters),
                "radius_meters": error.radius_meters,
            }
        return cls.err(error.kind, str(error), data=data, **details)

    def unwrap(self) -> TData:
        if not self.success:
            raise ValueError(f"Result is an error: {self.error_kind}: {self.message}")
        return self.data  # type: ignore[return-value]
