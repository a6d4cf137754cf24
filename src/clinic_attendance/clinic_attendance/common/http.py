from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Optional

from flask import jsonify, session

from ..core.enums import ErrorKind, Role
from ..core.exceptions import DomainError
from ..core.result import Result

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.QR_EXPIRED_OR_MISMATCH: 400,
    ErrorKind.GEOFENCE_VIOLATION: 403,
    ErrorKind.ALREADY_CHECKED_IN: 409,
    ErrorKind.ALREADY_CHECKED_OUT: 409,
    ErrorKind.NOT_CHECKED_IN_YET: 409,
    ErrorKind.RECORD_NOT_FOUND: 404,
    ErrorKind.TRANSIENT_STORE: 503,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.PERSISTENCE: 500,
    ErrorKind.INTERNAL: 500,
}


def current_role() -> Optional[Role]:
    try:
        return Role(session.get("role"))
    except ValueError:
        return None


def login_required(view):
    """JSON 401 unless the auth layer put ``user_id`` and ``clinic_id`` in the session."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session or "clinic_id" not in session:
            return jsonify({"success": False, "message": "Please sign in to continue"}), 401
        return view(*args, **kwargs)

    return wrapper


def manager_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session or "clinic_id" not in session:
            return jsonify({"success": False, "message": "Please sign in to continue"}), 401

        role = current_role()
        if role is None or not role.can_manage:
            return jsonify({
                "success": False,
                "error_kind": ErrorKind.AUTHORIZATION.value,
                "message": "Only owners and managers can access this page",
            }), 403

        return view(*args, **kwargs)

    return wrapper


def result_response(result: Result, serialize: Optional[Callable[[Any], Any]] = None, *, created: bool = False):
    """Render an operation Result as ``(json, status)``."""
    body = {"success": result.success, "message": result.message}
    body.update(result.details)
    if result.success:
        data = result.data
        body["data"] = serialize(data) if (serialize and data is not None) else data
        return jsonify(body), 201 if created else 200

    body["error_kind"] = result.error_kind.value if result.error_kind else ErrorKind.INTERNAL.value
    return jsonify(body), STATUS_BY_KIND.get(result.error_kind, 500)


def error_response(error: DomainError):
    return result_response(Result.from_error(error))


def request_json(request) -> dict:
    return request.get_json(silent=True) or {}
