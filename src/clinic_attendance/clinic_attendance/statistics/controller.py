from __future__ import annotations

from flask import Flask, request, session

from ..common.http import current_role, login_required, request_json, result_response
from ..container import Container
from ..core.enums import ErrorKind
from ..core.result import Result


def register(app: Flask, container: Container) -> None:
    ops = container.operations

    def _target_user(requested) -> int:
        """Staff may only look at their own numbers."""
        own = int(session["user_id"])
        role = current_role()
        if requested is None or role is None or not role.can_manage:
            return own
        return int(requested)

    def _same_clinic(user_id: int) -> bool:
        target = container.users_repo.get_by_id(user_id)
        return target is not None and target.clinic_id == int(session["clinic_id"])

    def _period(source) -> tuple:
        today = container.clock.today()
        return source.get("year", today.year), source.get("month", today.month)

    def _forbidden():
        return result_response(Result.err(ErrorKind.AUTHORIZATION, "User is not a member of this clinic"))

    @app.route("/api/statistics/recompute", methods=["POST"], endpoint="api_statistics_recompute")
    @login_required
    def api_statistics_recompute():
        data = request_json(request)
        user_id = _target_user(data.get("user_id"))
        if not _same_clinic(user_id):
            return _forbidden()

        year, month = _period(data)
        result = ops.recompute_monthly_statistics(user_id, year, month, clinic_id=int(session["clinic_id"]))
        return result_response(result, lambda stats: stats.to_dict())

    @app.route("/api/statistics", methods=["GET"], endpoint="api_statistics_get")
    @login_required
    def api_statistics_get():
        user_id = _target_user(request.args.get("user_id", type=int))
        if not _same_clinic(user_id):
            return _forbidden()

        year, month = _period(request.args)
        result = ops.get_monthly_statistics(user_id, year, month)
        return result_response(result, lambda stats: stats.to_dict())
