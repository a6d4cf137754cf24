from __future__ import annotations

from flask import Flask, jsonify, request, session

from ..common.datetime_utils import parse_clock_time, parse_iso_date
from ..common.http import current_role, error_response, manager_required, request_json
from ..container import Container
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    def _optional_date(value):
        return parse_iso_date(value) if value else None

    def _optional_time(value):
        return parse_clock_time(value) if value else None

    @app.route("/api/admin/schedules", methods=["GET"], endpoint="api_schedules_list")
    @manager_required
    def api_schedules_list():
        user_id = request.args.get("user_id", type=int)
        try:
            schedules = container.schedule_service.list(clinic_id=int(session["clinic_id"]), user_id=user_id)
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "data": [s.to_dict() for s in schedules]}), 200

    @app.route("/api/admin/schedules", methods=["POST"], endpoint="api_schedules_create")
    @manager_required
    def api_schedules_create():
        """Add a weekly entry (``day_of_week``) or a date override (``specific_date``)."""
        data = request_json(request)
        try:
            is_work_day = bool(data.get("is_work_day", True))
            start_time = _optional_time(data.get("start_time"))
            end_time = _optional_time(data.get("end_time"))
            note = data.get("note")

            if data.get("specific_date"):
                schedule_id = container.schedule_service.assign_override(
                    current_role=current_role(),
                    clinic_id=int(session["clinic_id"]),
                    user_id=data.get("user_id"),
                    specific_date=parse_iso_date(data["specific_date"]),
                    start_time=start_time,
                    end_time=end_time,
                    is_work_day=is_work_day,
                    note=note,
                )
            else:
                schedule_id = container.schedule_service.assign_weekly(
                    current_role=current_role(),
                    clinic_id=int(session["clinic_id"]),
                    user_id=data.get("user_id"),
                    day_of_week=data.get("day_of_week"),
                    start_time=start_time,
                    end_time=end_time,
                    is_work_day=is_work_day,
                    effective_from=_optional_date(data.get("effective_from")),
                    effective_until=_optional_date(data.get("effective_until")),
                    note=note,
                )
        except DomainError as e:
            return error_response(e)

        return jsonify({"success": True, "message": "Schedule saved", "data": {"id": schedule_id}}), 201

    @app.route("/api/admin/schedules/<int:schedule_id>", methods=["DELETE"], endpoint="api_schedules_delete")
    @manager_required
    def api_schedules_delete(schedule_id: int):
        try:
            container.schedule_service.delete(
                current_role=current_role(),
                clinic_id=int(session["clinic_id"]),
                schedule_id=schedule_id,
            )
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "message": "Schedule deleted"}), 200
