from __future__ import annotations

from flask import Flask, jsonify, request, session

from ..common.http import current_role, error_response, manager_required, request_json
from ..container import Container
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    @app.route("/api/admin/branches", methods=["GET"], endpoint="api_branches_list")
    @manager_required
    def api_branches_list():
        try:
            branches = container.branch_service.list(clinic_id=int(session["clinic_id"]))
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "data": [b.to_dict() for b in branches]}), 200

    @app.route("/api/admin/branches", methods=["POST"], endpoint="api_branches_create")
    @manager_required
    def api_branches_create():
        data = request_json(request)
        try:
            branch = container.branch_service.create(
                current_role=current_role(),
                clinic_id=int(session["clinic_id"]),
                branch_name=data.get("branch_name") or "",
                latitude=data.get("latitude"),
                longitude=data.get("longitude"),
                attendance_radius_meters=data.get("attendance_radius_meters"),
                address=data.get("address"),
                display_order=data.get("display_order") or 0,
            )
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "message": "Branch saved", "data": branch.to_dict()}), 201
