from __future__ import annotations

from flask import Flask, jsonify, request, session

from ..common.datetime_utils import parse_iso_date, parse_iso_datetime
from ..common.http import error_response, login_required, manager_required, request_json, result_response
from ..container import Container
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from ..geofence.location import LocationOutcome
from ..qrcodes.imaging import decode_first


def register(app: Flask, container: Container) -> None:
    ops = container.operations

    def _record(record):
        return record.to_dict()

    def _optional_date(value):
        return parse_iso_date(value) if value else None

    def _optional_datetime(value):
        return parse_iso_datetime(value) if value else None

    def _scan_args(data: dict) -> dict:
        return {
            "location": LocationOutcome.from_payload(data),
            "device_info": (data.get("device_info") or request.headers.get("User-Agent") or None),
        }

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="api_check_in")
    @login_required
    def api_check_in():
        data = request_json(request)
        try:
            args = _scan_args(data)
        except ValidationError as e:
            return error_response(e)
        result = ops.check_in(
            int(session["user_id"]),
            int(session["clinic_id"]),
            (data.get("qr_code") or "").strip(),
            **args,
        )
        return result_response(result, _record)

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="api_check_out")
    @login_required
    def api_check_out():
        data = request_json(request)
        try:
            args = _scan_args(data)
        except ValidationError as e:
            return error_response(e)
        result = ops.check_out(
            int(session["user_id"]),
            int(session["clinic_id"]),
            (data.get("qr_code") or "").strip(),
            **args,
        )
        return result_response(result, _record)

    @app.route("/api/qr/scan", methods=["POST"], endpoint="api_qr_scan")
    @login_required
    def api_qr_scan():
        """Single scan: checks in, or checks out when already checked in today."""
        data = request_json(request)
        try:
            args = _scan_args(data)
        except ValidationError as e:
            return error_response(e)
        result = ops.auto_check(
            int(session["user_id"]),
            int(session["clinic_id"]),
            (data.get("qr_code") or "").strip(),
            **args,
        )
        return result_response(result, lambda outcome: outcome.to_dict())

    @app.route("/api/qr/scan/image", methods=["POST"], endpoint="api_qr_scan_image")
    @login_required
    def api_qr_scan_image():
        if "image" not in request.files:
            return jsonify({"success": False, "message": "Image file is required"}), 400

        try:
            scanned = decode_first(request.files["image"].stream)
            args = _scan_args(request.form.to_dict())
        except ValidationError as e:
            return error_response(e)
        if not scanned:
            return jsonify({"success": False, "message": "No QR code found in the image"}), 400

        result = ops.auto_check(int(session["user_id"]), int(session["clinic_id"]), scanned, **args)
        return result_response(result, lambda outcome: outcome.to_dict())

    @app.route("/api/attendance/today", methods=["GET"], endpoint="api_attendance_today")
    @login_required
    def api_attendance_today():
        result = ops.get_today_attendance(int(session["user_id"]), int(session["clinic_id"]))
        return result_response(result, _record)

    @app.route("/api/attendance/records", methods=["GET"], endpoint="api_attendance_records")
    @login_required
    def api_attendance_records():
        args = request.args
        try:
            user_id = args.get("user_id", type=int)
            start_date = _optional_date(args.get("start_date"))
            end_date = _optional_date(args.get("end_date"))
        except ValidationError as e:
            return error_response(e)

        result = ops.list_records(
            int(session["user_id"]),
            user_id=user_id,
            status=args.get("status") or None,
            start_date=start_date,
            end_date=end_date,
            page=args.get("page", 1, type=int),
            page_size=args.get("page_size", DEFAULT_PAGE_SIZE, type=int),
            branch_id=args.get("branch_id", type=int),
        )
        return result_response(result, lambda page: page.to_dict())

    @app.route("/api/attendance/team", methods=["GET"], endpoint="api_attendance_team")
    @manager_required
    def api_attendance_team():
        try:
            work_date = _optional_date(request.args.get("date"))
        except ValidationError as e:
            return error_response(e)
        result = ops.get_team_status(
            int(session["user_id"]),
            int(session["clinic_id"]),
            work_date,
            branch_id=request.args.get("branch_id", type=int),
        )
        return result_response(result, lambda status: status.to_dict())

    @app.route("/api/admin/attendance/<int:attendance_id>", methods=["PATCH"], endpoint="api_attendance_edit")
    @manager_required
    def api_attendance_edit(attendance_id: int):
        data = request_json(request)
        changes = {}
        try:
            if "check_in_time" in data:
                changes["check_in_time"] = _optional_datetime(data.get("check_in_time"))
            if "check_out_time" in data:
                changes["check_out_time"] = _optional_datetime(data.get("check_out_time"))
            if data.get("status"):
                try:
                    changes["status"] = AttendanceStatus(data["status"])
                except ValueError:
                    raise ValidationError(f"Unknown attendance status: {data['status']!r}")
        except ValidationError as e:
            return error_response(e)
        if "notes" in data:
            changes["notes"] = data.get("notes")

        result = ops.edit_record(int(session["user_id"]), int(session["clinic_id"]), attendance_id, **changes)
        return result_response(result, _record)
