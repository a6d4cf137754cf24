from __future__ import annotations

from flask import Flask, jsonify, request, send_file, session

from ..common.http import manager_required, login_required, request_json, result_response
from ..container import Container
from .imaging import render_png


def register(app: Flask, container: Container) -> None:
    ops = container.operations

    def _qr_payload(qr):
        data = qr.to_dict()
        data["scan_url"] = container.qr_manager.scan_url(qr)
        return data

    @app.route("/api/admin/qr/generate", methods=["POST"], endpoint="api_qr_generate")
    @manager_required
    def api_qr_generate():
        data = request_json(request)
        result = ops.generate_qr_code(
            int(session["clinic_id"]),
            anchor_latitude=data.get("anchor_latitude"),
            anchor_longitude=data.get("anchor_longitude"),
            radius_meters=data.get("radius_meters"),
            refresh_period=data.get("refresh_period") or "daily",
            force_regenerate=bool(data.get("force_regenerate", False)),
            requested_by=int(session["user_id"]),
            branch_id=data.get("branch_id"),
        )
        return result_response(result, _qr_payload)

    @app.route("/api/qr/today", methods=["GET"], endpoint="api_qr_today")
    @login_required
    def api_qr_today():
        result = ops.get_today_qr_code(int(session["clinic_id"]), request.args.get("branch_id", type=int))
        return result_response(result, _qr_payload)

    @app.route("/api/qr/today/image", methods=["GET"], endpoint="api_qr_today_image")
    @login_required
    def api_qr_today_image():
        """PNG of today's clinic QR code for printing or display at the entrance."""
        result = ops.get_today_qr_code(int(session["clinic_id"]), request.args.get("branch_id", type=int))
        if not result.success:
            return result_response(result)
        if result.data is None:
            return jsonify({"success": False, "message": result.message}), 404

        buf = render_png(container.qr_manager.scan_url(result.data))
        return send_file(buf, mimetype="image/png")
