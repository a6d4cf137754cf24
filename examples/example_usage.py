"""Example: drive the operations layer directly (no Flask).

Controllers are thin; every use case is reachable through ``AttendanceOperations``.
"""

import importlib

from dotenv import load_dotenv

from config import get_settings_module

from clinic_attendance.container import build_container
from clinic_attendance.geofence.model import GeoPoint


def main():
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, settings=settings)
    ops = container.operations

    qr = ops.generate_qr_code(1, anchor_latitude=37.5, anchor_longitude=127.0, radius_meters=100, requested_by=2)
    print(qr.message, qr.data.to_dict() if qr.success else qr.error_kind)

    if qr.success:
        result = ops.check_in(1, 1, container.qr_manager.scan_url(qr.data), location=GeoPoint(37.5003, 127.0))
        print(result.success, result.message, result.details)

    today = ops.get_today_attendance(1)
    print(today.data.to_dict() if today.success else today.message)


if __name__ == "__main__":
    main()
