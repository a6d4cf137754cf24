import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "clinic_attendance_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

CLINIC_TIMEZONE = None
QR_BASE_URL = "http://testserver"

DEFAULT_RADIUS_METERS = 100
LATE_GRACE_MINUTES = 0
CLINIC_DEFAULT_SCHEDULE = True

STORE_RETRY_ATTEMPTS = 3
STORE_RETRY_BASE_DELAY = 0.0
GEOLOCATION_TIMEOUT_SECONDS = 1.0
