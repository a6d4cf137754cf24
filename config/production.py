import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "clinic_attendance"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "Asia/Seoul")
QR_BASE_URL = os.getenv("QR_BASE_URL", "https://attendance.example.com")

DEFAULT_RADIUS_METERS = int(os.getenv("DEFAULT_RADIUS_METERS", "100"))
LATE_GRACE_MINUTES = int(os.getenv("LATE_GRACE_MINUTES", "0"))
CLINIC_DEFAULT_SCHEDULE = bool(int(os.getenv("CLINIC_DEFAULT_SCHEDULE", "1")))

STORE_RETRY_ATTEMPTS = int(os.getenv("STORE_RETRY_ATTEMPTS", "3"))
STORE_RETRY_BASE_DELAY = float(os.getenv("STORE_RETRY_BASE_DELAY", "0.1"))
GEOLOCATION_TIMEOUT_SECONDS = float(os.getenv("GEOLOCATION_TIMEOUT_SECONDS", "8"))
