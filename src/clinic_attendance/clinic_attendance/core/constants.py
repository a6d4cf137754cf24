"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_METERS = 6_371_000

DEFAULT_RADIUS_METERS = 100
MAX_RADIUS_METERS = 10_000

DEFAULT_LATE_GRACE_MINUTES = 0
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200

DEFAULT_GEOLOCATION_TIMEOUT_SECONDS = 8.0

DEFAULT_STORE_RETRY_ATTEMPTS = 3
DEFAULT_STORE_RETRY_BASE_DELAY = 0.1

QR_URL_MARKER = "/qr/"
