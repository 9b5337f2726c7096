"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

DEFAULT_DEVICE_PORT = 4370
DEFAULT_DEVICE_TIMEOUT_MS = 5000

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_MS = 1000
DEFAULT_MAX_DELAY_MS = 10000
DEFAULT_BACKOFF_MULTIPLIER = 2.0
JITTER_RATIO = 0.1

DEFAULT_FAILURE_THRESHOLD = 5
DEFAULT_RECOVERY_TIMEOUT_MS = 30000
DEFAULT_NOTIFICATION_COOLDOWN_MS = 300000

DEFAULT_MAPPING_STRATEGY = "email_prefix"
DEFAULT_EMAIL_DOMAIN = "@company.com"
DEFAULT_CACHE_TTL_MINUTES = 30
DEFAULT_VALIDATION_BATCH_SIZE = 50

DEFAULT_EXPECTED_PUNCHES_PER_DAY = 2
DEFAULT_DUPLICATE_WINDOW_SECONDS = 60

DAILY_THRESHOLD = Decimal("8")
WEEKLY_THRESHOLD = Decimal("40")
OVERTIME_MULTIPLIER = Decimal("1.5")
DEFAULT_STANDARD_RATE = Decimal("10.00")

TWO_PLACES = Decimal("0.01")
