import os

from config.config import (
    circuit_breaker,
    db_config,
    device_pool,
    env_bool,
    identity_mapping,
    notifications,
    payroll_rules,
    reconciliation,
    retry,
)

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = db_config()

DEVICE_POOL = device_pool()
RETRY = retry()
CIRCUIT_BREAKER = circuit_breaker()
IDENTITY_MAPPING = identity_mapping()
PAYROLL_RULES = payroll_rules()
RECONCILIATION = reconciliation()
NOTIFICATIONS = notifications()

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_JSON_FILE = os.getenv("LOG_JSON_FILE") or None

DEBUG = True

# Run against a process-local store instead of MySQL
USE_IN_MEMORY_STORE = env_bool("USE_IN_MEMORY_STORE", "0")
# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = env_bool("AUTO_INIT_DB", "1")
