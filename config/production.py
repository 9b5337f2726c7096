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

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = db_config()

DEVICE_POOL = device_pool(default_primary_ip="")
RETRY = retry()
CIRCUIT_BREAKER = circuit_breaker()
IDENTITY_MAPPING = identity_mapping()
PAYROLL_RULES = payroll_rules()
RECONCILIATION = reconciliation()
NOTIFICATIONS = notifications()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON_FILE = os.getenv("LOG_JSON_FILE", "logs/attendance_payroll.json")

DEBUG = False

USE_IN_MEMORY_STORE = False
AUTO_INIT_DB = env_bool("AUTO_INIT_DB", "0")
