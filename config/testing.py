from config.config import db_config

SECRET_KEY = "test-secret"

DB_CONFIG = db_config()

DEVICE_POOL = {"primary": {"ip": "127.0.0.1", "port": 4370, "timeout": 1000}}
RETRY = {"max_attempts": 3, "base_delay_ms": 0, "max_delay_ms": 0}
CIRCUIT_BREAKER = {"failure_threshold": 5, "recovery_timeout_ms": 30000}
IDENTITY_MAPPING = {"strategy": "email_prefix", "email_domain": "@co.com", "cache_ttl_minutes": 30, "batch_size": 10}
PAYROLL_RULES = {}
RECONCILIATION = {}
NOTIFICATIONS = {"critical_cooldown_ms": 0}

LOG_LEVEL = "WARNING"
LOG_JSON_FILE = None

DEBUG = False
TESTING = True

USE_IN_MEMORY_STORE = True
AUTO_INIT_DB = False
