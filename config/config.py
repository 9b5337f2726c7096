"""Shared environment readers for the per-environment settings modules."""

import os


def env_bool(name, default="0"):
    return bool(int(os.getenv(name, default)))


def env_int(name, default):
    return int(os.getenv(name, str(default)))


def db_config(default_password=""):
    return {
        "host": os.getenv("DB_HOST", "localhost"),
        "port": env_int("DB_PORT", 3306),
        "user": os.getenv("DB_USER", "root"),
        "password": os.getenv("DB_PASSWORD", default_password),
        "database": os.getenv("DB_NAME", "attendance_payroll"),
    }


def device_pool(default_primary_ip="192.168.1.201"):
    """Primary from ZKT_PRIMARY_*, secondaries from ZKT_SECONDARY_<n>_* (n = 2, 3, ...) until a gap."""

    timeout = env_int("ZKT_TIMEOUT_MS", 5000)
    pool = {
        "primary": {
            "ip": os.getenv("ZKT_PRIMARY_IP", default_primary_ip),
            "port": env_int("ZKT_PRIMARY_PORT", 4370),
            "timeout": timeout,
        },
        "secondary": [],
    }
    n = 2
    while os.getenv(f"ZKT_SECONDARY_{n}_IP"):
        pool["secondary"].append(
            {
                "ip": os.getenv(f"ZKT_SECONDARY_{n}_IP"),
                "port": env_int(f"ZKT_SECONDARY_{n}_PORT", 4370),
                "timeout": timeout,
            }
        )
        n += 1
    return pool


def retry():
    return {
        "max_attempts": env_int("ZKT_RETRY_MAX_ATTEMPTS", 3),
        "base_delay_ms": env_int("ZKT_RETRY_BASE_DELAY_MS", 1000),
        "max_delay_ms": env_int("ZKT_RETRY_MAX_DELAY_MS", 10000),
        "backoff_multiplier": float(os.getenv("ZKT_RETRY_BACKOFF_MULTIPLIER", "2")),
    }


def circuit_breaker():
    return {
        "failure_threshold": env_int("ZKT_CB_FAILURE_THRESHOLD", 5),
        "recovery_timeout_ms": env_int("ZKT_CB_RECOVERY_TIMEOUT_MS", 30000),
    }


def identity_mapping():
    return {
        "strategy": os.getenv("EMPLOYEE_MAPPING_STRATEGY", "email_prefix"),
        "email_domain": os.getenv("EMPLOYEE_EMAIL_DOMAIN", "@company.com"),
        "cache_ttl_minutes": env_int("EMPLOYEE_CACHE_TTL_MINUTES", 30),
        "batch_size": env_int("EMPLOYEE_VALIDATION_BATCH_SIZE", 50),
    }


def payroll_rules():
    return {
        "daily_threshold": os.getenv("PAYROLL_DAILY_THRESHOLD", "8"),
        "weekly_threshold": os.getenv("PAYROLL_WEEKLY_THRESHOLD", "40"),
        "overtime_multiplier": os.getenv("PAYROLL_OVERTIME_MULTIPLIER", "1.5"),
        "default_rate": os.getenv("PAYROLL_DEFAULT_RATE", "10.00"),
    }


def reconciliation():
    return {
        "expected_punches_per_day": env_int("ATTENDANCE_EXPECTED_PUNCHES", 2),
        "duplicate_window_seconds": env_int("ATTENDANCE_DUPLICATE_WINDOW_SECONDS", 60),
    }


def notifications():
    return {"critical_cooldown_ms": env_int("NOTIFY_CRITICAL_COOLDOWN_MS", 300000)}
