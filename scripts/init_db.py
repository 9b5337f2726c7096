from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.attendance_payroll.attendance_payroll.core.logging_config import setup_logging
from src.attendance_payroll.attendance_payroll.database.bootstrap import apply_schema, list_tables
from src.attendance_payroll.attendance_payroll.database.connection import DBConfig, DatabaseConnection


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    logger = setup_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    conn_factory = DatabaseConnection(DBConfig.from_mapping(settings.DB_CONFIG))
    cfg = conn_factory.config

    applied = apply_schema(conn_factory, schema_path=REPO_ROOT / "database" / "schema.sql")
    tables = list_tables(conn_factory)
    logger.info(
        "Applied %d statement(s) from schema.sql -> %s@%s:%s/%s (tables=%d)",
        applied,
        cfg.user,
        cfg.host,
        cfg.port,
        cfg.database,
        len(tables),
    )


if __name__ == "__main__":
    main()
