from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .core.logging_config import setup_logging
from .core.settings import load_settings
from .database.bootstrap import apply_schema, list_tables
from .database.connection import DBConfig, DatabaseConnection

from .container import build_container
from .admin.controller import register as register_admin
from .payroll.controller import register as register_payroll
from .sync.controller import register as register_sync

logger = logging.getLogger(__name__)


def create_app(**overrides) -> Flask:
    """Application factory; keyword overrides are passed to ``build_container``."""

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"), getattr(settings, "LOG_JSON_FILE", None))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    use_in_memory = bool(getattr(settings, "USE_IN_MEMORY_STORE", False))
    db_config = None if use_in_memory else dict(getattr(settings, "DB_CONFIG"))
    if db_config:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
    else:
        logger.info("settings=%s using in-memory store", settings_module)

    if db_config and bool(getattr(settings, "AUTO_INIT_DB", False)):
        conn_factory = DatabaseConnection(DBConfig.from_mapping(db_config))
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(conn_factory, schema_path=schema_path)
        logger.info("Schema ready (tables=%d)", len(list_tables(conn_factory)))

    overrides.setdefault("db_config", db_config)
    container = build_container(settings=load_settings(settings), **overrides)
    app.extensions["attendance_payroll"] = container

    register_admin(app, container)
    register_payroll(app, container)
    register_sync(app, container)

    return app
