"""
Roster jobs application factory.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping

from flask import Flask
from sqlalchemy import event

from config import CONFIG_BY_NAME, MONITORING_CONFIG_BY_NAME
from config.validation import validate_and_exit
from roster_app.jobs import init_jobs
from roster_app.models import db
from roster_app.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def _configure_sqlite_connection_factory(*, enable_foreign_keys: bool):
    """Return a connection hook applying concurrency-friendly pragmas."""

    def _configure_sqlite_connection(dbapi_connection, connection_record):  # pragma: no cover - instrumentation
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA busy_timeout=5000")
            if enable_foreign_keys:
                cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()

    return _configure_sqlite_connection


def _configure_engine(app: Flask) -> None:
    engine = db.engine
    if engine.url.drivername.startswith("sqlite") and not getattr(engine, "_sqlite_pragmas_configured", False):
        event.listen(engine, "connect", _configure_sqlite_connection_factory(enable_foreign_keys=True))
        engine._sqlite_pragmas_configured = True  # type: ignore[attr-defined]


def create_app(config_name: str | None = None, overrides: Mapping[str, Any] | None = None) -> Flask:
    """
    Build the Flask application.

    ``config_name`` selects development/testing/production settings and
    defaults to ``FLASK_ENV``. ``overrides`` are applied last, before any
    extension reads the config.
    """
    config_name = config_name or os.environ.get("FLASK_ENV", "development")
    if config_name == "production":
        validate_and_exit(config_name)

    app = Flask("roster_app")
    app.config.from_object(CONFIG_BY_NAME.get(config_name, CONFIG_BY_NAME["development"]))
    app.config.from_object(MONITORING_CONFIG_BY_NAME.get(config_name, MONITORING_CONFIG_BY_NAME["development"]))
    if overrides:
        app.config.update(overrides)

    setup_logging(app)
    db.init_app(app)

    with app.app_context():
        _configure_engine(app)
        # Tests manage their own schema.
        if not app.config.get("TESTING", False):
            db.create_all()

    init_jobs(app)
    logger.debug("Application created", extra={"roster_config_name": config_name})
    return app


__all__ = ["create_app"]
