# roster_app/utils/logging_config.py
"""
Logging setup for the roster jobs application.

Log records carry structured context through ``extra=`` (keys such as
``roster_job_id`` or ``roster_sheet_id``). The JSON formatter emits those keys
as top-level fields; the text formatter appends them as ``key=value`` pairs.
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

# Attributes present on every LogRecord; anything else arrived via ``extra=``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}

_HANDLER_MARKER = "_roster_handler"


def _extra_fields(record):
    return {key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS}


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def __init__(self, app_name=None):
        super().__init__()
        self.app_name = app_name

    def format(self, record):
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.app_name:
            payload["app"] = self.app_name
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter that keeps structured context visible."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s [%(name)s] %(message)s")

    def format(self, record):
        line = super().format(record)
        extras = _extra_fields(record)
        if extras:
            context = " ".join(f"{key}={value}" for key, value in sorted(extras.items()))
            line = f"{line} | {context}"
        return line


def _build_formatter(app):
    if str(app.config.get("LOG_FORMAT", "json")).lower() == "json":
        return JSONFormatter(app_name=app.config.get("APP_NAME"))
    return TextFormatter()


def setup_logging(app):
    """
    Configure application logging from the Flask config.

    Safe to call more than once: handlers installed by a previous call are
    replaced rather than duplicated.
    """
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    formatter = _build_formatter(app)

    targets = [logging.getLogger("roster_app")]
    if app.logger not in targets:
        targets.append(app.logger)
    for target in targets:
        for handler in list(target.handlers):
            if getattr(handler, _HANDLER_MARKER, False):
                target.removeHandler(handler)
                handler.close()
        target.setLevel(level)

    handlers = []
    if app.config.get("ENABLE_CONSOLE_LOGGING", True):
        handlers.append(logging.StreamHandler())

    if app.config.get("ENABLE_FILE_LOGGING", False):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                os.path.join(log_dir, "roster.log"),
                maxBytes=app.config.get("LOG_FILE_MAX_BYTES", 10485760),
                backupCount=app.config.get("LOG_FILE_BACKUP_COUNT", 10),
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        setattr(handler, _HANDLER_MARKER, True)
        for target in targets:
            target.addHandler(handler)

    app.logger.debug(
        "Logging configured",
        extra={"roster_log_level": logging.getLevelName(level), "roster_log_handlers": len(handlers)},
    )
