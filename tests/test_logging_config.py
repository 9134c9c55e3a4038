import json
import logging
import sys

from flask import Flask

from roster_app.utils.logging_config import JSONFormatter, TextFormatter, setup_logging


def _record(message="Merged duplicate students", **extra):
    record = logging.LogRecord("roster_app.jobs.pipeline.merge", logging.INFO, __file__, 10, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_structured_extras():
    formatter = JSONFormatter(app_name="roster-jobs")

    payload = json.loads(formatter.format(_record(roster_sheet_id=4, roster_records_deleted=12)))

    assert payload["message"] == "Merged duplicate students"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "roster_app.jobs.pipeline.merge"
    assert payload["app"] == "roster-jobs"
    assert payload["roster_sheet_id"] == 4
    assert payload["roster_records_deleted"] == 12
    assert "exception" not in payload


def test_json_formatter_renders_exceptions():
    formatter = JSONFormatter()
    try:
        raise ConnectionError("record store unavailable")
    except ConnectionError:
        record = logging.LogRecord("roster_app", logging.ERROR, __file__, 1, "Job failed", (), sys.exc_info())

    payload = json.loads(formatter.format(record))

    assert "ConnectionError: record store unavailable" in payload["exception"]
    assert "app" not in payload


def test_text_formatter_appends_context():
    line = TextFormatter().format(_record(roster_job_id=7, roster_progress=50))

    assert "INFO [roster_app.jobs.pipeline.merge] Merged duplicate students" in line
    assert line.endswith("| roster_job_id=7 roster_progress=50")


def test_setup_logging_is_idempotent(tmp_path):
    app = Flask("roster_app")
    app.config.update(
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="json",
        ENABLE_CONSOLE_LOGGING=True,
        ENABLE_FILE_LOGGING=True,
        LOG_DIR=str(tmp_path / "logs"),
    )

    setup_logging(app)
    setup_logging(app)

    logger = logging.getLogger("roster_app")
    marked = [handler for handler in logger.handlers if getattr(handler, "_roster_handler", False)]
    assert len(marked) == 2
    assert logger.level == logging.DEBUG
    assert (tmp_path / "logs" / "roster.log").exists()

    app.config.update(ENABLE_CONSOLE_LOGGING=False, ENABLE_FILE_LOGGING=False, LOG_LEVEL="WARNING")
    setup_logging(app)
    assert not [handler for handler in logger.handlers if getattr(handler, "_roster_handler", False)]
    assert logger.level == logging.WARNING
