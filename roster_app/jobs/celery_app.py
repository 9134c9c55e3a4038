"""
Celery wiring for the roster jobs worker.

Jobs run on a single ``jobs`` queue. Without ``CELERY_BROKER_URL`` and
``CELERY_RESULT_BACKEND`` both the broker and the result backend live in one
SQLite file next to the Flask instance folder.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

from celery import Celery, Task
from flask import Flask
from kombu import Queue

DEFAULT_QUEUE_NAME = "jobs"
DEFAULT_SQLITE_FILENAME = "celery.sqlite"
EXTENSION_KEY = "roster_jobs"


def _sqlite_url(app: Flask, scheme: str) -> str:
    path = Path(app.config.get("CELERY_SQLITE_PATH") or DEFAULT_SQLITE_FILENAME)
    if not path.is_absolute():
        path = Path(app.instance_path) / path
    path.parent.mkdir(parents=True, exist_ok=True)
    # Celery expects forward slashes even on Windows.
    return f"{scheme}:///{path.as_posix()}"


def _config_overrides(app: Flask) -> Mapping[str, Any]:
    """``CELERY_CONFIG`` as a mapping; accepts a JSON object string from the environment."""

    overrides = app.config.get("CELERY_CONFIG") or {}
    if isinstance(overrides, str):
        try:
            overrides = json.loads(overrides)
        except json.JSONDecodeError:
            app.logger.warning("CELERY_CONFIG is not valid JSON; ignoring value.", exc_info=True)
            return {}
    if not isinstance(overrides, Mapping):
        app.logger.warning("CELERY_CONFIG must be a JSON object; ignoring value.")
        return {}
    return overrides


def create_celery_app(app: Flask) -> Celery:
    """Build the Celery instance whose tasks run inside ``app``'s context."""

    broker_url = app.config.get("CELERY_BROKER_URL") or _sqlite_url(app, "sqla+sqlite")
    result_backend = app.config.get("CELERY_RESULT_BACKEND") or _sqlite_url(app, "db+sqlite")

    class FlaskContextTask(Task):
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return super().__call__(*args, **kwargs)

    celery_app = Celery(
        app.import_name,
        broker=broker_url,
        backend=result_backend,
        include=("roster_app.jobs.tasks",),
        task_cls=FlaskContextTask,
    )
    # One job at a time per worker process; a job is acknowledged once it finishes.
    celery_app.conf.update(
        task_default_queue=DEFAULT_QUEUE_NAME,
        task_queues=(Queue(DEFAULT_QUEUE_NAME),),
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        broker_connection_retry_on_startup=True,
        task_time_limit=app.config.get("ROSTER_TASK_TIME_LIMIT", 15 * 60),
        task_soft_time_limit=app.config.get("ROSTER_TASK_SOFT_TIME_LIMIT", 12 * 60),
        worker_hijack_root_logger=False,
    )
    overrides = _config_overrides(app)
    celery_app.conf.update(overrides)

    if not app.config.get("SQLALCHEMY_ECHO", False):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    app.logger.info(
        "Roster Celery configuration resolved",
        extra={
            "roster_celery_broker_url": broker_url,
            "roster_celery_result_backend": result_backend,
            "roster_celery_overrides": sorted(overrides),
        },
    )
    celery_app.loader.import_default_modules()
    return celery_app


def ensure_celery_app(app: Flask, state: dict[str, Any]) -> Celery:
    """Return the Celery instance cached in the jobs extension state, creating it once."""

    if state.get("celery_app") is None:
        state["celery_app"] = create_celery_app(app)
    return state["celery_app"]


def get_celery_app(app: Flask) -> Celery | None:
    state: dict[str, Any] | None = app.extensions.get(EXTENSION_KEY)  # type: ignore[arg-type]
    if state is None:
        return None
    return ensure_celery_app(app, state)
