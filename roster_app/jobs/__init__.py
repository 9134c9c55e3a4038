"""
Roster jobs package: merge and forward-fill engines plus their orchestration.

``init_jobs`` records extension state, registers the ``flask jobs`` command
group and, when the worker is enabled, configures Celery eagerly.
"""

from __future__ import annotations

from flask import Flask

from .celery_app import EXTENSION_KEY, ensure_celery_app, get_celery_app
from .cli import jobs_cli

__all__ = ["EXTENSION_KEY", "get_celery_app", "init_jobs"]


def _ensure_extension_state(app: Flask) -> dict:
    return app.extensions.setdefault(
        EXTENSION_KEY,
        {
            "worker_enabled": False,
            "celery_app": None,
        },
    )


def _set_cli(app: Flask) -> None:
    # Avoid duplicate registrations when running tests
    if jobs_cli.name in app.cli.commands:
        app.cli.commands.pop(jobs_cli.name)
    app.cli.add_command(jobs_cli)


def init_jobs(app: Flask) -> None:
    """Attach roster jobs to ``app``."""

    state = _ensure_extension_state(app)
    worker_enabled = bool(app.config.get("ROSTER_WORKER_ENABLED", False))
    state["worker_enabled"] = worker_enabled
    if worker_enabled:
        ensure_celery_app(app, state)
    _set_cli(app)
    app.logger.info("Roster jobs initialised (worker_enabled=%s)", worker_enabled)
