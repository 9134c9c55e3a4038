"""
Roster Celery tasks.

Each job task receives a job id; parameters live on the job row so a task can
be retried without re-sending them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from celery import shared_task

from roster_app.jobs.runner import execute_job
from roster_app.models import JobOperation


@shared_task(name="jobs.healthcheck", bind=True)
def jobs_healthcheck(self) -> dict[str, Any]:
    """
    Simple heartbeat task used by worker health checks.
    """
    now = datetime.now(timezone.utc)
    return {
        "status": "ok",
        "timestamp": now.isoformat(),
        "worker_hostname": self.request.hostname,
    }


@shared_task(name="jobs.merge_parents", bind=True)
def merge_parents(self, *, job_id: int) -> dict[str, Any]:
    """Collapse duplicate students on the job's sheet and consolidate guardians."""

    return execute_job(job_id, expected_operation=JobOperation.MERGE_PARENTS)


@shared_task(name="jobs.populate_missing_fields", bind=True)
def populate_missing_fields(self, *, job_id: int) -> dict[str, Any]:
    """Forward-fill the job's ``columnKey`` column."""

    return execute_job(job_id, expected_operation=JobOperation.POPULATE_MISSING_FIELDS)


TASK_NAMES = {
    JobOperation.MERGE_PARENTS: "jobs.merge_parents",
    JobOperation.POPULATE_MISSING_FIELDS: "jobs.populate_missing_fields",
}
