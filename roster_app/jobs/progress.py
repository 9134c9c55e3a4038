"""
Persist engine progress onto the job row.

Engines report ``(percent, message)`` through a callback; this reporter is
that callback for jobs. It stores the latest values on ``Job.progress`` and
``Job.info`` and ignores updates that would move progress backwards.
"""

from __future__ import annotations

import logging

from roster_app.jobs.errors import JobNotFoundError
from roster_app.models import Job, db

logger = logging.getLogger(__name__)


class JobProgressReporter:
    """Progress callback bound to a single job."""

    def __init__(self, job_id: int) -> None:
        self.job_id = job_id
        self.percent = 0
        self.message: str | None = None

    def __call__(self, percent: int, message: str) -> None:
        percent = max(0, min(100, int(percent)))
        if percent < self.percent:
            return
        self.percent = percent
        self.message = message

        job = db.session.get(Job, self.job_id)
        if job is None:
            raise JobNotFoundError(self.job_id)
        job.progress = percent
        job.info = message
        db.session.commit()
        logger.info(
            message,
            extra={"roster_job_id": self.job_id, "roster_progress": percent},
        )


__all__ = ["JobProgressReporter"]
