"""Exceptions raised by roster jobs."""

from __future__ import annotations


class RosterJobError(Exception):
    """Base exception for job failures."""


class JobConfigurationError(RosterJobError):
    """Raised when a job is missing a required parameter; nothing has been mutated yet."""


class SheetNotFoundError(JobConfigurationError):
    """Raised when the target sheet does not exist."""

    def __init__(self, sheet_id: int) -> None:
        super().__init__(f"Sheet {sheet_id} not found.")
        self.sheet_id = sheet_id


class JobNotFoundError(JobConfigurationError):
    """Raised when a job row cannot be loaded."""

    def __init__(self, job_id: int) -> None:
        super().__init__(f"Job {job_id} not found.")
        self.job_id = job_id
