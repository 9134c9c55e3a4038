"""
Job lifecycle: create job rows and execute them with status bookkeeping.

Both the Celery tasks and the ``--inline`` CLI path call :func:`execute_job`,
so a job behaves the same whether it runs on a worker or in-process.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from flask import current_app

from config.merge_profile import load_profile
from roster_app.jobs.errors import JobConfigurationError, JobNotFoundError
from roster_app.jobs.metrics import record_job_duration
from roster_app.jobs.pipeline import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_WORKERS,
    ChunkedBulkWriter,
    run_forward_fill_job,
    run_merge,
)
from roster_app.jobs.progress import JobProgressReporter
from roster_app.jobs.store import SQLAlchemyRecordStore
from roster_app.models import Job, JobOperation, JobStatus, db

logger = logging.getLogger(__name__)

HEADER_ROWS_PARAMETER = "headerRows"

JobHandler = Callable[[Job, SQLAlchemyRecordStore, JobProgressReporter], Mapping[str, Any]]


def create_job(
    operation: JobOperation,
    sheet_id: int,
    params: Mapping[str, Any] | None = None,
) -> Job:
    """Persist a pending job for ``operation`` against ``sheet_id``."""

    job = Job(
        operation=operation,
        sheet_id=sheet_id,
        status=JobStatus.PENDING,
        progress=0,
        params_json=dict(params or {}),
    )
    db.session.add(job)
    db.session.commit()
    logger.info(
        "Job created",
        extra={"roster_job_id": job.id, "roster_operation": operation.value, "roster_sheet_id": sheet_id},
    )
    return job


def _merge_parents(job: Job, store: SQLAlchemyRecordStore, progress: JobProgressReporter) -> Mapping[str, Any]:
    config = current_app.config
    profile = load_profile(config)
    writer = ChunkedBulkWriter(
        store,
        chunk_size=config.get("ROSTER_DELETE_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
        max_workers=config.get("ROSTER_DELETE_MAX_WORKERS", DEFAULT_MAX_WORKERS),
    )
    result = run_merge(
        store,
        job.sheet_id,
        profile.natural_key,
        profile.slot_a_prefix,
        profile.slot_b_prefix,
        progress,
        writer=writer,
        log_extra={"roster_job_id": job.id},
    )
    return {
        "duplicate_groups": result.duplicate_group_count,
        "records_updated": len(result.updated_master_records),
        "records_deleted": len(result.record_ids_to_delete),
    }


def _populate_missing_fields(
    job: Job, store: SQLAlchemyRecordStore, progress: JobProgressReporter
) -> Mapping[str, Any]:
    params = job.params_json or {}
    header_rows = params.get(HEADER_ROWS_PARAMETER)
    if header_rows is None:
        header_rows = current_app.config.get("ROSTER_FORWARD_FILL_HEADER_ROWS", 1)
    updated = run_forward_fill_job(store, job.id, job.sheet_id, int(header_rows), progress)
    return {"cells_filled": updated}


JOB_HANDLERS: Mapping[JobOperation, JobHandler] = {
    JobOperation.MERGE_PARENTS: _merge_parents,
    JobOperation.POPULATE_MISSING_FIELDS: _populate_missing_fields,
}


def execute_job(job_id: int, *, expected_operation: JobOperation | None = None) -> dict[str, Any]:
    """
    Run a pending job to completion.

    The job moves to RUNNING, then SUCCEEDED with its result payload, or
    FAILED with ``error_summary`` set to the error message; the error is
    re-raised after bookkeeping.
    """

    job = db.session.get(Job, job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    if expected_operation is not None and job.operation != expected_operation:
        raise JobConfigurationError(
            f"Job {job_id} is a {job.operation.value} job, not {expected_operation.value}."
        )

    job.status = JobStatus.RUNNING
    job.started_at = datetime.now(timezone.utc)
    job.error_summary = None
    db.session.commit()
    operation = job.operation
    started = time.perf_counter()

    try:
        if job.sheet_id is None:
            raise JobConfigurationError(f"Job {job_id} has no target sheet.")
        handler = JOB_HANDLERS[operation]
        result = dict(handler(job, SQLAlchemyRecordStore(), JobProgressReporter(job_id)))

        job = db.session.get(Job, job_id)
        job.status = JobStatus.SUCCEEDED
        job.result_json = result
        job.finished_at = datetime.now(timezone.utc)
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        record_job_duration(
            operation=operation.value, status="failed", duration_seconds=time.perf_counter() - started
        )
        recovery_job = db.session.get(Job, job_id)
        if recovery_job is not None:
            recovery_job.status = JobStatus.FAILED
            recovery_job.error_summary = str(exc)
            recovery_job.finished_at = datetime.now(timezone.utc)
            db.session.commit()
        logger.exception(
            "Job failed",
            extra={
                "roster_job_id": job_id,
                "roster_operation": operation.value,
                "roster_error": str(exc),
            },
        )
        raise

    duration = time.perf_counter() - started
    record_job_duration(operation=operation.value, status="succeeded", duration_seconds=duration)
    logger.info(
        "Job completed",
        extra={
            "roster_job_id": job_id,
            "roster_operation": operation.value,
            "roster_duration_seconds": round(duration, 3),
            **{f"roster_{key}": value for key, value in result.items()},
        },
    )
    return {"job_id": job_id, "operation": operation.value, "status": JobStatus.SUCCEEDED.value, **result}


__all__ = ["HEADER_ROWS_PARAMETER", "JOB_HANDLERS", "create_job", "execute_job"]
