"""
Operator commands for roster jobs (``flask jobs ...``).
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import click
from celery import Celery
from celery.exceptions import TimeoutError as CeleryTimeoutError
from flask.cli import ScriptInfo, with_appcontext

from roster_app.jobs.adapters import CSVAdapterError
from roster_app.jobs.celery_app import DEFAULT_QUEUE_NAME, EXTENSION_KEY, get_celery_app
from roster_app.jobs.pipeline import COLUMN_KEY_PARAMETER, build_default_rules, load_students_csv
from roster_app.jobs.runner import HEADER_ROWS_PARAMETER, create_job, execute_job
from roster_app.jobs.store import SQLAlchemyRecordStore
from roster_app.jobs.tasks import TASK_NAMES
from roster_app.models import Job, JobOperation, JobStatus, Sheet, db


@click.group(name="jobs")
def jobs_cli():
    """Roster job commands: load sheets, merge duplicates, forward-fill columns."""


def _resolve_celery(app) -> Celery:
    """
    Retrieve the registered Celery instance, raising a helpful error if missing.
    """
    celery_app = get_celery_app(app)
    if celery_app is None:
        raise click.ClickException(
            "Roster Celery app is unavailable. Ensure init_jobs(app) runs before worker commands."
        )
    return celery_app


def _require_sheet(sheet_id: int) -> Sheet:
    sheet = db.session.get(Sheet, sheet_id)
    if sheet is None:
        raise click.ClickException(f"Sheet {sheet_id} not found.")
    return sheet


def _job_payload(job: Job) -> dict[str, Any]:
    return {
        "job_id": job.id,
        "operation": job.operation.value,
        "sheet_id": job.sheet_id,
        "status": job.status.value,
        "progress": job.progress,
        "info": job.info,
        "params": job.params_json or {},
        "result": job.result_json,
        "error_summary": job.error_summary,
        "started_at": job.started_at.isoformat() if job.started_at else None,
        "finished_at": job.finished_at.isoformat() if job.finished_at else None,
    }


def _dispatch(app, job: Job, *, inline: bool) -> None:
    job_id = job.id
    if inline:
        try:
            execute_job(job_id, expected_operation=job.operation)
        except Exception as exc:
            raise click.ClickException(f"Job {job_id} failed: {exc}") from exc
        refreshed = db.session.get(Job, job_id)
        click.echo(json.dumps(_job_payload(refreshed), indent=2, sort_keys=True))
        return

    celery_app = _resolve_celery(app)
    try:
        async_result = celery_app.send_task(TASK_NAMES[job.operation], kwargs={"job_id": job_id})
    except Exception as exc:  # pragma: no cover - broker unavailable
        recovery_job = db.session.get(Job, job_id)
        if recovery_job is not None:
            recovery_job.status = JobStatus.FAILED
            recovery_job.error_summary = str(exc)
            recovery_job.finished_at = datetime.now(timezone.utc)
            db.session.commit()
        raise click.ClickException(f"Failed to enqueue job {job_id}: {exc}") from exc

    app.logger.info(
        "Job queued via CLI",
        extra={
            "roster_job_id": job_id,
            "roster_task_id": async_result.id,
            "roster_operation": job.operation.value,
        },
    )
    click.echo(json.dumps({"job_id": job_id, "task_id": async_result.id, "status": "queued"}))


@jobs_cli.command("load-csv")
@with_appcontext
@click.option(
    "--file",
    "file_path",
    required=True,
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="Students CSV to load.",
)
@click.option("--sheet-id", type=int, help="Append to an existing sheet.")
@click.option("--sheet-name", help="Create a new sheet with this name.")
@click.pass_context
def load_csv(ctx, file_path: Path, sheet_id: Optional[int], sheet_name: Optional[str]):
    """Validate a students CSV and append its rows to a sheet."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    if (sheet_id is None) == (sheet_name is None):
        raise click.ClickException("Provide exactly one of --sheet-id or --sheet-name.")

    store = SQLAlchemyRecordStore()
    if sheet_id is None:
        sheet_id = store.create_sheet(sheet_name)
    else:
        _require_sheet(sheet_id)

    rules = build_default_rules(
        phone_fields=app.config.get("ROSTER_PHONE_FIELDS", ()),
        email_fields=app.config.get("ROSTER_EMAIL_FIELDS", ()),
        default_prefix=app.config.get("ROSTER_DEFAULT_REGION_PREFIX", "+1"),
    )
    try:
        with file_path.open("r", encoding="utf-8", newline="") as handle:
            summary = load_students_csv(store, sheet_id, handle, rules=rules)
    except CSVAdapterError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(json.dumps(summary.to_dict(), indent=2, sort_keys=True))


@jobs_cli.command("merge-parents")
@with_appcontext
@click.option("--sheet-id", required=True, type=int, help="Sheet whose duplicate students are merged.")
@click.option(
    "--inline/--no-inline",
    default=False,
    help="Run inline within the CLI process instead of queueing via Celery.",
)
@click.pass_context
def merge_parents(ctx, sheet_id: int, inline: bool):
    """Merge duplicate students and consolidate their guardian contacts."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    _require_sheet(sheet_id)
    job = create_job(JobOperation.MERGE_PARENTS, sheet_id)
    _dispatch(app, job, inline=inline)


@jobs_cli.command("populate-missing-fields")
@with_appcontext
@click.option("--sheet-id", required=True, type=int, help="Sheet to forward-fill.")
@click.option("--column", "column_key", required=True, help="Field key of the column to fill.")
@click.option(
    "--header-rows",
    type=click.IntRange(min=0),
    help="Leading records to leave untouched (defaults to ROSTER_FORWARD_FILL_HEADER_ROWS).",
)
@click.option(
    "--inline/--no-inline",
    default=False,
    help="Run inline within the CLI process instead of queueing via Celery.",
)
@click.pass_context
def populate_missing_fields(ctx, sheet_id: int, column_key: str, header_rows: Optional[int], inline: bool):
    """Fill blank cells of a column with the nearest value above."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    _require_sheet(sheet_id)
    params: dict[str, Any] = {COLUMN_KEY_PARAMETER: column_key}
    if header_rows is not None:
        params[HEADER_ROWS_PARAMETER] = header_rows
    job = create_job(JobOperation.POPULATE_MISSING_FIELDS, sheet_id, params)
    _dispatch(app, job, inline=inline)


@jobs_cli.command("status")
@with_appcontext
@click.option("--job-id", required=True, type=int)
@click.pass_context
def job_status(ctx, job_id: int):
    """Show a job's status, progress and result."""
    info = ctx.ensure_object(ScriptInfo)
    info.load_app()
    job = db.session.get(Job, job_id)
    if job is None:
        raise click.ClickException(f"Job {job_id} not found.")
    click.echo(json.dumps(_job_payload(job), indent=2, sort_keys=True))


@jobs_cli.group(name="worker")
@click.pass_context
def worker_group(ctx):
    """Manage the roster background worker."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    state = app.extensions.get(EXTENSION_KEY, {})
    if not state.get("worker_enabled") and not app.config.get("ROSTER_WORKER_ENABLED"):
        click.echo(
            "Warning: ROSTER_WORKER_ENABLED is false. Commands will still run, "
            "but enable the flag to surface accurate health status.",
            err=True,
        )


@worker_group.command("run")
@click.option("--loglevel", default="info", show_default=True)
@click.option("--concurrency", type=int, help="Number of worker processes/threads.")
@click.option(
    "--pool",
    type=str,
    help="Celery pool implementation (e.g., 'prefork', 'solo', 'threads').",
)
@click.option(
    "--queues",
    default=DEFAULT_QUEUE_NAME,
    show_default=True,
    help="Comma-separated queue list to consume.",
)
@click.pass_context
def worker_run(ctx, loglevel: str, concurrency: Optional[int], pool: Optional[str], queues: str):
    """
    Start the Celery worker in the current process.
    """
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    celery_app = _resolve_celery(app)

    state = app.extensions.get(EXTENSION_KEY)
    if state is not None:
        state["worker_enabled"] = True

    argv = ["worker", "--loglevel", loglevel, "-Q", queues]
    if concurrency:
        argv.extend(["--concurrency", str(concurrency)])
    if pool:
        argv.extend(["--pool", pool])

    pool_msg = f", pool: {pool}" if pool else ""
    click.echo(f"Starting roster worker (queues: {queues}, loglevel: {loglevel}{pool_msg})")
    try:
        celery_app.worker_main(argv=argv)
    except KeyboardInterrupt:
        click.echo("Worker shutdown requested. Exiting...")


@worker_group.command("ping")
@click.option("--timeout", default=10.0, show_default=True, help="Seconds to wait for a response.")
@click.pass_context
def worker_ping(ctx, timeout: float):
    """
    Validate worker connectivity by executing the heartbeat task.
    """
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    celery_app = _resolve_celery(app)
    task = celery_app.tasks.get("jobs.healthcheck")
    if task is None:
        raise click.ClickException("Heartbeat task 'jobs.healthcheck' is not registered.")

    result = task.apply_async()
    try:
        payload = result.get(timeout=timeout)
    except CeleryTimeoutError as exc:
        raise click.ClickException(f"Worker did not respond within {timeout}s") from exc
    except Exception as exc:  # pragma: no cover - surfacing unexpected errors
        raise click.ClickException(f"Worker ping failed: {exc}") from exc

    click.echo(json.dumps(payload, indent=2))
