"""Prometheus metrics helpers for roster jobs."""

from __future__ import annotations

from typing import Literal

try:
    from prometheus_client import Counter, Histogram

    _PROMETHEUS_AVAILABLE = True
except ImportError:  # pragma: no cover - metrics optional in some deployments
    Counter = Histogram = None  # type: ignore
    _PROMETHEUS_AVAILABLE = False


if _PROMETHEUS_AVAILABLE:
    _duplicate_groups_counter = Counter(
        "roster_merge_duplicate_groups_total",
        "Duplicate student groups collapsed by the merge engine.",
    )
    _merge_records_counter = Counter(
        "roster_merge_records_total",
        "Records written by the merge engine by action.",
        ["action"],
    )
    _delete_chunk_counter = Counter(
        "roster_delete_chunks_total",
        "Chunked delete calls by status.",
        ["status"],
    )
    _delete_records_counter = Counter(
        "roster_delete_records_total",
        "Records covered by chunked delete calls by status.",
        ["status"],
    )
    _forward_fill_counter = Counter(
        "roster_forward_fill_cells_total",
        "Cells populated by the forward-fill engine.",
    )
    _job_duration = Histogram(
        "roster_job_duration_seconds",
        "Duration of roster jobs in seconds.",
        ["operation", "status"],
        buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60, 120, 300),
    )
else:  # pragma: no cover - fallbacks when prometheus_client missing
    _duplicate_groups_counter = None
    _merge_records_counter = None
    _delete_chunk_counter = None
    _delete_records_counter = None
    _forward_fill_counter = None
    _job_duration = None


def record_merge(*, groups: int, updated: int, deleted: int) -> None:
    """Capture the outcome of one merge pass."""

    if _duplicate_groups_counter is not None:
        _duplicate_groups_counter.inc(groups)
    if _merge_records_counter is not None:
        _merge_records_counter.labels(action="updated").inc(updated)
        _merge_records_counter.labels(action="deleted").inc(deleted)


def record_delete_chunk(*, status: Literal["success", "failure"], record_count: int) -> None:
    """Increment the chunked-delete counter."""

    if _delete_chunk_counter is None:
        return
    _delete_chunk_counter.labels(status=status).inc()
    _delete_records_counter.labels(status=status).inc(record_count)


def record_forward_fill(cells: int) -> None:
    if _forward_fill_counter is None:
        return
    _forward_fill_counter.inc(cells)


def record_job_duration(*, operation: str, status: Literal["succeeded", "failed"], duration_seconds: float) -> None:
    """Observe how long a job took."""

    if _job_duration is None:
        return
    _job_duration.labels(operation=operation, status=status).observe(duration_seconds)
