"""
Forward-fill a single column: blank cells take the nearest non-blank value above.

Spreadsheets exported from student information systems often print a value
only on the first row of a block (homeroom, period, guardian). This engine
propagates those values down the column so every row carries them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from roster_app.jobs.errors import JobConfigurationError
from roster_app.jobs.metrics import record_forward_fill

from .progress import ProgressCallback, ProgressTracker, as_tracker
from .records import CellMessage, Record, RecordId, copy_records, is_blank

if TYPE_CHECKING:  # pragma: no cover
    from roster_app.jobs.store import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_HEADER_ROWS = 1
COLUMN_KEY_PARAMETER = "columnKey"
PROGRESS_EVERY = 10


@dataclass(frozen=True)
class ForwardFillResult:
    records: tuple[Record, ...]
    filled_record_ids: tuple[RecordId, ...]

    @property
    def updated_count(self) -> int:
        return len(self.filled_record_ids)


def forward_fill(
    records: Iterable[Record],
    column_key: str,
    *,
    header_rows: int = DEFAULT_HEADER_ROWS,
    progress: ProgressCallback | ProgressTracker | None = None,
) -> ForwardFillResult:
    """
    Return copies of ``records`` with blank ``column_key`` cells filled.

    The first ``header_rows`` records are left untouched and do not seed the
    fill value. Records without a ``column_key`` cell are skipped. Blank cells
    before the first non-blank value stay blank.
    """
    tracker = as_tracker(progress)
    filled = copy_records(records)
    total = len(filled)
    data_rows = max(total - 1, 1)

    previous: Any = None
    previous_errors: tuple[CellMessage, ...] = ()
    filled_ids: list[RecordId] = []
    for index in range(max(header_rows, 0), total):
        record = filled[index]
        cell = record.values.get(column_key)
        if cell is not None:
            if not is_blank(cell.value):
                previous, previous_errors = cell.value, cell.errors
            elif previous is not None:
                record.set_value(column_key, previous, errors=previous_errors)
                filled_ids.append(record.id)

        if index % PROGRESS_EVERY == 0:
            fraction = index / data_rows
            tracker.report(round(10 + fraction * 80), f"Processed {index} of {total - 1} records...")

    return ForwardFillResult(records=tuple(filled), filled_record_ids=tuple(filled_ids))


def run_forward_fill(
    store: "RecordStore",
    sheet_id: int,
    column_key: str | None,
    header_rows: int = DEFAULT_HEADER_ROWS,
    progress: ProgressCallback | ProgressTracker | None = None,
    *,
    log_extra: Mapping[str, object] | None = None,
) -> int:
    """
    Forward-fill ``column_key`` on a sheet and write the batch back once.

    Returns the number of cells that were filled.
    """
    if column_key is None or not str(column_key).strip():
        raise JobConfigurationError("No column specified for processing")
    column_key = str(column_key).strip()

    tracker = as_tracker(progress)
    tracker.report(10, "Starting to process records...")

    records = store.fetch_records(sheet_id)
    if not records:
        tracker.report(100, "No records found to process")
        return 0

    result = forward_fill(records, column_key, header_rows=header_rows, progress=tracker)
    data_records = result.records[max(header_rows, 0) :]
    if data_records:
        store.update_records(sheet_id, list(data_records))

    record_forward_fill(result.updated_count)
    logger.info(
        "Forward-filled column",
        extra={
            "roster_sheet_id": sheet_id,
            "roster_column_key": column_key,
            "roster_cells_filled": result.updated_count,
            **(log_extra or {}),
        },
    )
    tracker.report(100, f"Completed! Updated {result.updated_count} empty fields.")
    return result.updated_count


def run_forward_fill_job(
    store: "RecordStore",
    job_id: int,
    sheet_id: int,
    header_rows: int = DEFAULT_HEADER_ROWS,
    progress: ProgressCallback | ProgressTracker | None = None,
) -> int:
    """Resolve the target column from the job parameters, then forward-fill."""

    column_key = store.get_job_parameter(job_id, COLUMN_KEY_PARAMETER)
    return run_forward_fill(
        store,
        sheet_id,
        column_key,
        header_rows,
        progress,
        log_extra={"roster_job_id": job_id},
    )


__all__ = [
    "COLUMN_KEY_PARAMETER",
    "DEFAULT_HEADER_ROWS",
    "ForwardFillResult",
    "forward_fill",
    "run_forward_fill",
    "run_forward_fill_job",
]
