"""
Load a students CSV into a sheet.

Rows are read through :class:`StudentCSVAdapter`, validated cell by cell and
appended to the sheet in file order. Cell problems never abort the load; they
are stored on the cells.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import IO, TYPE_CHECKING, Mapping, Sequence

from roster_app.jobs.adapters import StudentCSVAdapter

from .records import Record
from .validation import CellRule, validate_records

if TYPE_CHECKING:  # pragma: no cover
    from roster_app.jobs.store import SQLAlchemyRecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadSummary:
    sheet_id: int
    rows_processed: int
    rows_skipped_blank: int
    records_created: int
    records_with_errors: int
    issue_counts: Mapping[str, int] = field(default_factory=dict)
    additional_headers: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "sheet_id": self.sheet_id,
            "rows_processed": self.rows_processed,
            "rows_skipped_blank": self.rows_skipped_blank,
            "records_created": self.records_created,
            "records_with_errors": self.records_with_errors,
            "issue_counts": dict(self.issue_counts),
            "additional_headers": list(self.additional_headers),
        }


def load_students_csv(
    store: "SQLAlchemyRecordStore",
    sheet_id: int,
    file_obj: IO[str],
    *,
    rules: Sequence[CellRule],
) -> LoadSummary:
    """Validate and append every non-blank CSV row to ``sheet_id``."""

    adapter = StudentCSVAdapter(file_obj)
    # Sequence numbers stand in for ids until the store assigns real ones.
    records = [Record.from_values(row.sequence_number, row.values) for row in adapter.iter_rows()]
    validation = validate_records(records, rules)
    created_ids = store.append_records(sheet_id, [record.to_json() for record in records])

    header = adapter.header
    summary = LoadSummary(
        sheet_id=sheet_id,
        rows_processed=adapter.statistics.rows_processed,
        rows_skipped_blank=adapter.statistics.rows_skipped_blank,
        records_created=len(created_ids),
        records_with_errors=validation.records_with_errors,
        issue_counts=dict(validation.issue_counts),
        additional_headers=header.additional_headers if header else (),
    )
    logger.info(
        "Loaded students CSV",
        extra={
            "roster_sheet_id": sheet_id,
            "roster_rows_processed": summary.rows_processed,
            "roster_rows_skipped_blank": summary.rows_skipped_blank,
            "roster_records_created": summary.records_created,
            "roster_records_with_errors": summary.records_with_errors,
        },
    )
    return summary


__all__ = ["LoadSummary", "load_students_csv"]
