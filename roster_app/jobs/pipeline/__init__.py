"""Roster job pipeline: record model, engines and ingest helpers."""

from __future__ import annotations

from .bulk_writer import DEFAULT_CHUNK_SIZE, DEFAULT_MAX_WORKERS, ChunkedBulkWriter, DeleteSummary, chunk_ids
from .contact_profile import FIELD_SUFFIXES, ContactProfile, field_key, slot_field_keys
from .forward_fill import (
    COLUMN_KEY_PARAMETER,
    DEFAULT_HEADER_ROWS,
    ForwardFillResult,
    forward_fill,
    run_forward_fill,
    run_forward_fill_job,
)
from .ingest import LoadSummary, load_students_csv
from .merge import MergeResult, group_by_natural_key, merge_duplicates, run_merge
from .progress import ProgressCallback, ProgressTracker, as_tracker
from .records import Cell, CellMessage, Record, RecordId, copy_records, is_blank
from .validation import ValidationSummary, build_default_rules, normalize_phone, validate_records

__all__ = [
    "COLUMN_KEY_PARAMETER",
    "Cell",
    "CellMessage",
    "ChunkedBulkWriter",
    "ContactProfile",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_MAX_WORKERS",
    "DEFAULT_HEADER_ROWS",
    "DeleteSummary",
    "FIELD_SUFFIXES",
    "ForwardFillResult",
    "LoadSummary",
    "MergeResult",
    "ProgressCallback",
    "ProgressTracker",
    "Record",
    "RecordId",
    "ValidationSummary",
    "as_tracker",
    "build_default_rules",
    "chunk_ids",
    "copy_records",
    "field_key",
    "forward_fill",
    "group_by_natural_key",
    "is_blank",
    "load_students_csv",
    "merge_duplicates",
    "normalize_phone",
    "run_forward_fill",
    "run_forward_fill_job",
    "run_merge",
    "slot_field_keys",
    "validate_records",
]
