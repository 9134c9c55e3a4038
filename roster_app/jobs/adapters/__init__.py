"""Tabular ingest adapters."""

from __future__ import annotations

from .csv_students import (
    CSVAdapterError,
    CSVHeaderError,
    CSVRowError,
    HeaderValidationResult,
    StudentCSVAdapter,
    StudentCSVRow,
    StudentCSVStatistics,
)

__all__ = [
    "CSVAdapterError",
    "CSVHeaderError",
    "CSVRowError",
    "HeaderValidationResult",
    "StudentCSVAdapter",
    "StudentCSVRow",
    "StudentCSVStatistics",
]
