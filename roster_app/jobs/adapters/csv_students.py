"""CSV adapter for students sheet uploads.

Validates the header row against the students contract, streams rows in file
order and applies the per-field normalizers. Columns outside the contract are
carried through under their original header.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from typing import IO, Iterator, Sequence

from roster_app.jobs.contracts import (
    FieldSpec,
    get_student_alias_map,
    get_student_field_specs,
    get_student_required_headers,
    normalize_header,
)


class CSVAdapterError(Exception):
    """Base exception for CSV adapter failures."""


class CSVHeaderError(CSVAdapterError):
    """Raised when the CSV header row does not meet contract requirements."""

    def __init__(
        self,
        *,
        missing: Sequence[str] | None = None,
        duplicates: Sequence[str] | None = None,
    ) -> None:
        details: list[str] = []
        if missing:
            details.append(f"Missing required columns: {', '.join(sorted(missing))}.")
        if duplicates:
            details.append(
                "Duplicate columns detected: "
                + ", ".join(sorted(duplicates))
                + ". Ensure each field appears only once."
            )

        message = "CSV header validation failed. " + " ".join(details) if details else "CSV header validation failed."
        super().__init__(message)
        self.missing = tuple(missing or ())
        self.duplicates = tuple(duplicates or ())


class CSVRowError(CSVAdapterError):
    """Raised when an individual row cannot be parsed."""

    def __init__(self, row_number: int, message: str) -> None:
        super().__init__(f"Row {row_number}: {message}")
        self.row_number = row_number


@dataclass(frozen=True)
class HeaderValidationResult:
    raw_headers: tuple[str, ...]
    resolved_headers: tuple[str, ...]
    additional_headers: tuple[str, ...]


@dataclass(frozen=True)
class StudentCSVRow:
    """A parsed CSV row keyed by canonical field keys."""

    sequence_number: int
    source_line: int
    values: dict[str, object | None]


@dataclass
class StudentCSVStatistics:
    rows_processed: int = 0
    rows_skipped_blank: int = 0


def _sanitize_header(header: str | None) -> str:
    token = (header or "").strip()
    return token.lstrip("\ufeff").strip()


def _validate_headers(raw_headers: Sequence[str]) -> HeaderValidationResult:
    sanitized_headers = tuple(_sanitize_header(header) for header in raw_headers)
    alias_map = get_student_alias_map()
    required_headers = set(get_student_required_headers())
    duplicates: list[str] = []
    seen: set[str] = set()
    resolved: list[str] = []
    additional: list[str] = []

    for header in sanitized_headers:
        canonical = alias_map.get(normalize_header(header))
        target = canonical or header
        if not target:
            # Unnamed columns carry no field key.
            resolved.append("")
            continue
        if target in seen:
            duplicates.append(target)
        else:
            seen.add(target)
        if canonical is None:
            additional.append(header)
        resolved.append(target)

    missing = sorted(required_headers - seen)
    if missing or duplicates:
        raise CSVHeaderError(missing=missing, duplicates=duplicates)

    return HeaderValidationResult(
        raw_headers=sanitized_headers,
        resolved_headers=tuple(resolved),
        additional_headers=tuple(additional),
    )


def _row_is_blank(row: dict[str, object | None]) -> bool:
    return all((value is None or (isinstance(value, str) and value.strip() == "")) for value in row.values())


class StudentCSVAdapter:
    """CSV reader that enforces the students sheet contract."""

    def __init__(self, file_obj: IO[str], *, skip_blank_rows: bool = True) -> None:
        self._file_obj = file_obj
        self.skip_blank_rows = skip_blank_rows
        self._header_result: HeaderValidationResult | None = None
        self.statistics = StudentCSVStatistics()
        self._field_specs = {spec.name: spec for spec in get_student_field_specs()}

    @property
    def header(self) -> HeaderValidationResult | None:
        return self._header_result

    def _prepare_reader(self) -> csv.DictReader:
        self._file_obj.seek(0)
        reader = csv.DictReader(self._file_obj)
        if reader.fieldnames is None:
            raise CSVHeaderError(missing=get_student_required_headers())

        header_result = _validate_headers(reader.fieldnames)
        reader.fieldnames = list(header_result.resolved_headers)
        self._header_result = header_result
        return reader

    def iter_rows(self) -> Iterator[StudentCSVRow]:
        reader = self._prepare_reader()
        for sequence_number, raw_row in enumerate(reader, start=1):
            if None in raw_row:
                raise CSVRowError(
                    reader.line_num,
                    f"Row has {len(raw_row[None])} more value(s) than the header row.",
                )
            row_copy = {key: value for key, value in raw_row.items() if key}

            if self.skip_blank_rows and _row_is_blank(row_copy):
                self.statistics.rows_skipped_blank += 1
                continue

            self.statistics.rows_processed += 1
            yield StudentCSVRow(
                sequence_number=sequence_number,
                source_line=reader.line_num,
                values=self._apply_normalizers(row_copy),
            )

    def _apply_normalizers(self, row: dict[str, object | None]) -> dict[str, object | None]:
        normalized: dict[str, object | None] = {}
        for key, value in row.items():
            spec: FieldSpec | None = self._field_specs.get(key)
            if spec is None:
                normalized[key] = value.strip() if isinstance(value, str) else value
            elif spec.normalizer is None:
                normalized[key] = value
            else:
                normalized[key] = spec.normalizer(value)
        return normalized
