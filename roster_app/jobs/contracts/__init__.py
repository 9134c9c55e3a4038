"""Canonical sheet contracts for roster ingest."""

from __future__ import annotations

from .students import (
    STUDENT_FIELDS,
    FieldSpec,
    derive_full_name,
    get_student_alias_map,
    get_student_field_specs,
    get_student_required_headers,
    get_student_supported_headers,
    normalize_header,
    resolve_headers,
)

__all__ = [
    "FieldSpec",
    "STUDENT_FIELDS",
    "derive_full_name",
    "get_student_alias_map",
    "get_student_field_specs",
    "get_student_required_headers",
    "get_student_supported_headers",
    "normalize_header",
    "resolve_headers",
]
