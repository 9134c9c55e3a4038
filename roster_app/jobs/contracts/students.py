"""Canonical students sheet contract.

Field keys are the camelCase keys stored on every record; the human labels
used by exported spreadsheets ("Student ID", "Parent 2 Mobile") are accepted
as header aliases. Columns outside the contract are allowed and kept as-is.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Tuple

Normalizer = Callable[[object | None], object | None]


def _strip_string(value: object | None) -> object | None:
    if isinstance(value, str):
        return value.strip()
    return value


@dataclass(frozen=True)
class FieldSpec:
    """Metadata describing a canonical students field."""

    name: str
    label: str
    required: bool = False
    aliases: Tuple[str, ...] = ()
    normalizer: Normalizer | None = _strip_string

    def headers(self) -> Tuple[str, ...]:
        """Return the canonical key, its label and any aliases."""

        return (self.name, self.label, *self.aliases)


STUDENT_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec(name="studentLastName", label="Student Last Name", required=True, aliases=("last_name",)),
    FieldSpec(name="studentMiddleName", label="Student Middle Name", aliases=("middle_name",)),
    FieldSpec(name="studentFirstName", label="Student First Name", required=True, aliases=("first_name",)),
    FieldSpec(name="fullName", label="Full Name", required=True, aliases=("student_name",)),
    FieldSpec(name="studentId", label="Student ID", required=True, aliases=("student_number",)),
    FieldSpec(name="gender", label="Gender"),
    FieldSpec(name="studentEmail", label="Student Email"),
    FieldSpec(name="studentMobile", label="Student Mobile", aliases=("student_phone",)),
    FieldSpec(name="homeroomTeacher", label="Homeroom Teacher", required=True, aliases=("homeroom", "teacher")),
    FieldSpec(name="grade", label="Grade", required=True, aliases=("grade_level",)),
    FieldSpec(name="period", label="Period", required=True),
    FieldSpec(name="parentFirstName", label="Parent First Name", aliases=("guardian_first_name",)),
    FieldSpec(name="parentLastName", label="Parent Last Name", aliases=("guardian_last_name",)),
    FieldSpec(name="parentEmail", label="Parent Email", aliases=("guardian_email",)),
    FieldSpec(name="parentMobile", label="Parent Mobile", aliases=("guardian_mobile", "parent_phone")),
    FieldSpec(name="parent2FirstName", label="Parent 2 First Name", aliases=("guardian_2_first_name",)),
    FieldSpec(name="parent2LastName", label="Parent 2 Last Name", aliases=("guardian_2_last_name",)),
    FieldSpec(name="parent2Email", label="Parent 2 Email", aliases=("guardian_2_email",)),
    FieldSpec(name="parent2Mobile", label="Parent 2 Mobile", aliases=("guardian_2_mobile", "parent_2_phone")),
    FieldSpec(name="address1", label="Address 1", required=True, aliases=("address", "street")),
    FieldSpec(name="address2", label="Address 2", aliases=("apt",)),
    FieldSpec(name="city", label="City"),
    FieldSpec(name="state", label="State", aliases=("state_code",)),
    FieldSpec(name="zip", label="Zip", aliases=("zip_code", "postal_code")),
    FieldSpec(name="room", label="Room"),
)


def get_student_field_specs() -> Tuple[FieldSpec, ...]:
    """Return the canonical students field specifications."""

    return STUDENT_FIELDS


def get_student_required_headers() -> Tuple[str, ...]:
    """Field keys that must be present as columns in every upload."""

    return tuple(field.name for field in STUDENT_FIELDS if field.required)


def get_student_supported_headers() -> Tuple[str, ...]:
    return tuple(field.name for field in STUDENT_FIELDS)


def normalize_header(header: str) -> str:
    """Normalize a header for comparison (case/space/underscore agnostic)."""

    token = header.strip().lower()
    for char in (" ", "-", ".", "_"):
        token = token.replace(char, "")
    return token


def get_student_alias_map() -> Mapping[str, str]:
    """Map normalized header tokens to canonical keys (includes labels and aliases)."""

    mapping: dict[str, str] = {}
    for field in STUDENT_FIELDS:
        for header in field.headers():
            mapping[normalize_header(header)] = field.name
    return mapping


def resolve_headers(headers: Iterable[str]) -> Tuple[str, ...]:
    """Resolve raw headers to canonical keys; unknown headers pass through unchanged."""

    alias_map = get_student_alias_map()
    return tuple(alias_map.get(normalize_header(header), header) for header in headers)


def derive_full_name(values: Mapping[str, object | None]) -> str:
    """``studentLastName studentFirstName`` with blanks dropped."""

    parts = [str(values.get(key) or "").strip() for key in ("studentLastName", "studentFirstName")]
    return " ".join(part for part in parts if part)
