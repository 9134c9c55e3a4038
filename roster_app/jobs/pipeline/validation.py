"""
Cell-level validation for students records.

Rules inspect a record and either rewrite a cell into its canonical form
(E.164 phone numbers, derived full name) or attach an error message to it.
Validation never rejects a record: problems stay visible on the cell so an
operator can fix them in place.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from email_validator import EmailNotValidError, validate_email

from roster_app.jobs.contracts import derive_full_name, get_student_required_headers

from .records import Record, is_blank

_E164_REGEX = re.compile(r"^\+[1-9]\d{7,14}$")
_EXTENSION_REGEX = re.compile(r"\s*(x|ext|extension|#)\s*\d+.*$", re.IGNORECASE)

INVALID_PHONE_MESSAGE = "Invalid phone number"
INVALID_EMAIL_MESSAGE = "Invalid email address"
REQUIRED_MESSAGE = "Required field is missing"


def normalize_phone(value: object | None, *, default_prefix: str = "+1") -> str | None:
    """
    Normalize a phone number to strict E.164 (+<country><number>) format.

    Ten-digit numbers without a country code get ``default_prefix``; eleven
    digits starting with the prefix's country code get a leading ``+``.
    Extensions (x123, ext 123, #123) are dropped. Returns None when the value
    cannot be normalized.
    """

    if value is None:
        return None
    token = str(value).strip()
    if not token:
        return None

    token = _EXTENSION_REGEX.sub("", token).strip()
    if not token:
        return None

    token = token.replace(" ", "").replace("-", "").replace("(", "").replace(")", "").replace(".", "")
    if token.startswith("00"):
        token = f"+{token[2:]}"

    digits_only = "".join(char for char in token if char.isdigit())
    country_code = default_prefix.lstrip("+")
    if token.startswith("+"):
        if token[1:] != digits_only:
            return None
        normalized = f"+{digits_only}"
    elif len(digits_only) == 10 and len(token) == 10:
        normalized = f"{default_prefix}{digits_only}"
    elif len(digits_only) == 10 + len(country_code) and digits_only.startswith(country_code) and len(token) == len(digits_only):
        normalized = f"+{digits_only}"
    else:
        return None

    if _E164_REGEX.match(normalized):
        return normalized
    return None


def is_valid_email(value: object | None) -> bool:
    try:
        validate_email(str(value).strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


@dataclass(frozen=True)
class CellIssue:
    """A single problem found on a record cell."""

    record_id: int
    field_key: str
    message: str


class CellRule:
    """Base class for rules that inspect (and may rewrite) one record."""

    code = "cell"

    def apply(self, record: Record) -> list[CellIssue]:
        raise NotImplementedError


class FullNameRule(CellRule):
    """Derive ``fullName`` from the student's last and first name when blank."""

    code = "full_name"

    def apply(self, record: Record) -> list[CellIssue]:
        if not is_blank(record.get_value("fullName")):
            return []
        derived = derive_full_name({key: record.get_value(key) for key in ("studentLastName", "studentFirstName")})
        if derived:
            record.set_value("fullName", derived)
        return []


class RequiredFieldsRule(CellRule):
    code = "required"

    def __init__(self, fields: Sequence[str]) -> None:
        self.fields = tuple(fields)

    def apply(self, record: Record) -> list[CellIssue]:
        issues = []
        for key in self.fields:
            if is_blank(record.get_value(key)):
                issues.append(CellIssue(record_id=record.id, field_key=key, message=REQUIRED_MESSAGE))
        return issues


class PhoneFormatRule(CellRule):
    """Rewrite phone cells to E.164, flagging values that cannot be parsed."""

    code = "phone"

    def __init__(self, fields: Sequence[str], *, default_prefix: str = "+1") -> None:
        self.fields = tuple(fields)
        self.default_prefix = default_prefix

    def apply(self, record: Record) -> list[CellIssue]:
        issues = []
        for key in self.fields:
            raw = record.get_value(key)
            if is_blank(raw):
                continue
            normalized = normalize_phone(raw, default_prefix=self.default_prefix)
            if normalized is None:
                issues.append(CellIssue(record_id=record.id, field_key=key, message=INVALID_PHONE_MESSAGE))
            else:
                record.set_value(key, normalized)
        return issues


class EmailFormatRule(CellRule):
    code = "email"

    def __init__(self, fields: Sequence[str]) -> None:
        self.fields = tuple(fields)

    def apply(self, record: Record) -> list[CellIssue]:
        issues = []
        for key in self.fields:
            raw = record.get_value(key)
            if is_blank(raw):
                continue
            if not is_valid_email(raw):
                issues.append(CellIssue(record_id=record.id, field_key=key, message=INVALID_EMAIL_MESSAGE))
        return issues


@dataclass
class ValidationSummary:
    records_checked: int = 0
    records_with_errors: int = 0
    issue_counts: dict[str, int] = field(default_factory=dict)

    @property
    def issues_total(self) -> int:
        return sum(self.issue_counts.values())


def build_default_rules(
    *,
    phone_fields: Sequence[str],
    email_fields: Sequence[str],
    required_fields: Sequence[str] | None = None,
    default_prefix: str = "+1",
) -> tuple[CellRule, ...]:
    # FullNameRule runs first so a derived name satisfies the required check.
    return (
        FullNameRule(),
        RequiredFieldsRule(required_fields if required_fields is not None else get_student_required_headers()),
        PhoneFormatRule(phone_fields, default_prefix=default_prefix),
        EmailFormatRule(email_fields),
    )


def validate_records(records: Iterable[Record], rules: Sequence[CellRule]) -> ValidationSummary:
    """
    Run ``rules`` over ``records`` in place, attaching an error to each
    offending cell (creating the cell when the field is absent).
    """

    summary = ValidationSummary()
    for record in records:
        summary.records_checked += 1
        record_issues: list[CellIssue] = []
        for rule in rules:
            issues = rule.apply(record)
            if issues:
                summary.issue_counts[rule.code] = summary.issue_counts.get(rule.code, 0) + len(issues)
                record_issues.extend(issues)
        for issue in record_issues:
            if issue.field_key not in record.values:
                record.set_value(issue.field_key, None)
            record.values[issue.field_key].add_error(issue.message)
        if record_issues:
            summary.records_with_errors += 1
    return summary


__all__ = [
    "CellIssue",
    "CellRule",
    "EmailFormatRule",
    "FullNameRule",
    "INVALID_EMAIL_MESSAGE",
    "INVALID_PHONE_MESSAGE",
    "PhoneFormatRule",
    "REQUIRED_MESSAGE",
    "RequiredFieldsRule",
    "ValidationSummary",
    "build_default_rules",
    "is_valid_email",
    "normalize_phone",
    "validate_records",
]
