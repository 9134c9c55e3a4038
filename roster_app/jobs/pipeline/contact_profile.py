"""
Guardian contact value object used while consolidating duplicate students.

Each student record carries two guardian slots, addressed by a field prefix
(``parent`` and ``parent2`` on the students sheet). A slot is four string
fields whose keys are ``<prefix><Suffix>`` as listed in :data:`FIELD_SUFFIXES`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Mapping, Sequence

from .records import CellMessage, Record

FIELD_SUFFIXES: Mapping[str, str] = {
    "first_name": "FirstName",
    "last_name": "LastName",
    "email": "Email",
    "mobile": "Mobile",
}


def field_key(prefix: str, attribute: str) -> str:
    """Return the record key holding ``attribute`` for the slot at ``prefix``."""

    return f"{prefix}{FIELD_SUFFIXES[attribute]}"


def slot_field_keys(prefix: str) -> tuple[str, ...]:
    return tuple(field_key(prefix, attribute) for attribute in FIELD_SUFFIXES)


def _coerce(value: object | None) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass
class ContactProfile:
    """
    One guardian's contact details.

    All fields are trimmed strings; an empty string means "no value".
    """

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    mobile: str = ""

    def __post_init__(self) -> None:
        for item in fields(self):
            setattr(self, item.name, _coerce(getattr(self, item.name)))

    def is_empty(self) -> bool:
        return not (self.first_name or self.last_name or self.email or self.mobile)

    def has_same_name(self, other: "ContactProfile") -> bool:
        return self.first_name == other.first_name and self.last_name == other.last_name

    def update(self, other: "ContactProfile") -> bool:
        """
        Replace-on-match: copy every non-empty field of ``other``.

        Only applies when ``other`` has data and this profile is either empty
        or describes the same person (same first and last name). Returns True
        whenever the update applied.
        """
        if other.is_empty():
            return False
        if not (self.is_empty() or self.has_same_name(other)):
            return False

        for attribute in FIELD_SUFFIXES:
            incoming = getattr(other, attribute)
            if incoming:
                setattr(self, attribute, incoming)
        return True

    def update_empty_fields(self, other: "ContactProfile") -> bool:
        """
        Fill-only: copy values from ``other`` into fields that are empty here.

        The name pair moves together so a first name from one source is never
        combined with a last name from another.
        """
        updated = False
        if not self.first_name and not self.last_name and (other.first_name or other.last_name):
            self.first_name = other.first_name
            self.last_name = other.last_name
            updated = True
        if not self.email and other.email:
            self.email = other.email
            updated = True
        if not self.mobile and other.mobile:
            self.mobile = other.mobile
            updated = True
        return updated

    def snapshot(self) -> tuple[str, str, str, str]:
        return (self.first_name, self.last_name, self.email, self.mobile)

    @classmethod
    def from_record(cls, record: Record, prefix: str) -> "ContactProfile":
        """Read the slot at ``prefix``; absent fields read as empty."""

        return cls(**{attribute: _coerce(record.get_value(field_key(prefix, attribute))) for attribute in FIELD_SUFFIXES})

    def apply_to_record(
        self,
        record: Record,
        prefix: str,
        *,
        sources: Sequence[Record] = (),
        source_prefixes: Sequence[str] = (),
    ) -> None:
        """
        Write this profile onto the slot at ``prefix`` of ``record``.

        A value that changes takes the error messages of the first cell in
        ``sources`` (searched under ``source_prefixes``) holding the same value.
        """

        for attribute in FIELD_SUFFIXES:
            value = getattr(self, attribute)
            record.set_value(
                field_key(prefix, attribute),
                value,
                errors=_source_errors(sources, source_prefixes, attribute, value),
            )


def _source_errors(
    sources: Sequence[Record],
    prefixes: Sequence[str],
    attribute: str,
    value: str,
) -> tuple[CellMessage, ...]:
    if not value:
        return ()
    for source in sources:
        for prefix in prefixes:
            cell = source.values.get(field_key(prefix, attribute))
            if cell is not None and _coerce(cell.value) == value:
                return cell.errors
    return ()


__all__ = [
    "ContactProfile",
    "FIELD_SUFFIXES",
    "field_key",
    "slot_field_keys",
]
