"""
In-memory record representation shared by the merge and forward-fill engines.

A record is an ordered mapping of field key to :class:`Cell`. Engines only
ever mutate copies produced by :meth:`Record.copy`; the store adapter owns the
originals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping

RecordId = int


@dataclass(frozen=True)
class CellMessage:
    """Annotation attached to a cell (validation error, warning, info)."""

    type: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "message": self.message}


@dataclass
class Cell:
    value: Any = None
    messages: tuple[CellMessage, ...] = ()

    @property
    def errors(self) -> tuple[CellMessage, ...]:
        return tuple(message for message in self.messages if message.type == "error")

    def add_error(self, message: str) -> None:
        self.messages = (*self.messages, CellMessage(type="error", message=message))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"value": self.value}
        if self.messages:
            payload["messages"] = [message.to_dict() for message in self.messages]
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "Cell":
        if not isinstance(payload, Mapping):
            return cls(value=payload)
        messages = tuple(
            CellMessage(type=str(item.get("type", "error")), message=str(item.get("message", "")))
            for item in payload.get("messages") or ()
            if isinstance(item, Mapping)
        )
        return cls(value=payload.get("value"), messages=messages)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def is_blank(value: Any) -> bool:
    """True for ``None`` and for values that are empty once stringified and trimmed."""

    return _text(value) == ""


@dataclass
class Record:
    id: RecordId
    values: dict[str, Cell] = field(default_factory=dict)

    def get_value(self, key: str) -> Any:
        cell = self.values.get(key)
        if cell is None:
            return None
        return cell.value

    def set_value(self, key: str, value: Any, *, errors: Iterable[CellMessage] = ()) -> None:
        """
        Write ``value`` into the cell at ``key``.

        Error messages describe the value they were raised against: when the
        trimmed text changes they are replaced with ``errors``. Other messages stay.
        """
        cell = self.values.get(key)
        if cell is None:
            self.values[key] = Cell(value=value, messages=tuple(errors))
            return
        if _text(cell.value) != _text(value):
            kept = tuple(message for message in cell.messages if message.type != "error")
            cell.messages = (*kept, *errors)
        cell.value = value

    def keys(self) -> Iterator[str]:
        return iter(self.values)

    def copy(self) -> "Record":
        return Record(
            id=self.id,
            values={key: Cell(value=cell.value, messages=cell.messages) for key, cell in self.values.items()},
        )

    def to_json(self) -> dict[str, dict[str, Any]]:
        return {key: cell.to_dict() for key, cell in self.values.items()}

    @classmethod
    def from_json(cls, record_id: RecordId, payload: Mapping[str, Any] | None) -> "Record":
        values = {str(key): Cell.from_dict(cell) for key, cell in (payload or {}).items()}
        return cls(id=record_id, values=values)

    @classmethod
    def from_values(cls, record_id: RecordId, values: Mapping[str, Any]) -> "Record":
        """Build a record from plain ``{field: value}`` pairs."""

        return cls(id=record_id, values={key: Cell(value=value) for key, value in values.items()})


def copy_records(records: Iterable[Record]) -> list[Record]:
    return [record.copy() for record in records]


__all__ = [
    "Cell",
    "CellMessage",
    "Record",
    "RecordId",
    "copy_records",
    "is_blank",
]
