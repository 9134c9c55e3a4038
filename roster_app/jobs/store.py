"""
Record store adapter.

The engines talk to storage only through :class:`RecordStore`.
:class:`SQLAlchemyRecordStore` backs it with the ``sheets``/``sheet_records``
tables. Every call opens its own short-lived session so the chunked deleter
can run calls from worker threads without sharing a session.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Protocol, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from roster_app.jobs.errors import JobNotFoundError, SheetNotFoundError
from roster_app.jobs.pipeline.records import Record, RecordId
from roster_app.models import Job, Sheet, SheetRecord, db

logger = logging.getLogger(__name__)

_SLUG_REGEX = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    return _SLUG_REGEX.sub("-", name.strip().lower()).strip("-") or "sheet"


class RecordStore(Protocol):
    """Bulk record operations the merge and forward-fill engines depend on."""

    def fetch_records(self, sheet_id: int) -> list[Record]:
        ...

    def update_records(self, sheet_id: int, records: Sequence[Record]) -> int:
        ...

    def delete_records(self, sheet_id: int, record_ids: Iterable[RecordId]) -> int:
        ...

    def get_job_parameter(self, job_id: int, name: str) -> Any:
        ...


class SQLAlchemyRecordStore:
    """:class:`RecordStore` implementation on top of the application database."""

    def __init__(self, engine: Engine | None = None) -> None:
        # Resolve the engine eagerly: worker threads have no app context.
        self._session_factory = sessionmaker(bind=engine or db.engine, expire_on_commit=False)

    def _session(self) -> Session:
        return self._session_factory()

    def _require_sheet(self, session: Session, sheet_id: int) -> Sheet:
        sheet = session.get(Sheet, sheet_id)
        if sheet is None:
            raise SheetNotFoundError(sheet_id)
        return sheet

    def fetch_records(self, sheet_id: int) -> list[Record]:
        with self._session() as session:
            self._require_sheet(session, sheet_id)
            rows = session.scalars(
                select(SheetRecord)
                .where(SheetRecord.sheet_id == sheet_id)
                .order_by(SheetRecord.position, SheetRecord.id)
            ).all()
            return [Record.from_json(row.id, row.values_json) for row in rows]

    def update_records(self, sheet_id: int, records: Sequence[Record]) -> int:
        if not records:
            return 0
        payloads = {record.id: record.to_json() for record in records}
        with self._session() as session, session.begin():
            rows = session.scalars(
                select(SheetRecord).where(
                    SheetRecord.sheet_id == sheet_id,
                    SheetRecord.id.in_(list(payloads)),
                )
            ).all()
            for row in rows:
                row.values_json = payloads[row.id]
        if len(rows) != len(payloads):
            logger.warning(
                "Some records were not found during bulk update",
                extra={
                    "roster_sheet_id": sheet_id,
                    "roster_records_requested": len(payloads),
                    "roster_records_updated": len(rows),
                },
            )
        return len(rows)

    def delete_records(self, sheet_id: int, record_ids: Iterable[RecordId]) -> int:
        ids = list(record_ids)
        if not ids:
            return 0
        with self._session() as session, session.begin():
            result = session.execute(
                delete(SheetRecord).where(
                    SheetRecord.sheet_id == sheet_id,
                    SheetRecord.id.in_(ids),
                )
            )
        return result.rowcount or 0

    def get_job_parameter(self, job_id: int, name: str) -> Any:
        with self._session() as session:
            job = session.get(Job, job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            return (job.params_json or {}).get(name)

    def create_sheet(self, name: str, slug: str | None = None) -> int:
        """Create an empty sheet and return its id."""

        with self._session() as session, session.begin():
            sheet = Sheet(name=name, slug=slug or slugify(name))
            session.add(sheet)
            session.flush()
            return sheet.id

    def append_records(self, sheet_id: int, rows: Iterable[dict[str, Any]]) -> list[RecordId]:
        """Append new records (``{field: cell-json}`` payloads) after the sheet's last position."""

        with self._session() as session, session.begin():
            self._require_sheet(session, sheet_id)
            last_position = session.scalar(
                select(func.max(SheetRecord.position)).where(SheetRecord.sheet_id == sheet_id)
            )
            position = -1 if last_position is None else last_position
            created: list[SheetRecord] = []
            for payload in rows:
                position += 1
                row = SheetRecord(sheet_id=sheet_id, position=position, values_json=payload)
                session.add(row)
                created.append(row)
            session.flush()
            return [row.id for row in created]


__all__ = ["RecordStore", "SQLAlchemyRecordStore", "slugify"]
