"""Test doubles and record builders shared by the jobs tests."""

import threading
from typing import Any, Iterable, Sequence

from roster_app.jobs.errors import JobNotFoundError
from roster_app.jobs.pipeline.records import Record


class FakeRecordStore:
    """In-memory record store that records every call it receives."""

    def __init__(self, records: Iterable[Record] = (), job_params: dict[int, dict[str, Any]] | None = None):
        self.records = {record.id: record.copy() for record in records}
        self.job_params = job_params or {}
        self.fetch_calls: list[int] = []
        self.update_calls: list[list[Record]] = []
        self.delete_calls: list[list[int]] = []
        self.fail_delete_for: set[int] = set()
        self.delete_error: Exception = RuntimeError("delete failed")
        self._lock = threading.Lock()

    def fetch_records(self, sheet_id: int) -> list[Record]:
        self.fetch_calls.append(sheet_id)
        return [record.copy() for record in self.records.values()]

    def update_records(self, sheet_id: int, records: Sequence[Record]) -> int:
        self.update_calls.append([record.copy() for record in records])
        for record in records:
            if record.id in self.records:
                self.records[record.id] = record.copy()
        return len(records)

    def delete_records(self, sheet_id: int, record_ids: Iterable[int]) -> int:
        ids = list(record_ids)
        with self._lock:
            self.delete_calls.append(ids)
        if self.fail_delete_for.intersection(ids):
            raise self.delete_error
        with self._lock:
            for record_id in ids:
                self.records.pop(record_id, None)
        return len(ids)

    def get_job_parameter(self, job_id: int, name: str) -> Any:
        if job_id not in self.job_params:
            raise JobNotFoundError(job_id)
        return self.job_params[job_id].get(name)


def make_record(record_id: int, **values) -> Record:
    return Record.from_values(record_id, values)


def guardian(prefix: str, first="", last="", email="", mobile="") -> dict[str, str]:
    return {
        f"{prefix}FirstName": first,
        f"{prefix}LastName": last,
        f"{prefix}Email": email,
        f"{prefix}Mobile": mobile,
    }
