"""
Chunked bulk writes against the record store.

Deletes are split into fixed-size chunks that run concurrently on a thread
pool. Chunks are independent (disjoint id sets) so there is no ordering
between them and no rollback when one fails: deletes by id are idempotent and
a retried job simply deletes whatever is left.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Sequence, TypeVar

from roster_app.jobs.metrics import record_delete_chunk

from .progress import ProgressCallback, ProgressTracker, as_tracker
from .records import Record, RecordId

if TYPE_CHECKING:  # pragma: no cover
    from roster_app.jobs.store import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 100
DEFAULT_MAX_WORKERS = 4
T = TypeVar("T")


def chunk_ids(ids: Iterable[T], size: int) -> list[list[T]]:
    """Split ``ids`` into consecutive chunks of at most ``size`` items, preserving order."""

    if size < 1:
        raise ValueError("Chunk size must be at least 1.")
    items = list(ids)
    return [items[start : start + size] for start in range(0, len(items), size)]


@dataclass(frozen=True)
class DeleteSummary:
    chunks: int
    records_deleted: int


class ChunkedBulkWriter:
    """Issue bulk update/delete calls against a :class:`RecordStore`."""

    def __init__(
        self,
        store: "RecordStore",
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("Chunk size must be at least 1.")
        if max_workers < 1:
            raise ValueError("Worker count must be at least 1.")
        self.store = store
        self.chunk_size = chunk_size
        self.max_workers = max_workers

    def update(self, sheet_id: int, records: Sequence[Record]) -> int:
        """Write updated records in one bulk call (bounded by one record per duplicate group)."""

        if not records:
            return 0
        self.store.update_records(sheet_id, list(records))
        return len(records)

    def delete(
        self,
        sheet_id: int,
        record_ids: Iterable[RecordId],
        progress: ProgressCallback | ProgressTracker | None = None,
        *,
        start: int = 0,
        ceiling: int = 100,
    ) -> DeleteSummary:
        """
        Delete ``record_ids`` in concurrent chunks, reporting progress between
        ``start`` and ``ceiling`` as each chunk completes.

        The first failing chunk stops progress reporting; chunks that were
        already issued are allowed to settle, queued chunks are cancelled and
        the original exception is re-raised.
        """
        tracker = as_tracker(progress)
        chunks = chunk_ids(record_ids, self.chunk_size)
        total = sum(len(chunk) for chunk in chunks)
        if not chunks:
            return DeleteSummary(chunks=0, records_deleted=0)

        increment = (ceiling - start) // len(chunks)
        completed = 0
        deleted = 0
        first_error: BaseException | None = None

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(chunks)), thread_name_prefix="roster-delete") as executor:
            futures: dict[Future, list[RecordId]] = {
                executor.submit(self.store.delete_records, sheet_id, chunk): chunk for chunk in chunks
            }
            for future in as_completed(futures):
                chunk = futures[future]
                if future.cancelled():
                    continue
                error = future.exception()
                if error is not None:
                    record_delete_chunk(status="failure", record_count=len(chunk))
                    if first_error is None:
                        first_error = error
                        logger.error(
                            "Chunked delete failed",
                            extra={"roster_sheet_id": sheet_id, "roster_chunk_size": len(chunk)},
                        )
                        for pending in futures:
                            pending.cancel()
                    continue

                record_delete_chunk(status="success", record_count=len(chunk))
                if first_error is not None:
                    continue
                completed += 1
                deleted += len(chunk)
                percent = ceiling if completed == len(chunks) else min(ceiling, start + completed * increment)
                tracker.report(percent, f"Deleted {deleted} of {total} records")

        if first_error is not None:
            raise first_error

        return DeleteSummary(chunks=len(chunks), records_deleted=deleted)


__all__ = ["ChunkedBulkWriter", "DEFAULT_CHUNK_SIZE", "DEFAULT_MAX_WORKERS", "DeleteSummary", "chunk_ids"]
