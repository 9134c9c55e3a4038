import threading

import pytest
from roster_fakes import FakeRecordStore, make_record

from roster_app.jobs.pipeline.bulk_writer import DEFAULT_MAX_WORKERS, ChunkedBulkWriter, chunk_ids
from roster_app.jobs.pipeline.progress import ProgressTracker


def test_chunk_ids_preserves_order():
    assert chunk_ids([5, 3, 9, 1, 7], 2) == [[5, 3], [9, 1], [7]]
    assert chunk_ids([], 100) == []


def test_chunk_ids_rejects_non_positive_size():
    with pytest.raises(ValueError):
        chunk_ids([1, 2], 0)


def test_delete_issues_one_call_per_chunk(progress_log):
    store = FakeRecordStore([make_record(record_id) for record_id in range(1, 251)])
    writer = ChunkedBulkWriter(store, chunk_size=100)

    summary = writer.delete(3, list(range(1, 251)), progress_log, start=50, ceiling=95)

    assert summary.chunks == 3
    assert summary.records_deleted == 250
    assert sorted(len(call) for call in store.delete_calls) == [50, 100, 100]
    assert sorted(record_id for call in store.delete_calls for record_id in call) == list(range(1, 251))
    assert store.records == {}

    percents = [percent for percent, _ in progress_log.calls]
    assert len(percents) == 3
    assert percents == sorted(percents)
    assert percents[0] == 65
    assert percents[-1] == 95
    assert progress_log.calls[-1][1] == "Deleted 250 of 250 records"


def test_delete_chunks_run_concurrently():
    barrier = threading.Barrier(2, timeout=5)

    class BarrierStore(FakeRecordStore):
        def delete_records(self, sheet_id, record_ids):
            # Both chunks must be in flight at once to get past the barrier.
            barrier.wait()
            return super().delete_records(sheet_id, record_ids)

    store = BarrierStore([make_record(record_id) for record_id in range(1, 5)])
    writer = ChunkedBulkWriter(store, chunk_size=2, max_workers=2)

    summary = writer.delete(1, [1, 2, 3, 4])

    assert summary.records_deleted == 4


def test_delete_progress_never_decreases_through_shared_tracker(progress_log):
    store = FakeRecordStore([make_record(record_id) for record_id in range(1, 8)])
    tracker = ProgressTracker(progress_log)
    tracker.report(60, "Already past the delete start")

    ChunkedBulkWriter(store, chunk_size=2).delete(1, range(1, 8), tracker, start=50, ceiling=90)

    percents = [percent for percent, _ in progress_log.calls]
    assert percents == sorted(percents)
    assert percents[-1] == 90


def test_delete_with_no_ids_reports_nothing(progress_log):
    store = FakeRecordStore()

    summary = ChunkedBulkWriter(store).delete(1, [], progress_log, start=50, ceiling=95)

    assert summary.chunks == 0
    assert store.delete_calls == []
    assert progress_log.calls == []


def test_delete_failure_raises_original_error(progress_log):
    store = FakeRecordStore([make_record(record_id) for record_id in range(1, 6)])
    error = ConnectionError("timeout talking to the record store")
    store.fail_delete_for = {3}
    store.delete_error = error

    with pytest.raises(ConnectionError) as excinfo:
        ChunkedBulkWriter(store, chunk_size=2, max_workers=1).delete(1, [1, 2, 3, 4, 5], progress_log, ceiling=90)

    assert excinfo.value is error
    # Chunks that finished before the failure are not rolled back.
    assert 1 not in store.records and 2 not in store.records
    assert 3 in store.records and 4 in store.records
    assert all(percent < 90 for percent, _ in progress_log.calls)


def test_update_is_single_bulk_call_and_skips_empty_batches():
    store = FakeRecordStore([make_record(record_id, grade="") for record_id in range(1, 4)])
    writer = ChunkedBulkWriter(store, chunk_size=1)

    assert writer.update(1, []) == 0
    assert store.update_calls == []

    updated = [make_record(record_id, grade="5") for record_id in range(1, 4)]
    assert writer.update(1, updated) == 3
    assert len(store.update_calls) == 1
    assert store.records[2].get_value("grade") == "5"


def test_writer_rejects_invalid_chunk_size():
    with pytest.raises(ValueError):
        ChunkedBulkWriter(FakeRecordStore(), chunk_size=0)


def test_default_writer_bounds_delete_threads():
    threads = set()

    class ThreadTrackingStore(FakeRecordStore):
        def delete_records(self, sheet_id, record_ids):
            threads.add(threading.current_thread().name)
            return super().delete_records(sheet_id, record_ids)

    store = ThreadTrackingStore([make_record(record_id) for record_id in range(1, 21)])

    summary = ChunkedBulkWriter(store, chunk_size=1).delete(1, range(1, 21))

    assert summary.chunks == 20
    assert summary.records_deleted == 20
    assert 1 <= len(threads) <= DEFAULT_MAX_WORKERS
    assert all(name.startswith("roster-delete") for name in threads)


def test_writer_rejects_invalid_worker_count():
    with pytest.raises(ValueError):
        ChunkedBulkWriter(FakeRecordStore(), max_workers=0)
