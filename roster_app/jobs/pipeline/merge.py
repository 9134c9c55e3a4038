"""
Duplicate merge engine for student records.

Records sharing a natural key (the student identifier) are collapsed into the
first record in fetch order, the master. Guardian contact slots are
reconciled across every duplicate using a fixed priority chain, remaining
blank master fields are back-filled from the duplicates, and every non-master
record is scheduled for deletion.

:func:`merge_duplicates` is pure: it works on copies and returns a
:class:`MergeResult`. :func:`run_merge` wires it to a record store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Sequence

from roster_app.jobs.metrics import record_merge

from .bulk_writer import ChunkedBulkWriter
from .contact_profile import ContactProfile, slot_field_keys
from .progress import ProgressCallback, ProgressTracker, as_tracker
from .records import Record, RecordId, is_blank

if TYPE_CHECKING:  # pragma: no cover
    from roster_app.jobs.store import RecordStore

logger = logging.getLogger(__name__)

MergeStrategy = Callable[[], bool]


@dataclass(frozen=True)
class MergeResult:
    """Outcome of one merge pass; ids keep first-seen order."""

    updated_master_records: tuple[Record, ...]
    record_ids_to_delete: tuple[RecordId, ...]
    duplicate_group_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.updated_master_records and not self.record_ids_to_delete


def group_by_natural_key(records: Iterable[Record], natural_key: str) -> dict[str, list[Record]]:
    """
    Group records by the trimmed value of ``natural_key`` in fetch order.

    Records whose key is missing or blank are left out entirely.
    """
    groups: dict[str, list[Record]] = {}
    for record in records:
        key_value = record.get_value(natural_key)
        if is_blank(key_value):
            continue
        groups.setdefault(str(key_value).strip(), []).append(record)
    return groups


def _strategy_chain(
    profile_a: ContactProfile,
    profile_b: ContactProfile,
    source_a: ContactProfile,
    source_b: ContactProfile,
) -> Sequence[MergeStrategy]:
    # Name-matched corrections first, blind fills last.
    return (
        lambda: profile_a.update(source_a),
        lambda: profile_b.update(source_a),
        lambda: profile_a.update(source_b),
        lambda: profile_b.update(source_b),
        lambda: profile_a.update_empty_fields(source_a),
        lambda: profile_b.update_empty_fields(source_a),
        lambda: profile_a.update_empty_fields(source_b),
        lambda: profile_b.update_empty_fields(source_b),
    )


def _merge_guardians(
    master: Record,
    sources: Sequence[Record],
    *,
    slot_a_prefix: str,
    slot_b_prefix: str,
) -> bool:
    profile_a = ContactProfile.from_record(master, slot_a_prefix)
    profile_b = ContactProfile.from_record(master, slot_b_prefix)
    before = (profile_a.snapshot(), profile_b.snapshot())

    applied = False
    for source in sources:
        source_a = ContactProfile.from_record(source, slot_a_prefix)
        source_b = ContactProfile.from_record(source, slot_b_prefix)
        # any() stops at the first strategy that succeeds for this source.
        if any(strategy() for strategy in _strategy_chain(profile_a, profile_b, source_a, source_b)):
            applied = True

    if not applied or (profile_a.snapshot(), profile_b.snapshot()) == before:
        return False

    prefixes = (slot_a_prefix, slot_b_prefix)
    profile_a.apply_to_record(master, slot_a_prefix, sources=sources, source_prefixes=prefixes)
    profile_b.apply_to_record(master, slot_b_prefix, sources=sources, source_prefixes=prefixes)
    return True


def _backfill_fields(master: Record, sources: Sequence[Record], excluded: frozenset[str]) -> bool:
    updated = False
    for field_name in list(master.keys()):
        if field_name in excluded or not is_blank(master.get_value(field_name)):
            continue
        for source in sources:
            cell = source.values.get(field_name)
            if cell is not None and not is_blank(cell.value):
                master.set_value(field_name, cell.value, errors=cell.errors)
                updated = True
                break
    return updated


def merge_duplicates(
    records: Iterable[Record],
    *,
    natural_key: str,
    slot_a_prefix: str,
    slot_b_prefix: str,
) -> MergeResult:
    """
    Compute the update and delete sets for one sheet.

    Input records are never mutated; updated masters in the result are copies.
    """
    guardian_fields = frozenset((*slot_field_keys(slot_a_prefix), *slot_field_keys(slot_b_prefix)))
    groups = group_by_natural_key(records, natural_key)

    updated: list[Record] = []
    to_delete: dict[RecordId, None] = {}
    duplicate_groups = 0

    for group in groups.values():
        if len(group) < 2:
            continue
        duplicate_groups += 1
        master = group[0].copy()
        sources = group[1:]
        for source in sources:
            to_delete.setdefault(source.id, None)

        guardians_changed = _merge_guardians(
            master,
            sources,
            slot_a_prefix=slot_a_prefix,
            slot_b_prefix=slot_b_prefix,
        )
        fields_changed = _backfill_fields(master, sources, guardian_fields)
        if guardians_changed or fields_changed:
            updated.append(master)

    return MergeResult(
        updated_master_records=tuple(updated),
        record_ids_to_delete=tuple(to_delete),
        duplicate_group_count=duplicate_groups,
    )


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def run_merge(
    store: "RecordStore",
    sheet_id: int,
    natural_key: str,
    slot_a_prefix: str,
    slot_b_prefix: str,
    progress: ProgressCallback | ProgressTracker | None = None,
    *,
    writer: ChunkedBulkWriter | None = None,
    log_extra: Mapping[str, object] | None = None,
) -> MergeResult:
    """
    Fetch a sheet, merge its duplicate students and persist the outcome.

    Updates go out as a single bulk call, deletes in concurrent chunks.
    """
    tracker = as_tracker(progress)
    writer = writer or ChunkedBulkWriter(store)
    extra = {"roster_sheet_id": sheet_id, **(log_extra or {})}

    tracker.report(5, "Identifying duplicate students")
    records = store.fetch_records(sheet_id)

    result = merge_duplicates(
        records,
        natural_key=natural_key,
        slot_a_prefix=slot_a_prefix,
        slot_b_prefix=slot_b_prefix,
    )
    tracker.report(25, f"Merging records for {_plural(result.duplicate_group_count, 'duplicated Student ID')}")

    update_count = len(result.updated_master_records)
    delete_count = len(result.record_ids_to_delete)
    tracker.report(50, f"Updating {update_count} records and deleting {delete_count} records")

    writer.update(sheet_id, result.updated_master_records)
    writer.delete(sheet_id, result.record_ids_to_delete, tracker, start=50, ceiling=95)

    record_merge(groups=result.duplicate_group_count, updated=update_count, deleted=delete_count)
    logger.info(
        "Merged duplicate students",
        extra={
            **extra,
            "roster_records_fetched": len(records),
            "roster_duplicate_groups": result.duplicate_group_count,
            "roster_records_updated": update_count,
            "roster_records_deleted": delete_count,
        },
    )
    tracker.report(100, f"Successfully updated {update_count} records and deleted {delete_count} records")
    return result


__all__ = ["MergeResult", "group_by_natural_key", "merge_duplicates", "run_merge"]
