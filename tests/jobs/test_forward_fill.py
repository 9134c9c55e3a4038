import pytest
from roster_fakes import FakeRecordStore, make_record

from roster_app.jobs.errors import JobConfigurationError, JobNotFoundError
from roster_app.jobs.pipeline.forward_fill import forward_fill, run_forward_fill, run_forward_fill_job
from roster_app.jobs.pipeline.records import Record
from roster_app.jobs.pipeline.validation import REQUIRED_MESSAGE, RequiredFieldsRule, validate_records


def _column(values, key="homeroomTeacher"):
    return [make_record(index + 1, **{key: value}) for index, value in enumerate(values)]


def _values(records, key="homeroomTeacher"):
    return [record.get_value(key) for record in records]


def test_fills_blank_cells_with_most_recent_value():
    records = _column([None, "A", None, "", "B", "  "])

    result = forward_fill(records, "homeroomTeacher", header_rows=1)

    assert _values(result.records) == [None, "A", "A", "A", "B", "B"]
    assert result.filled_record_ids == (3, 4, 6)
    assert result.updated_count == 3


def test_header_rows_neither_change_nor_seed_the_fill():
    records = _column(["Teacher", "", "Ms. Lee", ""])

    result = forward_fill(records, "homeroomTeacher", header_rows=1)

    assert _values(result.records) == ["Teacher", "", "Ms. Lee", "Ms. Lee"]


def test_zero_header_rows_starts_at_first_record():
    records = _column(["Ms. Lee", "", "Mr. Cho", None])

    result = forward_fill(records, "homeroomTeacher", header_rows=0)

    assert _values(result.records) == ["Ms. Lee", "Ms. Lee", "Mr. Cho", "Mr. Cho"]


def test_records_without_the_column_are_skipped():
    records = [
        make_record(1, period="1"),
        make_record(2, period=""),
        make_record(3, grade="4"),
        make_record(4, period=None),
    ]

    result = forward_fill(records, "period", header_rows=0)

    assert "period" not in result.records[2].values
    assert _values(result.records, "period") == ["1", "1", None, "1"]
    assert result.filled_record_ids == (2, 4)


def test_forward_fill_works_on_copies():
    records = _column([None, "A", ""])

    result = forward_fill(records, "homeroomTeacher")

    assert records[2].get_value("homeroomTeacher") == ""
    assert result.records[2].get_value("homeroomTeacher") == "A"


def test_forward_fill_progress_stays_between_ten_and_ninety(progress_log):
    records = _column(["Ms. Lee"] + [""] * 40)

    forward_fill(records, "homeroomTeacher", header_rows=1, progress=progress_log)

    percents = [percent for percent, _ in progress_log.calls]
    assert percents == sorted(percents)
    assert min(percents) >= 10 and max(percents) <= 90
    assert progress_log.calls[0][1] == "Processed 10 of 40 records..."


def test_run_forward_fill_writes_data_rows_in_one_call(progress_log):
    store = FakeRecordStore(_column(["Teacher", "Ms. Lee", "", "Mr. Cho", ""]))

    updated = run_forward_fill(store, 4, "homeroomTeacher", 1, progress_log)

    assert updated == 2
    assert len(store.update_calls) == 1
    assert [record.id for record in store.update_calls[0]] == [2, 3, 4, 5]
    assert _values(store.records.values()) == ["Teacher", "Ms. Lee", "Ms. Lee", "Mr. Cho", "Mr. Cho"]
    assert progress_log.calls[0] == (10, "Starting to process records...")
    assert progress_log.calls[-1] == (100, "Completed! Updated 2 empty fields.")


def test_run_forward_fill_on_empty_sheet(progress_log):
    store = FakeRecordStore()

    updated = run_forward_fill(store, 4, "homeroomTeacher", 1, progress_log)

    assert updated == 0
    assert store.update_calls == []
    assert progress_log.calls[-1] == (100, "No records found to process")


@pytest.mark.parametrize("column_key", [None, "", "   "])
def test_run_forward_fill_requires_a_column(column_key):
    store = FakeRecordStore(_column(["A", ""]))

    with pytest.raises(JobConfigurationError, match="No column specified for processing"):
        run_forward_fill(store, 4, column_key)

    assert store.fetch_calls == []
    assert store.update_calls == []


def test_run_forward_fill_job_reads_column_from_job_parameters(progress_log):
    store = FakeRecordStore(
        [Record.from_values(1, {"period": "P"}), Record.from_values(2, {"period": "1"}), Record.from_values(3, {"period": ""})],
        job_params={42: {"columnKey": "period"}},
    )

    updated = run_forward_fill_job(store, 42, 9, progress=progress_log)

    assert updated == 1
    assert store.records[3].get_value("period") == "1"


def test_run_forward_fill_job_without_column_parameter_fails_before_mutation():
    store = FakeRecordStore(_column(["A", ""]), job_params={42: {}})

    with pytest.raises(JobConfigurationError):
        run_forward_fill_job(store, 42, 9)

    assert store.update_calls == []


def test_run_forward_fill_job_for_unknown_job():
    with pytest.raises(JobNotFoundError):
        run_forward_fill_job(FakeRecordStore(), 404, 9)


def _messages(record, key="homeroomTeacher"):
    return [message.message for message in record.values[key].errors]


def test_filled_cell_drops_the_required_error():
    records = _column(["Teacher", "Ms. Lee", ""])
    validate_records(records, [RequiredFieldsRule(["homeroomTeacher"])])
    assert _messages(records[2]) == [REQUIRED_MESSAGE]

    result = forward_fill(records, "homeroomTeacher", header_rows=1)

    assert result.records[2].get_value("homeroomTeacher") == "Ms. Lee"
    assert _messages(result.records[2]) == []


def test_filled_cell_carries_the_errors_of_the_value_it_copies():
    records = _column(["Teacher", "Room 12?", "", "Ms. Lee", ""])
    records[1].values["homeroomTeacher"].add_error("Unknown teacher")

    result = forward_fill(records, "homeroomTeacher", header_rows=1)

    assert _messages(result.records[2]) == ["Unknown teacher"]
    assert _messages(result.records[4]) == []


def test_leading_blank_keeps_its_required_error():
    records = _column(["Teacher", "", "Ms. Lee"])
    validate_records(records, [RequiredFieldsRule(["homeroomTeacher"])])

    result = forward_fill(records, "homeroomTeacher", header_rows=1)

    assert _messages(result.records[1]) == [REQUIRED_MESSAGE]
