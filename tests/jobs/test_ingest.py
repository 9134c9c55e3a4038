import io
import logging

import pytest

from roster_app.jobs.adapters import CSVHeaderError
from roster_app.jobs.pipeline import build_default_rules, load_students_csv
from roster_app.jobs.store import SQLAlchemyRecordStore
from roster_app.models import SheetRecord, db

HEADER = (
    "Student Last Name,Student First Name,Full Name,Student ID,Homeroom Teacher,Grade,Period,Address 1,"
    "Parent First Name,Parent Last Name,Parent Email,Parent Mobile,Bus Route"
)


def _rules():
    return build_default_rules(
        phone_fields=("parentMobile", "parent2Mobile", "studentMobile"),
        email_fields=("parentEmail", "parent2Email", "studentEmail"),
    )


def test_load_students_csv_appends_validated_records(sheet, caplog):
    csv_stream = io.StringIO(
        HEADER + "\n"
        "Diaz,Maya,,S1,Ms. Lee,3,2,1 Main St,Ana,Diaz,ana@school.org,(555) 123-4567,7\n"
        ",,,,,,,,,,,,\n"
        "Park,Jin,Park Jin,S2,,4,1,2 Oak Ave,Lee,Park,lee-at-school,12345,\n"
    )
    store = SQLAlchemyRecordStore()
    caplog.set_level(logging.INFO, logger="roster_app.jobs.pipeline.ingest")

    summary = load_students_csv(store, sheet.id, csv_stream, rules=_rules())

    assert summary.rows_processed == 2
    assert summary.rows_skipped_blank == 1
    assert summary.records_created == 2
    assert summary.records_with_errors == 1
    assert summary.issue_counts == {"required": 1, "phone": 1, "email": 1}
    assert summary.additional_headers == ("Bus Route",)
    assert summary.to_dict()["additional_headers"] == ["Bus Route"]

    first, second = store.fetch_records(sheet.id)
    assert first.get_value("fullName") == "Diaz Maya"
    assert first.get_value("parentMobile") == "+15551234567"
    assert first.get_value("Bus Route") == "7"
    assert not any(cell.errors for cell in first.values.values())

    assert second.get_value("parentMobile") == "12345"
    assert second.values["parentMobile"].errors[0].message == "Invalid phone number"
    assert second.values["parentEmail"].errors[0].message == "Invalid email address"
    assert second.values["homeroomTeacher"].errors[0].message == "Required field is missing"

    assert any(record.getMessage() == "Loaded students CSV" for record in caplog.records)


def test_load_students_csv_appends_after_existing_rows(sheet):
    store = SQLAlchemyRecordStore()
    row = "Diaz,Maya,,S1,Ms. Lee,3,2,1 Main St,,,,,\n"

    load_students_csv(store, sheet.id, io.StringIO(HEADER + "\n" + row), rules=_rules())
    load_students_csv(store, sheet.id, io.StringIO(HEADER + "\n" + row.replace("S1", "S2")), rules=_rules())

    rows = db.session.query(SheetRecord).filter_by(sheet_id=sheet.id).order_by(SheetRecord.position).all()
    assert [item.position for item in rows] == [0, 1]
    assert [item.values_json["studentId"]["value"] for item in rows] == ["S1", "S2"]


def test_load_students_csv_header_error_writes_nothing(sheet):
    store = SQLAlchemyRecordStore()

    with pytest.raises(CSVHeaderError):
        load_students_csv(store, sheet.id, io.StringIO("Student ID\nS1\n"), rules=_rules())

    assert store.fetch_records(sheet.id) == []
