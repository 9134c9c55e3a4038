import pytest
from roster_fakes import make_record

from roster_app.jobs.pipeline.validation import (
    INVALID_EMAIL_MESSAGE,
    INVALID_PHONE_MESSAGE,
    REQUIRED_MESSAGE,
    EmailFormatRule,
    PhoneFormatRule,
    RequiredFieldsRule,
    build_default_rules,
    is_valid_email,
    normalize_phone,
    validate_records,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("(555) 123-4567", "+15551234567"),
        ("555.123.4567", "+15551234567"),
        ("1-555-123-4567", "+15551234567"),
        ("+44 20 7946 0958", "+442079460958"),
        ("0044 20 7946 0958", "+442079460958"),
        ("555-123-4567 ext 89", "+15551234567"),
        ("555 123 4567 x12", "+15551234567"),
    ],
)
def test_normalize_phone_accepts_common_formats(raw, expected):
    assert normalize_phone(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "12345", "555-CALL-NOW", "+1 555 abc 4567", "+0123456789"])
def test_normalize_phone_rejects_unparseable_values(raw):
    assert normalize_phone(raw) is None


def test_normalize_phone_uses_default_prefix():
    assert normalize_phone("20 7946 0958", default_prefix="+44") == "+442079460958"
    assert normalize_phone("442079460958", default_prefix="+44") == "+442079460958"


def test_is_valid_email():
    assert is_valid_email("ana.diaz@school.org")
    assert not is_valid_email("ana.diaz@")
    assert not is_valid_email("not an email")


def test_phone_rule_rewrites_valid_numbers_and_flags_invalid_ones():
    record = make_record(1, parentMobile="(555) 123-4567", parent2Mobile="call me", studentMobile="")

    issues = PhoneFormatRule(["parentMobile", "parent2Mobile", "studentMobile"]).apply(record)

    assert record.get_value("parentMobile") == "+15551234567"
    assert record.get_value("parent2Mobile") == "call me"
    assert [(issue.field_key, issue.message) for issue in issues] == [("parent2Mobile", INVALID_PHONE_MESSAGE)]


def test_email_rule_skips_blank_cells():
    record = make_record(1, parentEmail="", parent2Email="sam@")

    issues = EmailFormatRule(["parentEmail", "parent2Email"]).apply(record)

    assert [(issue.field_key, issue.message) for issue in issues] == [("parent2Email", INVALID_EMAIL_MESSAGE)]


def test_required_rule_treats_whitespace_as_missing():
    record = make_record(1, studentId="  ", grade="3")

    issues = RequiredFieldsRule(["studentId", "grade", "period"]).apply(record)

    assert [issue.field_key for issue in issues] == ["studentId", "period"]
    assert {issue.message for issue in issues} == {REQUIRED_MESSAGE}


def test_validate_records_annotates_cells_without_dropping_records():
    rules = build_default_rules(
        phone_fields=["parentMobile"],
        email_fields=["parentEmail"],
        required_fields=["studentId", "fullName", "period"],
    )
    good = make_record(1, studentId="S1", studentLastName="Diaz", studentFirstName="Maya", fullName="", period="2")
    bad = make_record(2, studentId="", parentMobile="12", parentEmail="nope")

    summary = validate_records([good, bad], rules)

    assert summary.records_checked == 2
    assert summary.records_with_errors == 1
    assert summary.issue_counts == {"required": 3, "phone": 1, "email": 1}
    assert summary.issues_total == 5

    # The derived full name satisfies the required check.
    assert good.get_value("fullName") == "Diaz Maya"
    assert not any(cell.errors for cell in good.values.values())

    assert bad.values["parentMobile"].errors[0].message == INVALID_PHONE_MESSAGE
    assert bad.values["parentEmail"].errors[0].message == INVALID_EMAIL_MESSAGE
    # Absent required fields get a cell carrying the error.
    assert bad.values["period"].value is None
    assert bad.values["period"].errors[0].message == REQUIRED_MESSAGE
