import pytest
from pydantic import ValidationError

from backend.app.models import (
    ContentRecord,
    ExamInformationRecord,
    MotivationalRecord,
    RecordValidationError,
    Status,
    parse_record,
    replace_record,
    rows_with_position,
)


def make_row(**overrides):
    row = {
        "Email": "editor@adda247.com",
        "Vertical Name": "Bank",
        "Exam Name": "SBI PO",
        "Subject": "Reasoning Ability",
        "Type of Content": "Content",
        "Sub category": "Question",
        "Edit": "Final",
        "Video Link": "https://youtu.be/AbCdEfGhIjK",
    }
    row.update(overrides)
    return row


def test_content_row_parses_into_content_variant():
    record = parse_record(make_row())
    assert isinstance(record, ContentRecord)
    assert record.subject == "Reasoning Ability"
    assert record.sub_category == "Question"
    assert record.status is Status.FINAL
    assert record.video_id == "AbCdEfGhIjK"


def test_other_content_types_have_no_subject_fields():
    exam_info = parse_record(make_row(**{"Type of Content": "Exam_Information"}))
    fun = parse_record(make_row(**{"Type of Content": "Motivational_or_Fun"}))
    assert isinstance(exam_info, ExamInformationRecord)
    assert isinstance(fun, MotivationalRecord)
    for record in (exam_info, fun):
        assert not hasattr(record, "subject")
        assert not hasattr(record, "sub_category")
        assert "Subject" not in record.to_row()


def test_content_variant_requires_subject_and_sub_category():
    with pytest.raises(RecordValidationError) as excinfo:
        parse_record(make_row(Subject="", **{"Sub category": "  "}))
    locs = {tuple(err["loc"]) for err in excinfo.value.errors}
    assert ("Subject",) in locs
    assert ("Sub category",) in locs


def test_variant_rejects_subject_when_built_directly():
    with pytest.raises(ValidationError):
        ExamInformationRecord.model_validate(
            make_row(**{"Type of Content": "Exam_Information"})
        )


def test_unknown_content_type_is_rejected():
    with pytest.raises(RecordValidationError, match="Type of Content"):
        parse_record(make_row(**{"Type of Content": "Podcast"}))


def test_email_domain_must_be_allowed(monkeypatch):
    with pytest.raises(RecordValidationError, match="Only emails from"):
        parse_record(make_row(Email="someone@gmail.com"))
    with pytest.raises(RecordValidationError, match="valid email"):
        parse_record(make_row(Email="not-an-email"))

    monkeypatch.setenv("ALLOWED_EMAIL_DOMAINS", "example.org")
    assert parse_record(make_row(Email="a@Example.org")).email == "a@Example.org"


@pytest.mark.parametrize("spelling", ["Re-edit", "re-edit", "REEDIT", "re edit", " Re-Edit "])
def test_status_spellings_normalize(spelling):
    record = parse_record(make_row(Edit=spelling))
    assert record.status is Status.RE_EDIT


def test_derived_keys_are_ignored_on_input():
    record = parse_record(make_row(**{"Sr no.": "7", "VideoId": "ZZZZZZZZZZZ", "DriveFileId": "1AbC"}))
    row = record.to_row()
    assert row["VideoId"] == "AbCdEfGhIjK"
    assert "Sr no." not in row


def test_re_edit_drive_link_becomes_primary_link():
    drive = "https://drive.google.com/file/d/1AbC_dEf-123/view"
    record = parse_record(make_row(Edit="Re-edit", **{"Video Link": "", "Re-edit Drive Link": drive}))
    assert record.video_link == drive
    assert record.video_id == ""
    assert record.drive_file_id == "1AbC_dEf-123"
    assert record.to_row()["DriveFileId"] == "1AbC_dEf-123"
    assert "DriveFileId" not in parse_record(make_row()).to_row()


def test_records_are_immutable():
    record = parse_record(make_row())
    with pytest.raises(ValidationError):
        record.video_link = "https://youtu.be/ZZZZZZZZZZZ"


def test_video_id_follows_link_on_replace():
    record = parse_record(make_row())
    edited = replace_record(record, {"Video Link": "https://www.youtube.com/embed/ZZZZZZZZZZZ"})
    assert edited.video_id == "ZZZZZZZZZZZ"
    assert record.video_id == "AbCdEfGhIjK"


def test_replace_to_other_type_drops_subject():
    record = parse_record(make_row())
    edited = replace_record(record, {"Type of Content": "Motivational_or_Fun"})
    assert isinstance(edited, MotivationalRecord)
    assert "Subject" not in edited.to_row()


def test_rows_with_position_numbers_from_one():
    records = [parse_record(make_row()), parse_record(make_row(**{"Exam Name": "IBPS PO"}))]
    rows = rows_with_position(records)
    assert [row["Sr no."] for row in rows] == [1, 2]
    assert rows[1]["Exam Name"] == "IBPS PO"


def test_replace_accepts_field_names():
    record = parse_record(make_row())
    edited = replace_record(record, {"exam_name": "SBI Clerk", "status": "reedit"})
    assert edited.exam_name == "SBI Clerk"
    assert edited.status is Status.RE_EDIT
