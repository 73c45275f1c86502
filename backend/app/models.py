import re
from enum import Enum
from typing import Any, Iterable, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field, field_validator

from .config import allowed_email_domains
from .services.video_id import extract_drive_file_id, extract_video_id

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Keys the sheet carries that are derived on output and never accepted as input.
DERIVED_KEYS = frozenset({"Sr no.", "Sr No.", "Sr. No.", "VideoId", "video_id", "DriveFileId", "drive_file_id"})
CONTENT_ONLY_KEYS = ("Subject", "Sub category", "subject", "sub_category")
DRIVE_LINK_KEY = "Re-edit Drive Link"


class ContentType(str, Enum):
    EXAM_INFORMATION = "Exam_Information"
    CONTENT = "Content"
    MOTIVATIONAL_OR_FUN = "Motivational_or_Fun"


class Status(str, Enum):
    FINAL = "Final"
    RE_EDIT = "Re-edit"


STATUS_SPELLINGS = {
    "final": Status.FINAL,
    "re-edit": Status.RE_EDIT,
    "reedit": Status.RE_EDIT,
    "re edit": Status.RE_EDIT,
    "re_edit": Status.RE_EDIT,
}


def normalize_status(value: Any) -> Any:
    if isinstance(value, Status):
        return value
    if not isinstance(value, str):
        return value
    return STATUS_SPELLINGS.get(value.strip().lower(), value)


class RecordValidationError(ValueError):
    """A submission row that cannot be turned into a record."""

    def __init__(self, errors: list[dict[str, Any]]):
        self.errors = errors
        summary = "; ".join(f"{'.'.join(str(p) for p in e['loc']) or 'row'}: {e['msg']}" for e in errors)
        super().__init__(summary or "invalid record")


class _SubmissionBase(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    email: str = Field(alias="Email")
    vertical: str = Field(alias="Vertical Name", min_length=1)
    exam_name: str = Field(alias="Exam Name", min_length=1)
    status: Status = Field(alias="Edit")
    video_link: str = Field(alias="Video Link", min_length=1)
    editor_brief: str | None = Field(default=None, alias="Editor Brief")
    final_edited_link: str | None = Field(default=None, alias="Final Edited Link")

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not EMAIL_RE.match(value):
            raise ValueError("must be a valid email address")
        allowed = allowed_email_domains()
        if value.split("@", 1)[1].lower() not in allowed:
            raise ValueError(f"Only emails from {', '.join(allowed)} are allowed")
        return value

    @field_validator("status", mode="before")
    @classmethod
    def _loose_status(cls, value: Any) -> Any:
        return normalize_status(value)

    @computed_field(alias="VideoId")
    @property
    def video_id(self) -> str:
        return extract_video_id(self.video_link)

    @computed_field(alias="DriveFileId")
    @property
    def drive_file_id(self) -> str | None:
        # Re-edit rows link a drive file instead of a YouTube video.
        if self.status is not Status.RE_EDIT:
            return None
        return extract_drive_file_id(self.video_link) or None

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class ContentRecord(_SubmissionBase):
    content_type: Literal["Content"] = Field(alias="Type of Content")
    subject: str = Field(alias="Subject", min_length=1)
    sub_category: str = Field(alias="Sub category", min_length=1)


class ExamInformationRecord(_SubmissionBase):
    content_type: Literal["Exam_Information"] = Field(alias="Type of Content")


class MotivationalRecord(_SubmissionBase):
    content_type: Literal["Motivational_or_Fun"] = Field(alias="Type of Content")


SubmissionRecord = Union[ContentRecord, ExamInformationRecord, MotivationalRecord]

RECORD_TYPES: dict[str, type[_SubmissionBase]] = {
    ContentType.EXAM_INFORMATION.value: ExamInformationRecord,
    ContentType.CONTENT.value: ContentRecord,
    ContentType.MOTIVATIONAL_OR_FUN.value: MotivationalRecord,
}


def _simplify_errors(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(err.get("loc") or ()), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


def parse_record(row: Mapping[str, Any]) -> SubmissionRecord:
    """
    Turn a sheet-shaped row (or a dict keyed by field names) into a record.

    Derived keys are dropped, blank values count as missing, subject and
    sub-category are discarded for content types that do not carry them, and
    a Re-edit drive link is moved into the primary link.
    """
    data: dict[str, Any] = {}
    for key, value in row.items():
        if key in DERIVED_KEYS:
            continue
        if isinstance(value, Enum):
            value = value.value
        if isinstance(value, str):
            value = value.strip()
        if value is None or value == "":
            continue
        data[key] = value

    content_type = data.get("Type of Content", data.get("content_type"))
    record_cls = RECORD_TYPES.get(content_type) if isinstance(content_type, str) else None
    if record_cls is None:
        raise RecordValidationError(
            [
                {
                    "loc": ["Type of Content"],
                    "msg": f"must be one of {', '.join(RECORD_TYPES)}",
                    "type": "value_error",
                }
            ]
        )
    if record_cls is not ContentRecord:
        for key in CONTENT_ONLY_KEYS:
            data.pop(key, None)

    drive_link = data.pop(DRIVE_LINK_KEY, None)
    if drive_link and normalize_status(data.get("Edit", data.get("status"))) is Status.RE_EDIT:
        data.pop("video_link", None)
        data["Video Link"] = drive_link

    try:
        return record_cls.model_validate(data)
    except ValidationError as exc:
        raise RecordValidationError(_simplify_errors(exc)) from exc


FIELD_ALIASES: dict[str, str] = {
    name: field.alias
    for record_cls in RECORD_TYPES.values()
    for name, field in record_cls.model_fields.items()
    if field.alias
}


def replace_record(record: SubmissionRecord, changes: Mapping[str, Any]) -> SubmissionRecord:
    merged = record.to_row()
    for key, value in changes.items():
        merged[FIELD_ALIASES.get(key, key)] = value
    return parse_record(merged)


def rows_with_position(records: Iterable[SubmissionRecord], start: int = 1) -> list[dict[str, Any]]:
    return [{"Sr no.": position, **record.to_row()} for position, record in enumerate(records, start=start)]
