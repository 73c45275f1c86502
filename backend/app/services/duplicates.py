from typing import Iterable, Sequence

from pydantic import BaseModel

from ..models import SubmissionRecord
from .video_id import extract_video_id

MISSING_LINK_ERROR = "Please enter a video link"
INVALID_LINK_ERROR = "Invalid YouTube link. Please enter a valid YouTube URL."


class LinkCheck(BaseModel):
    video_id: str = ""
    exists: bool = False
    position: int | None = None
    record: dict | None = None
    error: str | None = None


def find_duplicate(candidate_url: str | None, existing: Iterable[SubmissionRecord]) -> SubmissionRecord | None:
    """
    First record in `existing` whose link resolves to the same video id as
    `candidate_url`. Ids are re-derived from each record's current link on
    every call. An unresolvable candidate never matches.
    """
    target = extract_video_id(candidate_url)
    if not target:
        return None
    for record in existing:
        if extract_video_id(record.video_link) == target:
            return record
    return None


def find_duplicate_position(
    candidate_url: str | None,
    existing: Sequence[SubmissionRecord],
    skip_position: int | None = None,
) -> int | None:
    """1-based position of the first duplicate, optionally ignoring one row."""
    target = extract_video_id(candidate_url)
    if not target:
        return None
    for position, record in enumerate(existing, start=1):
        if position == skip_position:
            continue
        if extract_video_id(record.video_link) == target:
            return position
    return None


def duplicate_warning(record: SubmissionRecord, position: int | None) -> str:
    return f"This video already exists in Sr. No. {position or 'N/A'} - {record.exam_name or 'N/A'}"


def check_link(url: str | None, existing: Sequence[SubmissionRecord]) -> LinkCheck:
    raw = (url or "").strip()
    if not raw:
        return LinkCheck(error=MISSING_LINK_ERROR)

    video_id = extract_video_id(raw)
    if not video_id:
        return LinkCheck(error=INVALID_LINK_ERROR)

    position = find_duplicate_position(raw, existing)
    if position is None:
        return LinkCheck(video_id=video_id)
    return LinkCheck(
        video_id=video_id,
        exists=True,
        position=position,
        record=existing[position - 1].to_row(),
    )
