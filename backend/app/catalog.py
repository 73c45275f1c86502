import json
import logging
from pathlib import Path
from typing import Any, Iterable

from .models import ContentType, SubmissionRecord

logger = logging.getLogger(__name__)

# Names that are written in capitals rather than title case.
SPECIAL_VERTICAL_NAMES = {
    "ugc": "UGC",
    "ssc": "SSC",
}

SUBCATEGORIES: dict[str, list[str]] = {
    ContentType.EXAM_INFORMATION.value: [
        "Exam Pattern",
        "Syllabus Overview",
        "Preparation Strategy",
        "Study Plan",
    ],
    ContentType.CONTENT.value: [
        "Topic/Facts",
        "Question",
        "Tricks & Formulas",
    ],
    ContentType.MOTIVATIONAL_OR_FUN.value: [
        "Motivational Shorts",
        "Classroom Moments",
        "Exam Life Situations",
    ],
}


def normalize_vertical_name(name: str) -> str:
    raw = (name or "").strip()
    special = SPECIAL_VERTICAL_NAMES.get(raw.lower())
    if special:
        return special
    return raw[:1].upper() + raw[1:]


def subcategories_for(content_type: str) -> list[str]:
    return list(SUBCATEGORIES.get(content_type, []))


class Catalog:
    """Declared exams and subjects per vertical, keyed by normalized vertical name."""

    def __init__(self, verticals: dict[str, dict[str, list[str]]] | None = None):
        self._verticals: dict[str, dict[str, list[str]]] = {}
        for name, entry in (verticals or {}).items():
            entry = entry if isinstance(entry, dict) else {}
            self._verticals[normalize_vertical_name(name)] = {
                "exams": [e for e in entry.get("exams") or [] if isinstance(e, str) and e.strip()],
                "subjects": [s for s in entry.get("subjects") or [] if isinstance(s, str) and s.strip()],
            }

    @classmethod
    def from_file(cls, path: Path) -> "Catalog":
        try:
            if not path.exists():
                logger.warning("catalog file %s not found; using an empty catalog", path)
                return cls()
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("could not read catalog file %s: %s", path, exc)
            return cls()
        if not isinstance(raw, dict):
            logger.warning("catalog file %s is not a JSON object; using an empty catalog", path)
            return cls()
        return cls(raw)

    def verticals(self) -> list[str]:
        return list(self._verticals)

    def exams_for(self, vertical: str) -> list[str]:
        return list(self._verticals.get(normalize_vertical_name(vertical), {}).get("exams", []))

    def subjects_for(self, vertical: str) -> list[str]:
        return list(self._verticals.get(normalize_vertical_name(vertical), {}).get("subjects", []))

    def search_subjects(self, vertical: str, query: str) -> list[str]:
        subjects = self.subjects_for(vertical)
        needle = (query or "").strip().lower()
        if not needle:
            return subjects
        return [s for s in subjects if needle in s.lower()]

    def to_dict(self) -> dict[str, Any]:
        return {
            name: {"exams": list(entry["exams"]), "subjects": list(entry["subjects"])}
            for name, entry in self._verticals.items()
        }


def undeclared_values(records: Iterable[SubmissionRecord], catalog: Catalog) -> dict[str, dict[str, list[str]]]:
    """
    Exam names and subjects seen in records that the catalog does not list
    for the record's vertical, grouped by vertical.
    """
    found: dict[str, dict[str, dict[str, None]]] = {}
    for record in records:
        vertical = normalize_vertical_name(record.vertical)
        bucket = found.setdefault(vertical, {"exams": {}, "subjects": {}})
        if record.exam_name not in catalog.exams_for(vertical):
            bucket["exams"][record.exam_name] = None
        subject = getattr(record, "subject", None)
        if subject and subject not in catalog.subjects_for(vertical):
            bucket["subjects"][subject] = None
    return {
        vertical: {"exams": list(bucket["exams"]), "subjects": list(bucket["subjects"])}
        for vertical, bucket in found.items()
        if bucket["exams"] or bucket["subjects"]
    }
