from typing import Any, Iterable, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..models import Status, SubmissionRecord

# Facet name -> record attribute.
FACET_FIELDS = {
    "vertical": "vertical",
    "content_type": "content_type",
    "exam_name": "exam_name",
    "subject": "subject",
}


class FacetSelection(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    vertical: str | None = None
    content_type: str | None = Field(default=None, alias="type")
    exam_name: str | None = Field(default=None, alias="examName")
    subject: str | None = None

    def active(self) -> dict[str, str]:
        """Facets carrying a restriction; blank means no restriction."""
        active = {}
        for facet in FACET_FIELDS:
            value = getattr(self, facet)
            if value:
                active[facet] = value
        return active


def _field_value(record: SubmissionRecord, field: str) -> Any:
    return getattr(record, field, None)


def apply_filters(
    records: Iterable[SubmissionRecord],
    selection: FacetSelection | Mapping[str, Any] | None,
) -> list[SubmissionRecord]:
    """Records matching every restricted facet exactly, in input order."""
    if not isinstance(selection, FacetSelection):
        selection = FacetSelection.model_validate(dict(selection or {}))
    active = selection.active()
    if not active:
        return list(records)
    return [
        record
        for record in records
        if all(_field_value(record, FACET_FIELDS[facet]) == value for facet, value in active.items())
    ]


def unique_values(records: Iterable[SubmissionRecord], field: str) -> set[str]:
    values = set()
    for record in records:
        value = _field_value(record, field)
        if isinstance(value, str) and value.strip():
            values.add(value)
    return values


def facet_options(records: Sequence[SubmissionRecord]) -> dict[str, list[str]]:
    return {facet: sorted(unique_values(records, field)) for facet, field in FACET_FIELDS.items()}


def dashboard_stats(all_records: Sequence[SubmissionRecord], filtered: Sequence[SubmissionRecord]) -> dict[str, int]:
    return {
        "total": len(all_records),
        "filtered": len(filtered),
        "final": sum(1 for r in filtered if r.status is Status.FINAL),
        "re_edit": sum(1 for r in filtered if r.status is Status.RE_EDIT),
    }
