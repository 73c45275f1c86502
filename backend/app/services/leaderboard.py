"""
Leaderboard aggregation over per-vertical contributor summaries.

Everything here is a pure function of its inputs. Ordering is part of the
contract: ties keep input order (verticals) or first-encounter order
(users, contributors), so merges use insertion-ordered dicts and stable sorts.
"""
from typing import Any, Iterable, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..models import Status, SubmissionRecord

PER_VIDEO_RATE = 50
TOP_CONTRIBUTORS_LIMIT = 5
RANK_MEDALS = ("🥇", "🥈", "🥉")

ROLE_FINAL = "final"
ROLE_RE_EDIT = "re-edit"


class LeaderboardInputError(ValueError):
    """Contributor summaries that break the aggregator's preconditions."""


class _WireModel(BaseModel):
    # camelCase on the wire, snake_case in Python.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ContributorSummary(_WireModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    email: str = Field(min_length=1)
    count: int = Field(ge=0)
    earnings: int | float | None = None

    @field_validator("earnings")
    @classmethod
    def _non_negative_earnings(cls, value):
        if value is not None and value < 0:
            raise ValueError("earnings must be >= 0")
        return value


class VerticalContributors(_WireModel):
    model_config = ConfigDict(frozen=True)

    final: list[ContributorSummary] = Field(default_factory=list)
    re_edit: list[ContributorSummary] = Field(default_factory=list)
    exams: list[str] = Field(default_factory=list)
    subjects: list[str] = Field(default_factory=list)


class VerticalLeaderboardEntry(_WireModel):
    name: str
    total_videos: int
    final_videos: int
    re_edit_videos: int
    top_final_contributors: list[ContributorSummary]
    top_re_edit_contributors: list[ContributorSummary]
    earnings: int | float
    exams_count: int = 0
    subjects_count: int = 0


class VerticalContribution(_WireModel):
    name: str
    role: str
    count: int
    earnings: int | float


class UserLeaderboardEntry(_WireModel):
    email: str
    total_videos: int = 0
    final_videos: int = 0
    re_edit_videos: int = 0
    total_earnings: int | float = 0
    verticals: list[VerticalContribution] = Field(default_factory=list)


class ContributorTotals(_WireModel):
    email: str
    final_count: int = 0
    re_edit_count: int = 0
    total_count: int = 0
    total_earnings: int | float = 0


class LeaderboardSummary(_WireModel):
    total_verticals: int
    total_videos: int
    total_final_videos: int
    total_re_edit_videos: int


def _coerce_summary(item: Any, vertical: str, role: str) -> ContributorSummary:
    if isinstance(item, ContributorSummary):
        data = item.model_dump()
    elif isinstance(item, Mapping):
        data = dict(item)
    else:
        raise LeaderboardInputError(
            f"{vertical!r} {role} contributor must be a mapping or ContributorSummary, got {type(item).__name__}"
        )
    # Re-validate models too; model_construct() can bypass the constraints.
    try:
        return ContributorSummary.model_validate(data)
    except ValidationError as exc:
        problems = ", ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())
        raise LeaderboardInputError(f"invalid {role} contributor in vertical {vertical!r}: {problems}") from exc


def _coerce_vertical(name: str, value: Any) -> VerticalContributors:
    if not isinstance(name, str) or not name.strip():
        raise LeaderboardInputError(f"vertical name must be a non-empty string, got {name!r}")
    if isinstance(value, VerticalContributors):
        final, re_edit = value.final, value.re_edit
        exams, subjects = value.exams, value.subjects
    elif isinstance(value, Mapping):
        final = value.get("final") or []
        re_edit = value.get("re_edit", value.get("reEdit")) or []
        exams = value.get("exams") or []
        subjects = value.get("subjects") or []
    else:
        raise LeaderboardInputError(f"contributors for vertical {name!r} must be a mapping")
    return VerticalContributors(
        final=[_coerce_summary(item, name, ROLE_FINAL) for item in final],
        re_edit=[_coerce_summary(item, name, ROLE_RE_EDIT) for item in re_edit],
        exams=list(exams),
        subjects=list(subjects),
    )


def contributor_earnings(summary: ContributorSummary, rate: int = PER_VIDEO_RATE) -> int | float:
    """Explicit earnings win over the per-video rate whenever they are supplied."""
    if summary.earnings is not None:
        return summary.earnings
    return summary.count * rate


def _ranked(contributors: Iterable[ContributorSummary]) -> list[ContributorSummary]:
    return sorted(contributors, key=lambda c: c.count, reverse=True)


def build_vertical_leaderboard(
    per_vertical: Mapping[str, Any],
    rate: int = PER_VIDEO_RATE,
) -> list[VerticalLeaderboardEntry]:
    # Validate every vertical before building anything.
    verticals = [(name, _coerce_vertical(name, value)) for name, value in per_vertical.items()]

    entries = []
    for name, contributors in verticals:
        final_videos = sum(c.count for c in contributors.final)
        re_edit_videos = sum(c.count for c in contributors.re_edit)
        total = final_videos + re_edit_videos
        entries.append(
            VerticalLeaderboardEntry(
                name=name,
                total_videos=total,
                final_videos=final_videos,
                re_edit_videos=re_edit_videos,
                top_final_contributors=_ranked(contributors.final),
                top_re_edit_contributors=_ranked(contributors.re_edit),
                earnings=total * rate,
                exams_count=len(set(contributors.exams)),
                subjects_count=len(set(contributors.subjects)),
            )
        )
    return sorted(entries, key=lambda e: e.total_videos, reverse=True)


def _vertical_roles(entry: VerticalLeaderboardEntry):
    yield ROLE_FINAL, entry.top_final_contributors
    yield ROLE_RE_EDIT, entry.top_re_edit_contributors


def build_user_leaderboard(
    vertical_entries: Iterable[VerticalLeaderboardEntry],
    rate: int = PER_VIDEO_RATE,
) -> list[UserLeaderboardEntry]:
    users: dict[str, UserLeaderboardEntry] = {}
    for entry in vertical_entries:
        for role, contributors in _vertical_roles(entry):
            for item in contributors:
                summary = _coerce_summary(item, entry.name, role)
                earned = contributor_earnings(summary, rate)
                user = users.setdefault(summary.email, UserLeaderboardEntry(email=summary.email))
                user.total_videos += summary.count
                if role == ROLE_FINAL:
                    user.final_videos += summary.count
                else:
                    user.re_edit_videos += summary.count
                user.total_earnings += earned
                user.verticals.append(
                    VerticalContribution(name=entry.name, role=role, count=summary.count, earnings=earned)
                )
    return sorted(users.values(), key=lambda u: u.total_videos, reverse=True)


def top_contributors(
    entry: VerticalLeaderboardEntry,
    limit: int = TOP_CONTRIBUTORS_LIMIT,
    rate: int = PER_VIDEO_RATE,
) -> list[ContributorTotals]:
    """Final and re-edit contributors of one vertical merged by email, best first."""
    merged: dict[str, ContributorTotals] = {}
    for role, contributors in _vertical_roles(entry):
        for item in contributors:
            summary = _coerce_summary(item, entry.name, role)
            totals = merged.setdefault(summary.email, ContributorTotals(email=summary.email))
            if role == ROLE_FINAL:
                totals.final_count += summary.count
            else:
                totals.re_edit_count += summary.count
            totals.total_count += summary.count
            totals.total_earnings += contributor_earnings(summary, rate)
    ranked = sorted(merged.values(), key=lambda t: t.total_count, reverse=True)
    return ranked[:limit]


def find_vertical(entries: Iterable[VerticalLeaderboardEntry], name: str) -> VerticalLeaderboardEntry | None:
    for entry in entries:
        if entry.name == name:
            return entry
    return None


def rank_badge(rank: int) -> str:
    if rank < 0:
        raise ValueError(f"rank must be >= 0, got {rank}")
    if rank < len(RANK_MEDALS):
        return RANK_MEDALS[rank]
    return f"{rank + 1}."


def leaderboard_summary(entries: Sequence[VerticalLeaderboardEntry]) -> LeaderboardSummary:
    return LeaderboardSummary(
        total_verticals=len(entries),
        total_videos=sum(e.total_videos for e in entries),
        total_final_videos=sum(e.final_videos for e in entries),
        total_re_edit_videos=sum(e.re_edit_videos for e in entries),
    )


def summarize_contributors(records: Iterable[SubmissionRecord]) -> dict[str, VerticalContributors]:
    """
    Per-vertical contributor counts built from submission records.

    Verticals keep first-seen order; within a role contributors are ordered by
    count, highest first, ties in first-seen order.
    """
    counts: dict[str, dict[str, dict[str, int]]] = {}
    exams: dict[str, dict[str, None]] = {}
    subjects: dict[str, dict[str, None]] = {}

    for record in records:
        roles = counts.setdefault(record.vertical, {ROLE_FINAL: {}, ROLE_RE_EDIT: {}})
        role = ROLE_FINAL if record.status is Status.FINAL else ROLE_RE_EDIT
        roles[role][record.email] = roles[role].get(record.email, 0) + 1
        exams.setdefault(record.vertical, {})[record.exam_name] = None
        subject = getattr(record, "subject", None)
        if subject:
            subjects.setdefault(record.vertical, {})[subject] = None

    def ranked(by_email: dict[str, int]) -> list[ContributorSummary]:
        ordered = sorted(by_email.items(), key=lambda item: item[1], reverse=True)
        return [ContributorSummary(email=email, count=count) for email, count in ordered]

    return {
        vertical: VerticalContributors(
            final=ranked(roles[ROLE_FINAL]),
            re_edit=ranked(roles[ROLE_RE_EDIT]),
            exams=list(exams.get(vertical, {})),
            subjects=list(subjects.get(vertical, {})),
        )
        for vertical, roles in counts.items()
    }
