import logging
import time
from collections import deque
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

try:
    from backend.app import config
    from backend.app.catalog import SUBCATEGORIES, Catalog, subcategories_for, undeclared_values
    from backend.app.models import ContentType, RecordValidationError, SubmissionRecord, parse_record, replace_record
    from backend.app.services.duplicates import check_link, duplicate_warning, find_duplicate_position
    from backend.app.services.filters import FacetSelection, apply_filters, dashboard_stats, facet_options
    from backend.app.services.leaderboard import (
        build_user_leaderboard,
        build_vertical_leaderboard,
        find_vertical,
        leaderboard_summary,
        rank_badge,
        summarize_contributors,
        top_contributors,
    )
    from backend.app.services.video_id import watch_url
    from backend.app.store import RecordNotFoundError, RecordStore
    from backend.app.tickets import Ticket, TicketRequest, TicketStore
except ModuleNotFoundError:
    from app import config
    from app.catalog import SUBCATEGORIES, Catalog, subcategories_for, undeclared_values
    from app.models import ContentType, RecordValidationError, SubmissionRecord, parse_record, replace_record
    from app.services.duplicates import check_link, duplicate_warning, find_duplicate_position
    from app.services.filters import FacetSelection, apply_filters, dashboard_stats, facet_options
    from app.services.leaderboard import (
        build_user_leaderboard,
        build_vertical_leaderboard,
        find_vertical,
        leaderboard_summary,
        rank_badge,
        summarize_contributors,
        top_contributors,
    )
    from app.services.video_id import watch_url
    from app.store import RecordNotFoundError, RecordStore
    from app.tickets import Ticket, TicketRequest, TicketStore

config.configure_logging()
logger = logging.getLogger(__name__)


# ---------------------------
# Request models
# ---------------------------

class RowPayload(BaseModel):
    """A sheet-shaped row; any column keys ride along as extra fields."""

    model_config = ConfigDict(extra="allow")

    force: bool = False

    def row(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class LinkCheckRequest(BaseModel):
    url: str = ""


# ---------------------------
# Rate limiting
# ---------------------------

API_RATE_LIMIT_BUCKETS: dict[str, deque] = {}


def get_client_ip(request: Request) -> str:
    forwarded = (request.headers.get("x-forwarded-for") or "").strip()
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def enforce_api_rate_limit(request: Request, scope: str) -> None:
    now_ts = time.time()
    key = f"{scope}:{get_client_ip(request)}"
    bucket = API_RATE_LIMIT_BUCKETS.setdefault(key, deque())

    cutoff = now_ts - config.rate_limit_window_seconds()
    while bucket and bucket[0] < cutoff:
        bucket.popleft()

    if len(bucket) >= config.rate_limit_max_requests():
        logger.warning("rate limit hit for %s", key)
        raise HTTPException(
            status_code=429,
            detail="Too many requests. Please wait a minute and try again.",
        )

    bucket.append(now_ts)


# ---------------------------
# Helpers
# ---------------------------

def positioned(records: tuple[SubmissionRecord, ...], subset: list[SubmissionRecord]) -> list[dict[str, Any]]:
    """Rows for `subset`, each carrying its position in the full dataset."""
    position_of = {id(record): position for position, record in enumerate(records, start=1)}
    return [{"Sr no.": position_of[id(record)], **record.to_row()} for record in subset]


def current_vertical_leaderboard():
    records = STORE.snapshot()
    return build_vertical_leaderboard(summarize_contributors(records), rate=config.per_video_rate())


def reject_duplicate(record: SubmissionRecord, records, skip_position: int | None = None) -> None:
    position = find_duplicate_position(record.video_link, records, skip_position=skip_position)
    if position is None:
        return
    existing = records[position - 1]
    logger.info("duplicate video %s matches row %d", record.video_id, position)
    raise HTTPException(
        status_code=409,
        detail={
            "message": duplicate_warning(existing, position),
            "error_code": "duplicate_video",
            "existing": {"Sr no.": position, **existing.to_row()},
        },
    )


# ---------------------------
# App setup
# ---------------------------

STORE = RecordStore(config.records_file())
CATALOG = Catalog.from_file(config.catalog_file())
TICKETS = TicketStore(config.tickets_file())

app = FastAPI()

cors_origins, cors_credentials = config.parse_cors_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RecordValidationError)
async def record_validation_error_handler(_request: Request, exc: RecordValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "detail": str(exc),
            "error_code": "invalid_record",
            "errors": exc.errors,
        },
    )


@app.exception_handler(RecordNotFoundError)
async def record_not_found_handler(_request: Request, exc: RecordNotFoundError):
    return JSONResponse(
        status_code=404,
        content={"success": False, "detail": str(exc), "error_code": "row_not_found"},
    )


@app.on_event("startup")
def on_startup_load_records():
    STORE.load()
    TICKETS.load()


# ---------------------------
# Endpoints
# ---------------------------

@app.get("/health")
def health():
    return {"ok": True}


@app.get("/api/data")
def get_data(
    vertical: str | None = None,
    type: str | None = None,
    examName: str | None = None,
    subject: str | None = None,
):
    records = STORE.snapshot()
    selection = FacetSelection(vertical=vertical, content_type=type, exam_name=examName, subject=subject)
    filtered = apply_filters(records, selection)
    return {
        "success": True,
        "data": positioned(records, filtered),
        "total": len(records),
        "filtered": len(filtered),
        "stats": dashboard_stats(records, filtered),
    }


@app.get("/api/filters")
def get_filters():
    return {"success": True, "filters": facet_options(STORE.snapshot())}


@app.get("/api/categories")
def get_categories(type: str | None = None):
    if type:
        if type not in SUBCATEGORIES:
            raise HTTPException(status_code=404, detail=f"Unknown content type {type!r}")
        return {"success": True, "type": type, "subcategories": subcategories_for(type)}
    return {
        "success": True,
        "categories": [content_type.value for content_type in ContentType],
        "subcategories": SUBCATEGORIES,
    }


@app.get("/api/exams")
def get_exams():
    return {"success": True, "exams": CATALOG.to_dict()}


@app.get("/api/verticals")
def get_verticals():
    return {"success": True, "verticals": CATALOG.verticals()}


@app.get("/api/subjects")
def get_subjects(vertical: str, q: str = ""):
    return {"success": True, "vertical": vertical, "subjects": CATALOG.search_subjects(vertical, q)}


@app.get("/api/exams/undeclared")
def get_undeclared_values():
    return {"success": True, "undeclared": undeclared_values(STORE.snapshot(), CATALOG)}


@app.post("/api/check-link")
def check_video_link(payload: LinkCheckRequest, request: Request):
    enforce_api_rate_limit(request, scope="check_link")
    result = check_link(payload.url, STORE.snapshot())
    if result.error:
        raise HTTPException(status_code=400, detail=result.error)
    response = {
        "success": True,
        "videoId": result.video_id,
        "watchUrl": watch_url(result.video_id),
        "exists": result.exists,
    }
    if result.exists:
        response["data"] = {"Sr no.": result.position, **(result.record or {})}
    return response


@app.post("/api/add")
def add_row(payload: RowPayload, request: Request):
    enforce_api_rate_limit(request, scope="add")
    record = parse_record(payload.row())

    def check(records):
        if not payload.force:
            reject_duplicate(record, records)

    position = STORE.add(record, check=check)
    return {"success": True, "row": {"Sr no.": position, **record.to_row()}}


@app.put("/api/update/{row_id}")
def update_row(row_id: int, payload: RowPayload, request: Request):
    enforce_api_rate_limit(request, scope="update")

    def change(current, records):
        updated = replace_record(current, payload.row())
        if not payload.force:
            reject_duplicate(updated, records, skip_position=row_id)
        return updated

    updated = STORE.update_with(row_id, change)
    return {"success": True, "row": {"Sr no.": row_id, **updated.to_row()}}


@app.delete("/api/delete/{row_id}")
def delete_row(row_id: int, request: Request):
    enforce_api_rate_limit(request, scope="delete")
    removed = STORE.delete(row_id)
    return {"success": True, "deleted": removed.to_row()}


@app.get("/api/leaderboard")
def leaderboard():
    entries = current_vertical_leaderboard()
    return {
        "success": True,
        "leaderboard": [
            {"rank": index + 1, "badge": rank_badge(index), **entry.model_dump(by_alias=True)}
            for index, entry in enumerate(entries)
        ],
        "summary": leaderboard_summary(entries).model_dump(by_alias=True),
    }


@app.get("/api/leaderboard/users")
def user_leaderboard():
    users = build_user_leaderboard(current_vertical_leaderboard(), rate=config.per_video_rate())
    return {
        "success": True,
        "users": [
            {"rank": index + 1, "badge": rank_badge(index), **user.model_dump(by_alias=True)}
            for index, user in enumerate(users)
        ],
    }


@app.get("/api/leaderboard/verticals/{name}")
def vertical_detail(name: str):
    entry = find_vertical(current_vertical_leaderboard(), name)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Vertical {name!r} not found")
    contributors = top_contributors(entry, rate=config.per_video_rate())
    return {
        "success": True,
        "vertical": entry.model_dump(by_alias=True),
        "topContributors": [
            {"rank": index + 1, "badge": rank_badge(index), **item.model_dump(by_alias=True)}
            for index, item in enumerate(contributors)
        ],
    }


@app.post("/api/ticket")
def raise_ticket(payload: TicketRequest, request: Request):
    enforce_api_rate_limit(request, scope="ticket")
    ticket = TICKETS.add(Ticket.open(payload))
    return {"success": True, "ticketId": ticket.ticket_id, "ticket": ticket.to_row()}


@app.get("/api/tickets")
def list_tickets(status: str | None = None):
    tickets = [t.to_row() for t in TICKETS.snapshot() if not status or t.status.value == status]
    return {"success": True, "tickets": tickets}
