import logging
import random
import threading
import time
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .catalog import normalize_vertical_name
from .store import read_json_rows, write_json_rows

logger = logging.getLogger(__name__)

ISSUE_TYPES = (
    "Wrong Data Entry",
    "Duplicate Entry",
    "Missing Information",
    "Incorrect Video Link",
    "Wrong Category/Subject",
    "Other",
)


class TicketStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


def generate_ticket_id(now_ms: int | None = None, suffix: int | None = None) -> str:
    """`TKT-<epoch millis>-<0..999>`."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if suffix is None:
        suffix = random.randrange(1000)
    return f"TKT-{now_ms}-{suffix}"


class TicketRequest(BaseModel):
    """An issue raised against the data. Any client-sent ticket id is ignored."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    vertical: str = Field(alias="Vertical", min_length=1)
    exam_name: str = Field(alias="Exam Name", min_length=1)
    subject: str = Field(alias="Subject", min_length=1)
    issue_type: str = Field(alias="Issue Type", min_length=1)
    status: TicketStatus = Field(default=TicketStatus.OPEN, alias="Status")
    issue_text: str = Field(alias="Issue Text", min_length=1)

    @field_validator("vertical")
    @classmethod
    def _normalize_vertical(cls, value: str) -> str:
        return normalize_vertical_name(value)

    @field_validator("issue_type")
    @classmethod
    def _known_issue_type(cls, value: str) -> str:
        if value not in ISSUE_TYPES:
            raise ValueError(f"must be one of {', '.join(ISSUE_TYPES)}")
        return value


class Ticket(TicketRequest):
    model_config = ConfigDict(frozen=True)

    ticket_id: str = Field(alias="Ticket ID", min_length=1)

    @classmethod
    def open(cls, request: TicketRequest, ticket_id: str | None = None) -> "Ticket":
        return cls(ticket_id=ticket_id or generate_ticket_id(), **request.model_dump())

    def to_row(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class TicketStore:
    """Append-only tickets persisted next to the records file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._tickets: list[Ticket] = []

    def load(self) -> int:
        loaded = []
        for index, row in enumerate(read_json_rows(self.path), start=1):
            try:
                loaded.append(Ticket.model_validate(row))
            except ValidationError as exc:
                logger.warning("skipping ticket %d: %d validation errors", index, exc.error_count())
        with self._lock:
            self._tickets = loaded
        logger.info("loaded %d tickets from %s", len(loaded), self.path)
        return len(loaded)

    def snapshot(self) -> tuple[Ticket, ...]:
        with self._lock:
            return tuple(self._tickets)

    def add(self, ticket: Ticket) -> Ticket:
        with self._lock:
            self._tickets.append(ticket)
            write_json_rows(self.path, [t.to_row() for t in self._tickets])
        logger.info("raised ticket %s (%s, %s)", ticket.ticket_id, ticket.vertical, ticket.issue_type)
        return ticket
