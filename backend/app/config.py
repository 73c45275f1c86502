import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BACKEND_DIR = Path(__file__).resolve().parents[1]

DEFAULT_CORS_ORIGIN = "http://localhost:5173"
DEFAULT_ALLOWED_EMAIL_DOMAINS = ("adda247.com", "addaeducation.com", "studyiq.com")
DEFAULT_PER_VIDEO_RATE = 50
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 60
DEFAULT_RATE_LIMIT_MAX_REQUESTS = 30


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def parse_cors_origins() -> tuple[list[str], bool]:
    raw = (os.getenv("CORS_ALLOWED_ORIGINS") or "").strip()
    if not raw:
        return [DEFAULT_CORS_ORIGIN], True
    if raw == "*":
        return ["*"], False
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if not origins:
        return [DEFAULT_CORS_ORIGIN], True
    return origins, True


def allowed_email_domains() -> tuple[str, ...]:
    raw = (os.getenv("ALLOWED_EMAIL_DOMAINS") or "").strip()
    if not raw:
        return DEFAULT_ALLOWED_EMAIL_DOMAINS
    domains = tuple(d.strip().lower() for d in raw.split(",") if d.strip())
    return domains or DEFAULT_ALLOWED_EMAIL_DOMAINS


def records_file() -> Path:
    raw = (os.getenv("RECORDS_FILE") or "").strip()
    return Path(raw) if raw else BACKEND_DIR / "data_runtime" / "records.json"


def catalog_file() -> Path:
    raw = (os.getenv("CATALOG_FILE") or "").strip()
    return Path(raw) if raw else BACKEND_DIR / "data" / "catalog.json"


def tickets_file() -> Path:
    raw = (os.getenv("TICKETS_FILE") or "").strip()
    return Path(raw) if raw else BACKEND_DIR / "data_runtime" / "tickets.json"


def per_video_rate() -> int:
    rate = _env_int("PER_VIDEO_RATE", DEFAULT_PER_VIDEO_RATE)
    return rate if rate >= 0 else DEFAULT_PER_VIDEO_RATE


def rate_limit_window_seconds() -> int:
    return max(1, _env_int("API_RATE_LIMIT_WINDOW_SECONDS", DEFAULT_RATE_LIMIT_WINDOW_SECONDS))


def rate_limit_max_requests() -> int:
    return max(1, _env_int("API_RATE_LIMIT_MAX_REQUESTS", DEFAULT_RATE_LIMIT_MAX_REQUESTS))


def configure_logging() -> None:
    """Attach a single stream handler to the root logger."""
    root = logging.getLogger()
    level = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    root.setLevel(getattr(logging, level, logging.INFO))
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s:%(name)s:%(message)s"))
        root.addHandler(handler)
