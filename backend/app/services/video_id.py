import re

# Tried in order; the first pattern that matches wins.
VIDEO_ID_PATTERNS = (
    re.compile(r"(?:youtube\.com/shorts/|youtu\.be/shorts/)([A-Za-z0-9_-]{11})"),
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([A-Za-z0-9_-]{11})"),
    re.compile(r"youtube\.com/embed/([A-Za-z0-9_-]{11})"),
    re.compile(r"^([A-Za-z0-9_-]{11})$"),
)
DRIVE_FILE_ID_RE = re.compile(r"/d/([A-Za-z0-9_-]+)")


def extract_video_id(url: str | None) -> str:
    """
    Canonical 11-character YouTube id for a shorts, watch, youtu.be, embed
    or bare-id input. Returns "" when nothing resolves.
    """
    raw = (url or "").strip()
    if not raw:
        return ""
    for pattern in VIDEO_ID_PATTERNS:
        m = pattern.search(raw)
        if m:
            return m.group(1)
    return ""


def extract_drive_file_id(url: str | None) -> str:
    m = DRIVE_FILE_ID_RE.search((url or "").strip())
    return m.group(1) if m else ""


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"
