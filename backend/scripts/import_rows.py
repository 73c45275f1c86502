from __future__ import annotations

import argparse
import csv
import json
import time
from pathlib import Path
from typing import Any

import requests
from requests import HTTPError

DEFAULT_API_URL = "http://localhost:8000"


def read_rows(path: Path) -> list[dict[str, Any]]:
    """Rows from a sheet export: a JSON list of objects or a CSV with a header row."""
    if path.suffix.lower() == ".csv":
        with path.open(newline="", encoding="utf-8-sig") as handle:
            return [dict(row) for row in csv.DictReader(handle)]

    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("data") or []
    if not isinstance(payload, list):
        raise RuntimeError(f"{path} must hold a JSON list of rows")
    return [row for row in payload if isinstance(row, dict)]


def post_row(session: requests.Session, api_url: str, row: dict[str, Any], force: bool, timeout: int = 15) -> str:
    response = session.post(f"{api_url}/api/add", json={**row, "force": force}, timeout=timeout)
    if response.status_code == 409:
        return "duplicate"
    if response.status_code == 422:
        return "invalid"
    try:
        response.raise_for_status()
    except HTTPError as exc:
        detail = ""
        try:
            detail = str(response.json().get("detail") or "")
        except ValueError:
            pass
        raise RuntimeError(f"add failed ({response.status_code}): {detail or response.text}") from exc
    return "added"


def main() -> int:
    parser = argparse.ArgumentParser(description="Import sheet rows into the submission tracker.")
    parser.add_argument("source", type=Path, help="JSON or CSV export of the sheet")
    parser.add_argument("--api-url", default=DEFAULT_API_URL)
    parser.add_argument("--force", action="store_true", help="submit rows even when the video already exists")
    parser.add_argument("--delay", type=float, default=0.05, help="seconds to wait between requests")
    args = parser.parse_args()

    rows = read_rows(args.source)
    api_url = args.api_url.rstrip("/")
    counts = {"added": 0, "duplicate": 0, "invalid": 0}

    with requests.Session() as session:
        for index, row in enumerate(rows, start=1):
            outcome = post_row(session, api_url, row, force=args.force)
            counts[outcome] += 1
            if outcome != "added":
                print(f"row {index}: {outcome} ({row.get('Video Link') or 'no link'})")
            time.sleep(args.delay)

    print(f"Read {len(rows)} rows from {args.source}")
    for outcome, count in counts.items():
        print(f"{outcome}: {count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
