from __future__ import annotations

import sys
import tempfile
from pathlib import Path

from fastapi import HTTPException
from starlette.requests import Request

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import backend.main as main_module
from backend.app.store import RecordStore
from backend.app.tickets import TicketRequest, TicketStore


def make_request(ip: str = "127.0.0.1") -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [],
            "client": (ip, 8000),
            "query_string": b"",
            "server": ("test", 80),
            "scheme": "http",
            "http_version": "1.1",
        }
    )


def make_row(link: str, email: str, vertical: str, status: str = "Final") -> dict:
    return {
        "Email": email,
        "Vertical Name": vertical,
        "Exam Name": "Smoke Exam",
        "Subject": "Smoke Subject",
        "Type of Content": "Content",
        "Sub category": "Question",
        "Edit": status,
        "Video Link": link,
    }


def assert_true(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def reset_state(workdir: Path) -> None:
    main_module.STORE = RecordStore(workdir / "records.json")
    main_module.STORE.load()
    main_module.TICKETS = TicketStore(workdir / "tickets.json")
    main_module.API_RATE_LIMIT_BUCKETS.clear()


def seed() -> None:
    rows = [
        make_row("https://youtu.be/AAAAAAAAAAA", "one@adda247.com", "Bank"),
        make_row("https://youtu.be/BBBBBBBBBBB", "one@adda247.com", "Bank", status="Re-edit"),
        make_row("https://youtu.be/CCCCCCCCCCC", "two@studyiq.com", "SSC"),
    ]
    for row in rows:
        main_module.add_row(main_module.RowPayload(**row), make_request())


def test_health() -> None:
    payload = main_module.health()
    assert_true(payload.get("ok") is True, "/health should return ok=true")


def test_add_and_duplicate() -> None:
    seed()
    try:
        main_module.add_row(
            main_module.RowPayload(**make_row("https://www.youtube.com/watch?v=AAAAAAAAAAA", "x@adda247.com", "Bank")),
            make_request(),
        )
    except HTTPException as exc:
        assert_true(exc.status_code == 409, "duplicate add should be rejected with 409")
    else:
        raise AssertionError("duplicate add should be rejected")


def test_data_filters() -> None:
    seed()
    payload = main_module.get_data(vertical="SSC")
    assert_true(payload["filtered"] == 1, "vertical filter should keep one row")
    assert_true(payload["data"][0]["Sr no."] == 3, "filtered rows keep their dataset position")


def test_leaderboards() -> None:
    seed()
    board = main_module.leaderboard()["leaderboard"]
    assert_true([item["name"] for item in board] == ["Bank", "SSC"], "verticals ranked by total videos")
    users = main_module.user_leaderboard()["users"]
    assert_true(users[0]["email"] == "one@adda247.com", "top user should be one@adda247.com")
    detail = main_module.vertical_detail("Bank")["topContributors"]
    assert_true(detail[0]["totalEarnings"] == 100, "two videos earn 100")


def test_ticket() -> None:
    payload = TicketRequest(
        **{
            "Vertical": "Bank",
            "Exam Name": "SBI PO",
            "Subject": "Reasoning Ability",
            "Issue Type": "Other",
            "Issue Text": "smoke ticket",
        }
    )
    raised = main_module.raise_ticket(payload, make_request())
    assert_true(raised["ticket"]["Status"] == "Open", "new tickets start open")
    assert_true(len(main_module.list_tickets()["tickets"]) == 1, "ticket should be listed")


def run() -> int:
    checks = [
        ("health", test_health),
        ("add + duplicate", test_add_and_duplicate),
        ("data filters", test_data_filters),
        ("leaderboards", test_leaderboards),
        ("ticket", test_ticket),
    ]
    failures = []

    for check_name, check_fn in checks:
        with tempfile.TemporaryDirectory() as workdir:
            reset_state(Path(workdir))
            try:
                check_fn()
                print(f"[PASS] {check_name}")
            except Exception as exc:  # pragma: no cover - smoke script output path
                failures.append((check_name, str(exc)))
                print(f"[FAIL] {check_name}: {exc}")

    if failures:
        print(f"\nSmoke checks failed: {len(failures)}")
        for check_name, message in failures:
            print(f"- {check_name}: {message}")
        return 1

    print("\nAll smoke checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(run())
