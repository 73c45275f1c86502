import json
import threading

import pytest

from backend.app.catalog import Catalog, normalize_vertical_name, subcategories_for
from backend.app.models import parse_record, replace_record
from backend.app.store import RecordNotFoundError, RecordStore


def make_row(link: str, exam: str = "SBI PO") -> dict:
    return {
        "Email": "editor@addaeducation.com",
        "Vertical Name": "Bank",
        "Exam Name": exam,
        "Type of Content": "Exam_Information",
        "Edit": "Final",
        "Video Link": link,
    }


def test_add_update_delete_persist(tmp_path):
    path = tmp_path / "records.json"
    store = RecordStore(path)
    assert store.load() == 0

    assert store.add(parse_record(make_row("https://youtu.be/AAAAAAAAAAA"))) == 1
    assert store.add(parse_record(make_row("https://youtu.be/BBBBBBBBBBB", exam="IBPS PO"))) == 2

    store.update(1, parse_record(make_row("https://youtu.be/CCCCCCCCCCC")))
    removed = store.delete(2)
    assert removed.exam_name == "IBPS PO"

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert len(saved) == 1
    assert saved[0]["VideoId"] == "CCCCCCCCCCC"

    reloaded = RecordStore(path)
    assert reloaded.load() == 1
    assert reloaded.get(1).video_id == "CCCCCCCCCCC"


def test_unknown_positions_raise(tmp_path):
    store = RecordStore(tmp_path / "records.json")
    store.load()
    with pytest.raises(RecordNotFoundError):
        store.get(1)
    with pytest.raises(RecordNotFoundError):
        store.delete(0)


def test_snapshot_is_detached(tmp_path):
    store = RecordStore(tmp_path / "records.json")
    store.add(parse_record(make_row("https://youtu.be/AAAAAAAAAAA")))
    snapshot = store.snapshot()
    store.add(parse_record(make_row("https://youtu.be/BBBBBBBBBBB")))
    assert len(snapshot) == 1
    assert len(store.snapshot()) == 2


def test_load_skips_invalid_rows(tmp_path):
    path = tmp_path / "records.json"
    rows = [
        make_row("https://youtu.be/AAAAAAAAAAA"),
        {**make_row("https://youtu.be/BBBBBBBBBBB"), "Email": "x@gmail.com"},
        "not a row",
    ]
    path.write_text(json.dumps(rows), encoding="utf-8")
    store = RecordStore(path)
    assert store.load() == 1


def test_load_survives_corrupt_file(tmp_path):
    path = tmp_path / "records.json"
    path.write_text("{broken", encoding="utf-8")
    store = RecordStore(path)
    assert store.load() == 0
    assert store.snapshot() == ()


def test_catalog_normalizes_vertical_names(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(
        json.dumps(
            {
                "ssc": {"exams": ["SSC CGL"], "subjects": ["Quantitative Aptitude", "General Awareness"]},
                "bank": {"exams": ["SBI PO", ""], "subjects": None},
            }
        ),
        encoding="utf-8",
    )
    catalog = Catalog.from_file(path)
    assert catalog.verticals() == ["SSC", "Bank"]
    assert catalog.exams_for("SSC") == ["SSC CGL"]
    assert catalog.exams_for("bank") == ["SBI PO"]
    assert catalog.subjects_for("Bank") == []
    assert catalog.search_subjects("ssc", "aware") == ["General Awareness"]
    assert catalog.search_subjects("ssc", "") == ["Quantitative Aptitude", "General Awareness"]


def test_catalog_missing_file_is_empty(tmp_path):
    assert Catalog.from_file(tmp_path / "missing.json").verticals() == []


def test_vertical_name_and_subcategory_helpers():
    assert normalize_vertical_name("ugc") == "UGC"
    assert normalize_vertical_name("SSC") == "SSC"
    assert normalize_vertical_name("teaching") == "Teaching"
    assert normalize_vertical_name("") == ""
    assert subcategories_for("Content") == ["Topic/Facts", "Question", "Tricks & Formulas"]
    assert subcategories_for("Unknown") == []


def test_update_with_blocks_concurrent_delete(tmp_path):
    store = RecordStore(tmp_path / "records.json")
    for link, exam in [("AAAAAAAAAAA", "SBI PO"), ("BBBBBBBBBBB", "IBPS PO"), ("CCCCCCCCCCC", "SBI Clerk")]:
        store.add(parse_record(make_row(f"https://youtu.be/{link}", exam=exam)))

    deleter = threading.Thread(target=store.delete, args=(1,))
    seen = {}

    def change(current, records):
        deleter.start()
        deleter.join(timeout=0.2)
        seen["delete_waited"] = deleter.is_alive()
        seen["rows"] = len(records)
        return replace_record(current, {"Exam Name": "RRB PO"})

    updated = store.update_with(2, change)
    deleter.join(timeout=5)

    assert seen == {"delete_waited": True, "rows": 3}
    assert updated.video_id == "BBBBBBBBBBB"
    assert [(r.video_id, r.exam_name) for r in store.snapshot()] == [
        ("BBBBBBBBBBB", "RRB PO"),
        ("CCCCCCCCCCC", "SBI Clerk"),
    ]


def test_rejected_change_leaves_store_untouched(tmp_path):
    path = tmp_path / "records.json"
    store = RecordStore(path)
    store.add(parse_record(make_row("https://youtu.be/AAAAAAAAAAA")))

    def refuse(*_args):
        raise ValueError("nope")

    with pytest.raises(ValueError):
        store.update_with(1, refuse)
    with pytest.raises(ValueError):
        store.add(parse_record(make_row("https://youtu.be/BBBBBBBBBBB")), check=refuse)
    assert [r.video_id for r in store.snapshot()] == ["AAAAAAAAAAA"]
    assert len(json.loads(path.read_text(encoding="utf-8"))) == 1
