import logging

from backend.app import config


def test_configure_logging_reaches_any_package_name(monkeypatch):
    root = logging.getLogger()
    saved_level = root.level
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setenv("LOG_LEVEL", "info")
    try:
        config.configure_logging()
        config.configure_logging()
        assert len(root.handlers) == 1
        # The app also runs from inside backend/, where modules log as app.*
        assert logging.getLogger("app.store").isEnabledFor(logging.INFO)
        assert logging.getLogger("backend.app.store").isEnabledFor(logging.INFO)
    finally:
        root.setLevel(saved_level)


def test_tickets_file_override(monkeypatch, tmp_path):
    monkeypatch.setenv("TICKETS_FILE", str(tmp_path / "t.json"))
    assert config.tickets_file() == tmp_path / "t.json"
    monkeypatch.delenv("TICKETS_FILE")
    assert config.tickets_file().name == "tickets.json"
