import json
import logging
import os
import threading
from pathlib import Path
from typing import Callable

from .models import RecordValidationError, SubmissionRecord, parse_record

logger = logging.getLogger(__name__)


class RecordNotFoundError(LookupError):
    pass


def read_json_rows(path: Path) -> list:
    """Top-level JSON list stored at `path`; missing or unreadable files give []."""
    try:
        if not path.exists():
            return []
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("could not read %s: %s", path, exc)
        return []
    if not isinstance(raw, list):
        logger.warning("%s does not hold a list; starting empty", path)
        return []
    return raw


def write_json_rows(path: Path, rows: list) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(rows, ensure_ascii=False, indent=2), encoding="utf-8")
    os.replace(tmp_path, path)


class RecordStore:
    """
    Ordered submission rows persisted as a JSON list of sheet-shaped rows.

    Positions are 1-based and follow list order, so deleting a row shifts the
    position of every row after it. Writes hold the lock until the file is
    replaced, so the file always matches the last completed write.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._records: list[SubmissionRecord] = []

    def load(self) -> int:
        loaded: list[SubmissionRecord] = []
        for index, row in enumerate(read_json_rows(self.path), start=1):
            if not isinstance(row, dict):
                logger.warning("skipping row %d: not an object", index)
                continue
            try:
                loaded.append(parse_record(row))
            except RecordValidationError as exc:
                logger.warning("skipping row %d: %s", index, exc)

        with self._lock:
            self._records = loaded
        logger.info("loaded %d records from %s", len(loaded), self.path)
        return len(loaded)

    def snapshot(self) -> tuple[SubmissionRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def get(self, position: int) -> SubmissionRecord:
        with self._lock:
            return self._records[self._index(position)]

    def add(
        self,
        record: SubmissionRecord,
        check: Callable[[tuple[SubmissionRecord, ...]], None] | None = None,
    ) -> int:
        """
        Append `record`. `check` sees the rows as they stand under the lock
        and may raise to abort the write.
        """
        with self._lock:
            if check is not None:
                check(tuple(self._records))
            self._records.append(record)
            position = len(self._records)
            self._persist()
        logger.info("added row %d (%s, %s)", position, record.vertical, record.email)
        return position

    def update(self, position: int, record: SubmissionRecord) -> SubmissionRecord:
        with self._lock:
            index = self._index(position)
            previous = self._records[index]
            self._records[index] = record
            self._persist()
        logger.info("updated row %d", position)
        return previous

    def update_with(
        self,
        position: int,
        change: Callable[[SubmissionRecord, tuple[SubmissionRecord, ...]], SubmissionRecord],
    ) -> SubmissionRecord:
        """
        Replace the row at `position` with `change(current, rows)`.

        The lookup, `change` and the write share one lock hold, so a concurrent
        delete cannot shift the row between reading and writing it. Anything
        `change` raises leaves the store untouched.
        """
        with self._lock:
            index = self._index(position)
            updated = change(self._records[index], tuple(self._records))
            self._records[index] = updated
            self._persist()
        logger.info("updated row %d", position)
        return updated

    def delete(self, position: int) -> SubmissionRecord:
        with self._lock:
            removed = self._records.pop(self._index(position))
            self._persist()
        logger.info("deleted row %d", position)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._records = []
            self._persist()

    def _index(self, position: int) -> int:
        if position < 1 or position > len(self._records):
            raise RecordNotFoundError(f"Row {position} not found")
        return position - 1

    def _persist(self) -> None:
        write_json_rows(self.path, [record.to_row() for record in self._records])
