from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Mapping, Protocol, Sequence

import yaml

from .errors import ConfigError, DuplicateWeek, TransportError
from .models import DAYS, Config, WeekRecord

log = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS week_records (
    record_id TEXT PRIMARY KEY,
    week_start TEXT NOT NULL UNIQUE,
    sunday TEXT NOT NULL,
    monday TEXT NOT NULL,
    tuesday TEXT NOT NULL,
    wednesday TEXT NOT NULL,
    thursday TEXT NOT NULL,
    friday TEXT NOT NULL,
    saturday TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""


class RecordStore(Protocol):
    def init(self) -> None: ...

    def find_by_week_start(self, week_start: date) -> WeekRecord | None: ...

    def insert(self, week_start: date, hours: Mapping[str, Decimal]) -> WeekRecord: ...

    def list_records(self) -> list[WeekRecord]: ...

    def count(self) -> int: ...


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def new_record(week_start: date, hours: Mapping[str, Decimal]) -> WeekRecord:
    return WeekRecord(
        record_id=str(uuid.uuid4()),
        week_start=week_start,
        hours={day: hours[day] for day in DAYS},
        created_at=utc_now(),
    )


def _decimal(value: object) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise TransportError(f"Malformed hours value in storage: {value!r}") from exc


def _record_from_fields(fields: Mapping[str, object]) -> WeekRecord:
    if not isinstance(fields, Mapping):
        raise TransportError(f"Malformed week record in storage: {fields!r}")
    try:
        week_start = date.fromisoformat(str(fields["week_start"]))
        return WeekRecord(
            record_id=str(fields["record_id"]),
            week_start=week_start,
            hours={day: _decimal(fields[day]) for day in DAYS},
            created_at=str(fields.get("created_at") or ""),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise TransportError(f"Malformed week record in storage: {exc}") from exc


class SQLiteStorage:
    def __init__(self, path: Path) -> None:
        self.path = path

    def connect(self) -> sqlite3.Connection:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(self.path)
            connection.row_factory = sqlite3.Row
            connection.executescript(SCHEMA)
        except (sqlite3.Error, OSError) as exc:
            raise TransportError(f"Cannot open storage at {self.path}: {exc}") from exc
        return connection

    def init(self) -> None:
        self.connect().close()

    def find_by_week_start(self, week_start: date) -> WeekRecord | None:
        row = self._fetchone(
            "SELECT * FROM week_records WHERE week_start = ?",
            (week_start.isoformat(),),
        )
        return _record_from_fields(dict(row)) if row else None

    def insert(self, week_start: date, hours: Mapping[str, Decimal]) -> WeekRecord:
        record = new_record(week_start, hours)
        connection = self.connect()
        try:
            with connection:
                connection.execute(
                    """
                    INSERT INTO week_records (
                        record_id, week_start, sunday, monday, tuesday,
                        wednesday, thursday, friday, saturday, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.record_id,
                        record.week_start.isoformat(),
                        *(str(record.hours[day]) for day in DAYS),
                        record.created_at,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            log.warning("Unique constraint rejected week %s", week_start)
            raise DuplicateWeek(week_start) from exc
        except sqlite3.Error as exc:
            raise TransportError(f"Insert failed: {exc}") from exc
        finally:
            connection.close()
        return record

    def list_records(self) -> list[WeekRecord]:
        rows = self._fetchall("SELECT * FROM week_records ORDER BY week_start ASC")
        return [_record_from_fields(dict(row)) for row in rows]

    def count(self) -> int:
        row = self._fetchone("SELECT COUNT(*) AS total FROM week_records", ())
        return int(row["total"]) if row else 0

    def _fetchone(self, query: str, params: Sequence[object]) -> sqlite3.Row | None:
        connection = self.connect()
        try:
            return connection.execute(query, params).fetchone()
        except sqlite3.Error as exc:
            raise TransportError(f"Query failed: {exc}") from exc
        finally:
            connection.close()

    def _fetchall(self, query: str, params: Sequence[object] = ()) -> list[sqlite3.Row]:
        connection = self.connect()
        try:
            return connection.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise TransportError(f"Query failed: {exc}") from exc
        finally:
            connection.close()


class MarkdownStorage:
    """Week records kept in a single Markdown page.

    The page carries a readable table plus a fenced block with the canonical
    data. ``jsonl`` is written; ``yaml`` blocks are read as well.
    """

    COLUMNS = ["Record ID", "Week Starting", *(day.title() for day in DAYS), "Created At"]

    def __init__(self, root: Path) -> None:
        self.root = root
        self.page_path = root / "weeks.md"

    def init(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            if not self.page_path.exists():
                self._write_records([])
        except OSError as exc:
            raise TransportError(f"Cannot initialize storage at {self.root}: {exc}") from exc

    def find_by_week_start(self, week_start: date) -> WeekRecord | None:
        for record in self._load_records():
            if record.week_start == week_start:
                return record
        return None

    def insert(self, week_start: date, hours: Mapping[str, Decimal]) -> WeekRecord:
        records = self._load_records()
        if any(record.week_start == week_start for record in records):
            log.warning("Existing page entry rejected week %s", week_start)
            raise DuplicateWeek(week_start)
        record = new_record(week_start, hours)
        records.append(record)
        self._write_records(records)
        return record

    def list_records(self) -> list[WeekRecord]:
        records = self._load_records()
        records.sort(key=lambda item: item.week_start)
        return records

    def count(self) -> int:
        return len(self._load_records())

    def _load_records(self) -> list[WeekRecord]:
        if not self.page_path.exists():
            return []
        try:
            lines = self.page_path.read_text(encoding="utf-8").splitlines()
        except OSError as exc:
            raise TransportError(f"Cannot read {self.page_path}: {exc}") from exc
        block = self._extract_fenced_block(lines)
        if block is None:
            return []
        return self._parse_fenced_records(block)

    def _write_records(self, records: Sequence[WeekRecord]) -> None:
        ordered = sorted(records, key=lambda item: item.week_start)
        lines = [
            "# Weekly Hours",
            "",
            "## Weeks",
            "",
            self._format_table(ordered),
            "",
            "## Canonical Week Data",
            "",
            *self._format_fenced_records(ordered),
        ]
        try:
            self.page_path.parent.mkdir(parents=True, exist_ok=True)
            self.page_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        except OSError as exc:
            raise TransportError(f"Cannot write {self.page_path}: {exc}") from exc

    def _format_table(self, records: Sequence[WeekRecord]) -> str:
        header = "| " + " | ".join(self.COLUMNS) + " |"
        separator = "| " + " | ".join(["---"] * len(self.COLUMNS)) + " |"
        rows = [header, separator]
        for record in records:
            cells = [
                record.record_id,
                record.week_start.isoformat(),
                *(f"{record.hours[day]:.2f}" for day in DAYS),
                record.created_at,
            ]
            rows.append("| " + " | ".join(self._escape(cell) for cell in cells) + " |")
        return "\n".join(rows)

    def _format_fenced_records(self, records: Sequence[WeekRecord]) -> list[str]:
        lines = ["```jsonl"]
        for record in records:
            lines.append(json.dumps(self._serialize_record(record), ensure_ascii=False))
        lines.append("```")
        return lines

    def _serialize_record(self, record: WeekRecord) -> dict[str, object]:
        payload: dict[str, object] = {
            "record_id": record.record_id,
            "week_start": record.week_start.isoformat(),
        }
        for day in DAYS:
            payload[day] = str(record.hours[day])
        payload["created_at"] = record.created_at
        return payload

    def _parse_fenced_records(self, block: tuple[str, list[str]]) -> list[WeekRecord]:
        language, content = block
        try:
            if language == "jsonl":
                return [
                    _record_from_fields(json.loads(line))
                    for line in content
                    if line.strip()
                ]
            payload = yaml.safe_load("\n".join(content)) or []
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise TransportError(f"Malformed data block in {self.page_path}: {exc}") from exc
        if isinstance(payload, dict):
            payload = payload.get("weeks", [])
        if not isinstance(payload, list):
            raise TransportError(f"Malformed data block in {self.page_path}")
        return [_record_from_fields(item) for item in payload if isinstance(item, dict)]

    def _extract_fenced_block(self, lines: Sequence[str]) -> tuple[str, list[str]] | None:
        in_block = False
        language = ""
        content: list[str] = []
        for line in lines:
            stripped = line.strip()
            if not in_block:
                if stripped.startswith("```"):
                    fence_language = stripped[3:].strip().lower()
                    if fence_language in {"jsonl", "yaml", "yml"}:
                        in_block = True
                        language = "yaml" if fence_language == "yml" else fence_language
            else:
                if stripped.startswith("```"):
                    break
                content.append(line)
        if not in_block:
            return None
        return (language, content)

    def _escape(self, value: str) -> str:
        return value.replace("|", "&#124;").replace("\n", "<br>")


def open_storage(config: Config) -> RecordStore:
    if config.storage_backend == "sqlite":
        return SQLiteStorage(config.storage_path)
    if config.storage_backend == "markdown":
        return MarkdownStorage(config.storage_path)
    raise ConfigError(f"Unknown storage backend: {config.storage_backend!r}")
