import sqlite3
from datetime import date
from decimal import Decimal

import pytest

from hour_tracker.errors import ConfigError, DuplicateWeek, TransportError
from hour_tracker.models import Config
from hour_tracker.storage import MarkdownStorage, SQLiteStorage, open_storage

from .conftest import full_week


@pytest.fixture(params=["sqlite", "markdown"])
def store(request, sqlite_store, markdown_store):
    return sqlite_store if request.param == "sqlite" else markdown_store


def test_insert_assigns_id_and_keeps_hours(store):
    record = store.insert(date(2024, 1, 7), full_week(friday="4.5"))
    assert record.record_id
    assert record.week_start == date(2024, 1, 7)
    assert record.hours["friday"] == Decimal("4.5")

    found = store.find_by_week_start(date(2024, 1, 7))
    assert found == record


def test_find_missing_week_returns_none(store):
    assert store.find_by_week_start(date(2024, 1, 7)) is None


def test_list_records_is_ordered_by_week_start(store):
    for week_start in (date(2024, 3, 3), date(2023, 12, 31), date(2024, 1, 14)):
        store.insert(week_start, full_week())
    assert [record.week_start for record in store.list_records()] == [
        date(2023, 12, 31),
        date(2024, 1, 14),
        date(2024, 3, 3),
    ]


def test_store_rejects_second_record_for_same_week(store):
    store.insert(date(2024, 1, 7), full_week())
    with pytest.raises(DuplicateWeek):
        store.insert(date(2024, 1, 7), full_week(sunday=1))
    assert store.count() == 1
    assert store.find_by_week_start(date(2024, 1, 7)).hours["sunday"] == Decimal("8")


def test_sqlite_unique_index_holds_without_pre_check(sqlite_store):
    sqlite_store.insert(date(2024, 1, 7), full_week())
    connection = sqlite3.connect(sqlite_store.path)
    try:
        with pytest.raises(sqlite3.IntegrityError):
            connection.execute(
                "INSERT INTO week_records VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                ("other", "2024-01-07", "1", "1", "1", "1", "1", "1", "1", "now"),
            )
    finally:
        connection.close()


def test_sqlite_malformed_row_is_a_transport_error(sqlite_store):
    connection = sqlite3.connect(sqlite_store.path)
    with connection:
        connection.execute(
            "INSERT INTO week_records VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            ("bad", "not-a-date", "1", "1", "1", "1", "1", "1", "1", "now"),
        )
    connection.close()
    with pytest.raises(TransportError):
        sqlite_store.list_records()


def test_sqlite_unreachable_path_is_a_transport_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    store = SQLiteStorage(blocker / "hours.sqlite")
    with pytest.raises(TransportError):
        store.list_records()


def test_markdown_page_has_table_and_canonical_block(markdown_store):
    markdown_store.insert(date(2024, 1, 7), full_week())
    text = markdown_store.page_path.read_text(encoding="utf-8")
    assert "| Record ID | Week Starting | Sunday |" in text
    assert "2024-01-07" in text
    assert "```jsonl" in text


def test_markdown_reads_yaml_block(tmp_path):
    store = MarkdownStorage(tmp_path)
    store.page_path.write_text(
        "\n".join(
            [
                "# Weekly Hours",
                "",
                "```yaml",
                "weeks:",
                "  - record_id: abc",
                "    week_start: 2024-01-14",
                "    sunday: 1",
                "    monday: 2",
                "    tuesday: 3",
                "    wednesday: 4",
                "    thursday: 5",
                "    friday: 6.5",
                "    saturday: 0",
                "```",
            ]
        ),
        encoding="utf-8",
    )
    (record,) = store.list_records()
    assert record.record_id == "abc"
    assert record.week_start == date(2024, 1, 14)
    assert record.hours["friday"] == Decimal("6.5")


def test_markdown_malformed_block_is_a_transport_error(tmp_path):
    store = MarkdownStorage(tmp_path)
    store.page_path.write_text("```jsonl\n{not json\n```\n", encoding="utf-8")
    with pytest.raises(TransportError):
        store.list_records()


def test_open_storage_picks_backend(tmp_path):
    assert isinstance(
        open_storage(Config("default", "sqlite", tmp_path / "h.sqlite")), SQLiteStorage
    )
    assert isinstance(open_storage(Config("default", "markdown", tmp_path)), MarkdownStorage)
    with pytest.raises(ConfigError):
        open_storage(Config("default", "postgres", tmp_path))


@pytest.mark.parametrize("line", ["[1]", '"week"', "42"])
def test_markdown_non_object_line_is_a_transport_error(tmp_path, line):
    store = MarkdownStorage(tmp_path)
    store.page_path.write_text(f"```jsonl\n{line}\n```\n", encoding="utf-8")
    with pytest.raises(TransportError):
        store.list_records()
