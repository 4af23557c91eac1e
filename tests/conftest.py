from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Mapping

import pytest

from hour_tracker.app import HourTracker, build_tracker
from hour_tracker.errors import TransportError
from hour_tracker.models import Notification, WeekRecord
from hour_tracker.storage import MarkdownStorage, SQLiteStorage


class RecordingNotifier:
    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def last(self) -> Notification:
        return self.notifications[-1]


class SpyStore:
    """Wraps a real store, counting calls and optionally failing queries."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.calls: list[str] = []
        self.fail_queries = False

    def init(self) -> None:
        self.inner.init()

    def find_by_week_start(self, week_start: date) -> WeekRecord | None:
        self.calls.append("find_by_week_start")
        return self.inner.find_by_week_start(week_start)

    def insert(self, week_start: date, hours: Mapping[str, Decimal]) -> WeekRecord:
        self.calls.append("insert")
        return self.inner.insert(week_start, hours)

    def list_records(self) -> list[WeekRecord]:
        self.calls.append("list_records")
        if self.fail_queries:
            raise TransportError("store unreachable")
        return self.inner.list_records()

    def count(self) -> int:
        return self.inner.count()


@pytest.fixture
def sqlite_store(tmp_path: Path) -> SQLiteStorage:
    store = SQLiteStorage(tmp_path / "hours.sqlite")
    store.init()
    return store


@pytest.fixture
def markdown_store(tmp_path: Path) -> MarkdownStorage:
    store = MarkdownStorage(tmp_path / "weeks")
    store.init()
    return store


@pytest.fixture
def spy_store(sqlite_store: SQLiteStorage) -> SpyStore:
    return SpyStore(sqlite_store)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def tracker(spy_store: SpyStore, notifier: RecordingNotifier) -> HourTracker:
    return build_tracker(spy_store, notifier)


def full_week(**overrides) -> dict[str, Decimal]:
    hours = {
        "sunday": Decimal("8"),
        "monday": Decimal("8"),
        "tuesday": Decimal("8"),
        "wednesday": Decimal("8"),
        "thursday": Decimal("8"),
        "friday": Decimal("4"),
        "saturday": Decimal("0"),
    }
    hours.update({day: Decimal(str(value)) for day, value in overrides.items()})
    return hours
