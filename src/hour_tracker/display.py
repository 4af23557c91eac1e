from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

from .cache import QueryCache
from .channel import Channel, Subscription
from .errors import TransportError
from .models import DAYS, DisplayRow, WeekRecord

log = logging.getLogger(__name__)

COLUMNS = (
    ("Week Starting", "week_start"),
    *((f"{day.title()} Hours", day) for day in DAYS),
)


def to_row(record: WeekRecord) -> DisplayRow:
    return DisplayRow(
        record_id=record.record_id,
        week_start=record.week_start,
        **{day: record.hours[day] for day in DAYS},
    )


def format_table(rows: Iterable[Iterable[str]]) -> str:
    rows = list(rows)
    if not rows:
        return ""
    widths = [max(len(str(cell)) for cell in column) for column in zip(*rows)]
    lines = []
    for row in rows:
        padded = [str(cell).ljust(width) for cell, width in zip(row, widths)]
        lines.append("  ".join(padded).rstrip())
    return "\n".join(lines)


class HourTableDisplay:
    """Table of stored weeks that follows refresh broadcasts."""

    def __init__(self, channel: Channel, cache: QueryCache) -> None:
        self.channel = channel
        self.cache = cache
        self.rows: tuple[DisplayRow, ...] = ()
        self.error: str | None = None
        self.render_count = 0
        self._subscription: Subscription | None = None

    @property
    def active(self) -> bool:
        return self._subscription is not None

    def activate(self) -> None:
        if self._subscription is None:
            self._subscription = self.channel.subscribe(self.handle_message)
        self._load(self.cache.fetch_all)

    def deactivate(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def handle_message(self, message: Any) -> None:
        if isinstance(message, Mapping):
            refresh = message.get("refresh")
        else:
            refresh = getattr(message, "refresh", None)
        if refresh is True:
            self.refresh()

    def refresh(self) -> None:
        self._load(self.cache.invalidate_and_refetch)

    def render(self) -> str:
        if self.error:
            return f"Error retrieving hours data: {self.error}"
        if not self.rows:
            return "No weeks recorded."
        table = [tuple(label for label, _ in COLUMNS)]
        for row in self.rows:
            table.append(
                (
                    row.week_start.isoformat(),
                    *(f"{getattr(row, day):.2f}" for day in DAYS),
                )
            )
        return format_table(table)

    def _load(self, fetch: Any) -> None:
        try:
            records: Sequence[WeekRecord] = fetch()
        except TransportError as exc:
            log.error("Error retrieving hours data: %s", exc)
            self.error = str(exc)
            return
        self.error = None
        self.rows = tuple(to_row(record) for record in records)
        self.render_count += 1
