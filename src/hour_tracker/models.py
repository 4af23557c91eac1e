from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping

DAYS = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)

# Stored weeks start on Sunday (date.weekday numbering).
WEEK_START_WEEKDAY = 6


@dataclass(frozen=True)
class Config:
    profile_name: str
    storage_backend: str
    storage_path: Path


@dataclass(frozen=True)
class AppConfig:
    default_profile: str
    profiles: dict[str, Config]


@dataclass(frozen=True)
class WeekRecord:
    record_id: str
    week_start: date
    hours: Mapping[str, Decimal]
    created_at: str

    @property
    def total_hours(self) -> Decimal:
        return sum((self.hours[day] for day in DAYS), Decimal("0"))


@dataclass(frozen=True)
class WeekDraft:
    """Unsaved week as typed by the user. Hour values stay raw until submit."""

    week_start: date | None = None
    hours: Mapping[str, Any] = field(default_factory=lambda: {day: 0 for day in DAYS})

    @classmethod
    def empty(cls) -> WeekDraft:
        return cls()

    def with_week_start(self, week_start: date | None) -> WeekDraft:
        return replace(self, week_start=week_start)

    def with_hours(self, day: str, value: Any) -> WeekDraft:
        if day not in DAYS:
            raise KeyError(f"Unknown day: {day!r}")
        hours = dict(self.hours)
        hours[day] = value
        return replace(self, hours=hours)


@dataclass(frozen=True)
class RefreshMessage:
    refresh: bool


@dataclass(frozen=True)
class Notification:
    title: str
    message: str
    variant: str  # success | error


@dataclass(frozen=True)
class DisplayRow:
    record_id: str
    week_start: date
    sunday: Decimal
    monday: Decimal
    tuesday: Decimal
    wednesday: Decimal
    thursday: Decimal
    friday: Decimal
    saturday: Decimal


def draft_from_dict(data: Mapping[str, Any]) -> WeekDraft:
    """Build a draft from the persist payload ``{"weekStart": ..., "hours": {...}}``.

    ``weekStart`` must already be a canonical week start (a Sunday); anything
    else raises ValueError. Hour values are kept raw so that coercion errors
    are reported by the submission service.
    """
    raw_start = data.get("weekStart") or data.get("week_start")
    week_start: date | None
    if isinstance(raw_start, datetime):
        week_start = raw_start.date()
    elif isinstance(raw_start, date):
        week_start = raw_start
    elif raw_start:
        week_start = date.fromisoformat(str(raw_start))
    else:
        week_start = None
    if week_start is not None and week_start.weekday() != WEEK_START_WEEKDAY:
        raise ValueError(f"weekStart {week_start.isoformat()} is not a Sunday.")
    raw_hours = data.get("hours") or {}
    if not isinstance(raw_hours, Mapping):
        raise ValueError("hours must be a mapping of day names to hours.")
    hours = {day: raw_hours.get(day, 0) for day in DAYS}
    return WeekDraft(week_start=week_start, hours=hours)


def record_to_payload(record: WeekRecord) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": record.record_id,
        "weekStart": record.week_start.isoformat(),
    }
    for day in DAYS:
        payload[day] = float(record.hours[day])
    return payload
