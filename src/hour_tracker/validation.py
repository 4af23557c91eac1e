from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from .errors import InvalidHours, ValidationError
from .models import DAYS

# The date picker works on the last day of the previous period (Saturday);
# stored weeks start the day after.
ANCHOR_WEEKDAY = 5
WEEK_START_OFFSET = timedelta(days=1)

_WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def parse_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value!r}. Use YYYY-MM-DD.") from exc


def normalize_week_start(selected: date | str) -> date:
    """Return the canonical week start for a date picked in the UI.

    Raises ValidationError unless ``selected`` falls on the anchor weekday.
    """
    day = parse_date(selected)
    if day.weekday() != ANCHOR_WEEKDAY:
        raise ValidationError(
            f"Please select a {_WEEKDAY_NAMES[ANCHOR_WEEKDAY]} date."
        )
    return day + WEEK_START_OFFSET


def coerce_hours(day: str, raw: Any) -> Decimal:
    if raw is None:
        return Decimal("0")
    if isinstance(raw, bool):
        raise InvalidHours(day, raw)
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, (int, float)):
        value = Decimal(str(raw))
    else:
        text = str(raw).strip()
        if not text:
            return Decimal("0")
        if "_" in text:
            raise InvalidHours(day, raw)
        try:
            value = Decimal(text)
        except InvalidOperation as exc:
            raise InvalidHours(day, raw) from exc
    if not value.is_finite() or value < 0:
        raise InvalidHours(day, raw)
    return value.copy_abs()


def coerce_week_hours(raw_hours: Mapping[str, Any]) -> dict[str, Decimal]:
    return {day: coerce_hours(day, raw_hours.get(day)) for day in DAYS}
