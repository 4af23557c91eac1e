from datetime import date, timedelta
from decimal import Decimal

import pytest

from hour_tracker.errors import InvalidHours, ValidationError
from hour_tracker.validation import (
    coerce_hours,
    coerce_week_hours,
    normalize_week_start,
)


def test_saturday_normalizes_to_following_sunday():
    assert normalize_week_start(date(2024, 1, 6)) == date(2024, 1, 7)
    assert normalize_week_start("2024-01-06") == date(2024, 1, 7)


def test_every_saturday_in_a_year_shifts_by_one_day():
    day = date(2024, 1, 6)
    while day.year == 2024:
        assert normalize_week_start(day) - day == timedelta(days=1)
        assert normalize_week_start(day).weekday() == 6
        day += timedelta(days=7)


def test_saturday_at_year_end_rolls_into_next_year():
    assert normalize_week_start("2022-12-31") == date(2023, 1, 1)


@pytest.mark.parametrize(
    "value",
    ["2024-01-07", "2024-01-08", "2024-01-09", "2024-01-10", "2024-01-11", "2024-01-12"],
)
def test_other_weekdays_are_rejected(value):
    with pytest.raises(ValidationError, match="Please select a Saturday date."):
        normalize_week_start(value)


def test_unparsable_date_is_a_validation_error():
    with pytest.raises(ValidationError):
        normalize_week_start("next saturday")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("8", Decimal("8")),
        (" 7.5 ", Decimal("7.5")),
        (4, Decimal("4")),
        (2.25, Decimal("2.25")),
        (Decimal("0.1"), Decimal("0.1")),
        ("", Decimal("0")),
        (None, Decimal("0")),
        ("36", Decimal("36")),
    ],
)
def test_coerce_hours_accepts_non_negative_numbers(raw, expected):
    assert coerce_hours("monday", raw) == expected


@pytest.mark.parametrize("raw", ["abc", "-1", -0.5, "NaN", "Infinity", "1,5", "8_0", True])
def test_coerce_hours_rejects_bad_values(raw):
    with pytest.raises(InvalidHours) as excinfo:
        coerce_hours("tuesday", raw)
    assert excinfo.value.day == "tuesday"


def test_coerce_week_hours_reports_first_bad_day_in_week_order():
    with pytest.raises(InvalidHours) as excinfo:
        coerce_week_hours({"sunday": "8", "monday": "x", "friday": "y"})
    assert excinfo.value.day == "monday"


def test_coerce_week_hours_fills_missing_days_with_zero():
    hours = coerce_week_hours({"wednesday": "6"})
    assert list(hours) == [
        "sunday",
        "monday",
        "tuesday",
        "wednesday",
        "thursday",
        "friday",
        "saturday",
    ]
    assert hours["wednesday"] == Decimal("6")
    assert hours["sunday"] == Decimal("0")


@pytest.mark.parametrize("raw", ["-0", "-0.0", -0.0, Decimal("-0")])
def test_negative_zero_is_stored_as_zero(raw):
    value = coerce_hours("friday", raw)
    assert value == 0
    assert not value.is_signed()
    assert f"{value:.2f}" == "0.00"
