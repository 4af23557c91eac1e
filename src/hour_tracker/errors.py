from __future__ import annotations

from datetime import date


class HourTrackerError(Exception):
    pass


class ConfigError(HourTrackerError):
    pass


class ValidationError(HourTrackerError):
    """The selected date cannot anchor a week."""


class SubmissionError(HourTrackerError):
    pass


class MissingDate(SubmissionError):
    def __init__(self) -> None:
        super().__init__("Please select a week before submitting.")


class InvalidHours(SubmissionError):
    def __init__(self, day: str, value: object = None) -> None:
        self.day = day
        self.value = value
        super().__init__(f"Invalid hours for {day}: {value!r}")


class DuplicateWeek(SubmissionError):
    def __init__(self, week_start: date) -> None:
        self.week_start = week_start
        super().__init__(
            f"Hours for the week starting {week_start.isoformat()} already exist."
        )


class SubmissionInProgress(SubmissionError):
    def __init__(self) -> None:
        super().__init__("A submission is already in progress.")


class TransportError(HourTrackerError):
    """Any other failure while talking to the record store."""


class DeliveryError(HourTrackerError):
    def __init__(self, channel: str, errors: list[BaseException]) -> None:
        self.channel = channel
        self.errors = errors
        super().__init__(
            f"{len(errors)} subscriber(s) of {channel} failed: {errors[0]}"
        )
