"""Wiring of the submission form and the history table.

The form and the table never reference each other; both only know the
refresh channel name on a shared MessageBus.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from .cache import QueryCache
from .channel import REFRESH_CHANNEL, MessageBus
from .display import HourTableDisplay
from .errors import SubmissionError, SubmissionInProgress, TransportError, ValidationError
from .models import WeekDraft, WeekRecord
from .notify import ERROR, SUCCESS, Notifier, show_toast
from .storage import RecordStore
from .submission import SubmissionService
from .validation import normalize_week_start

log = logging.getLogger(__name__)


class HourTrackerForm:
    def __init__(self, service: SubmissionService, notifier: Notifier) -> None:
        self.service = service
        self.notifier = notifier
        self.draft = WeekDraft.empty()
        self.show_table = False
        self.submitting = False

    def select_date(self, value: date | str) -> bool:
        try:
            week_start = normalize_week_start(value)
        except ValidationError as exc:
            self.show_table = False
            self.draft = self.draft.with_week_start(None)
            show_toast(self.notifier, "Invalid Date", str(exc), ERROR)
            return False
        self.draft = self.draft.with_week_start(week_start)
        self.show_table = True
        return True

    def set_hours(self, day: str, value: Any) -> None:
        self.draft = self.draft.with_hours(day, value)

    def submit(self) -> WeekRecord | None:
        if self.submitting:
            show_toast(self.notifier, "Error", str(SubmissionInProgress()), ERROR)
            return None
        self.submitting = True
        try:
            record = self.service.submit(self.draft)
        except (SubmissionError, TransportError) as exc:
            log.info("Submission failed: %s", exc)
            show_toast(self.notifier, "Error", f"Error logging hours: {exc}", ERROR)
            return None
        finally:
            self.submitting = False
        show_toast(self.notifier, "Success", "Hours saved successfully!", SUCCESS)
        self.reset()
        return record

    def reset(self) -> None:
        self.draft = WeekDraft.empty()
        self.show_table = False


@dataclass
class HourTracker:
    store: RecordStore
    bus: MessageBus
    cache: QueryCache
    service: SubmissionService
    notifier: Notifier

    def new_form(self) -> HourTrackerForm:
        return HourTrackerForm(self.service, self.notifier)

    def new_display(self, activate: bool = True) -> HourTableDisplay:
        display = HourTableDisplay(self.bus.channel(REFRESH_CHANNEL), self.cache)
        if activate:
            display.activate()
        return display


def build_tracker(
    store: RecordStore, notifier: Notifier, bus: MessageBus | None = None
) -> HourTracker:
    bus = bus or MessageBus()
    store.init()
    cache = QueryCache(store)
    service = SubmissionService(store, bus.channel(REFRESH_CHANNEL))
    return HourTracker(
        store=store,
        bus=bus,
        cache=cache,
        service=service,
        notifier=notifier,
    )
