from __future__ import annotations

import logging
from typing import Any, Mapping

from .channel import Channel
from .errors import DeliveryError, DuplicateWeek, MissingDate, ValidationError
from .models import RefreshMessage, WeekDraft, WeekRecord, draft_from_dict
from .storage import RecordStore
from .validation import coerce_week_hours

log = logging.getLogger(__name__)


class SubmissionService:
    def __init__(self, store: RecordStore, channel: Channel) -> None:
        self.store = store
        self.channel = channel

    def submit(self, draft: WeekDraft) -> WeekRecord:
        """Validate and persist one week, then broadcast a refresh.

        Raises MissingDate, InvalidHours or DuplicateWeek without writing
        anything, and TransportError for store failures. Nothing is published
        unless the insert succeeded.
        """
        if draft.week_start is None:
            raise MissingDate()
        hours = coerce_week_hours(draft.hours)
        if self.store.find_by_week_start(draft.week_start) is not None:
            log.info("Rejected duplicate week %s", draft.week_start)
            raise DuplicateWeek(draft.week_start)
        record = self.store.insert(draft.week_start, hours)
        log.info(
            "Saved week %s (%s hours) as %s",
            record.week_start,
            record.total_hours,
            record.record_id,
        )
        self.publish_refresh()
        return record

    def save_hours(self, payload: Mapping[str, Any]) -> WeekRecord:
        try:
            draft = draft_from_dict(payload)
        except ValueError as exc:
            raise ValidationError(f"Invalid payload: {exc}") from exc
        return self.submit(draft)

    def publish_refresh(self) -> None:
        try:
            self.channel.publish(RefreshMessage(refresh=True))
        except DeliveryError:
            # Subscriber failures are already logged by the channel.
            log.error("Refresh broadcast after save reached only some subscribers")
