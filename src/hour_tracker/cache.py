from __future__ import annotations

import logging

from .errors import TransportError
from .models import WeekRecord
from .storage import RecordStore

log = logging.getLogger(__name__)


class QueryCache:
    """Read-through cache over the full, ordered list of week records.

    A failed load leaves the last known-good value in place; it is still marked
    stale so the next ``fetch_all`` tries the store again.
    """

    def __init__(self, store: RecordStore) -> None:
        self.store = store
        self._records: list[WeekRecord] | None = None
        self._stale = True

    @property
    def cached(self) -> list[WeekRecord] | None:
        return list(self._records) if self._records is not None else None

    @property
    def stale(self) -> bool:
        return self._stale

    def fetch_all(self) -> list[WeekRecord]:
        if self._stale or self._records is None:
            self._load()
        return list(self._records or [])

    def invalidate(self) -> None:
        log.debug("Invalidated week record cache")
        self._stale = True

    def invalidate_and_refetch(self) -> list[WeekRecord]:
        self.invalidate()
        return self.fetch_all()

    def _load(self) -> None:
        try:
            records = self.store.list_records()
        except TransportError:
            log.exception("Loading week records failed")
            raise
        records.sort(key=lambda item: item.week_start)
        self._records = records
        self._stale = False
        log.debug("Loaded %d week records", len(records))
