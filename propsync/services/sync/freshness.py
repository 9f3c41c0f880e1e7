"""Decide whether an external listing is due for another sync."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from propsync.infrastructure.db.connection import parse_timestamp, utcnow
from propsync.infrastructure.db.repositories import PropertyRepository

DEFAULT_FRESHNESS_HOURS = 24.0


class FreshnessGate:
    """Skip listings synced within the last ``threshold_hours``.

    There is no locking: two overlapping runs can both decide to sync the
    same listing, and the later upsert wins.
    """

    def __init__(
        self,
        repository: PropertyRepository,
        *,
        source: str = "bayut",
        clock: Callable[[], datetime] = utcnow,
        threshold_hours: float = DEFAULT_FRESHNESS_HOURS,
    ) -> None:
        self.repository = repository
        self.source = source
        self.clock = clock
        self.threshold_hours = threshold_hours

    def hours_since_sync(self, external_id: str) -> float | None:
        state = self.repository.get_sync_state(self.source, external_id)
        if not state:
            return None
        last_synced = parse_timestamp(state.get("last_synced_at"))
        if last_synced is None:
            return None
        return (self.clock() - last_synced).total_seconds() / 3600.0

    def needs_sync(self, external_id: str) -> bool:
        hours = self.hours_since_sync(external_id)
        return hours is None or hours >= self.threshold_hours


__all__ = ["DEFAULT_FRESHNESS_HOURS", "FreshnessGate"]
