"""Self-throttling for sync runs: organic per-record delays and batch cooldowns."""

from __future__ import annotations

import random
from collections.abc import Callable

BATCH_SIZE = 20
BATCH_COOLDOWN_SECONDS = 5.0
PACING_MIN_SECONDS = 0.8
PACING_MAX_SECONDS = 2.0

DelayStrategy = Callable[[], float]
Sleeper = Callable[[float], None]


def organic_delay(
    min_seconds: float = PACING_MIN_SECONDS, max_seconds: float = PACING_MAX_SECONDS
) -> DelayStrategy:
    """Return a strategy drawing uniform delays in ``[min_seconds, max_seconds]``."""
    if max_seconds < min_seconds:
        raise ValueError("max_seconds must be >= min_seconds")

    def _delay() -> float:
        return random.uniform(min_seconds, max_seconds)

    return _delay


def no_delay() -> float:
    return 0.0


__all__ = [
    "BATCH_COOLDOWN_SECONDS",
    "BATCH_SIZE",
    "DelayStrategy",
    "PACING_MAX_SECONDS",
    "PACING_MIN_SECONDS",
    "Sleeper",
    "no_delay",
    "organic_delay",
]
