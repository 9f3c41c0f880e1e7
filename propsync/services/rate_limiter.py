"""Fixed-window request rate limiting backed by the ``rate_limits`` table.

Each key owns at most one active window. The first request in a window
inserts it with ``count=1``; later requests increment the count until
``max_requests`` is reached. The lookup and the increment are separate
statements, so two concurrent callers may both be admitted at the
boundary. When the store itself fails the limiter admits the request.
"""

from __future__ import annotations

import math
import sqlite3
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta

from propsync.infrastructure.db.connection import format_timestamp, parse_timestamp, utcnow
from propsync.infrastructure.db.repositories import RateLimitRepository
from propsync.infrastructure.observability.logging import get_logger
from propsync.infrastructure.observability.metrics import record_rate_limit_check

logger = get_logger(__name__)

DEFAULT_MAX_REQUESTS = 10
DEFAULT_WINDOW_SECONDS = 60


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: datetime


def user_key(function_name: str, user_id: str) -> str:
    return f"{function_name}:user:{user_id}"


def ip_key(function_name: str, address: str) -> str:
    return f"{function_name}:ip:{address}"


def client_ip(headers: Mapping[str, str]) -> str:
    """Return the caller address from proxy headers, or ``"unknown"``."""
    forwarded = headers.get("x-forwarded-for") or headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip") or headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return "unknown"


def retry_after_seconds(result: RateLimitResult, now: datetime | None = None) -> int:
    """Seconds until ``result`` resets, never less than one."""
    current = now or utcnow()
    return max(1, math.ceil((result.reset_at - current).total_seconds()))


class RateLimiter:
    """Admit or reject calls per key using fixed windows."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        clock: Callable[[], datetime] = utcnow,
        repository: RateLimitRepository | None = None,
    ) -> None:
        self.conn = conn
        self.clock = clock
        self._repository = repository

    @property
    def repository(self) -> RateLimitRepository:
        if self._repository is None:
            self._repository = RateLimitRepository(self.conn)
        return self._repository

    def check(
        self,
        key: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
    ) -> RateLimitResult:
        now = self.clock()
        window = timedelta(seconds=window_seconds)
        try:
            result = self._check(key, now, max_requests, window)
        except Exception as exc:  # any storage failure admits the request
            logger.warning(f"Rate limit check failed for {key}, allowing request: {exc}")
            result = RateLimitResult(
                allowed=True, remaining=max(0, max_requests - 1), reset_at=now + window
            )
        record_rate_limit_check(key.split(":", 1)[0], result.allowed)
        return result

    def _check(
        self, key: str, now: datetime, max_requests: int, window: timedelta
    ) -> RateLimitResult:
        repo = self.repository
        active = repo.find_active(key, format_timestamp(now - window))

        if active is None:
            expires_at = now + window
            repo.create(key, format_timestamp(now), format_timestamp(expires_at))
            return RateLimitResult(
                allowed=True, remaining=max(0, max_requests - 1), reset_at=expires_at
            )

        window_start = parse_timestamp(active["window_start"]) or now
        reset_at = window_start + window
        count = int(active["count"] or 0)

        if count >= max_requests:
            logger.debug(f"Rate limit exceeded for {key} ({count}/{max_requests})")
            return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at)

        repo.set_count(active["id"], count + 1)
        return RateLimitResult(
            allowed=True, remaining=max(0, max_requests - count - 1), reset_at=reset_at
        )

    def cleanup(self) -> int:
        """Delete windows that expired before now; returns the number removed."""
        removed = self.repository.delete_expired(format_timestamp(self.clock()))
        if removed:
            logger.info(f"Removed {removed} expired rate limit windows")
        return removed


__all__ = [
    "DEFAULT_MAX_REQUESTS",
    "DEFAULT_WINDOW_SECONDS",
    "RateLimitResult",
    "RateLimiter",
    "client_ip",
    "ip_key",
    "retry_after_seconds",
    "user_key",
]
