from __future__ import annotations

import sqlite3
from typing import Any

from ..schema import ensure_schema
from .base import BaseRepository


class RateLimitRepository(BaseRepository):
    """Storage for fixed rate-limit windows keyed by an opaque string."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        super().__init__(conn)
        ensure_schema(self.conn)

    def find_active(self, key: str, since: str) -> dict[str, Any] | None:
        """Return the most recent window for ``key`` starting at or after ``since``."""
        return self._fetch_one_as_dict(
            "SELECT id, key, count, window_start, expires_at FROM rate_limits "
            "WHERE key = ? AND window_start >= ? "
            "ORDER BY window_start DESC, id DESC LIMIT 1",
            (key, since),
        )

    def create(self, key: str, window_start: str, expires_at: str) -> int:
        window_id = self._execute_insert(
            "INSERT INTO rate_limits (key, count, window_start, expires_at, created_at) "
            "VALUES (?, 1, ?, ?, ?)",
            (key, window_start, expires_at, window_start),
        )
        self.conn.commit()
        return window_id

    def set_count(self, window_id: int, count: int) -> None:
        self._execute(
            "UPDATE rate_limits SET count = ? WHERE id = ?", (count, window_id)
        )
        self.conn.commit()

    def delete_expired(self, now: str) -> int:
        cur = self._execute("DELETE FROM rate_limits WHERE expires_at < ?", (now,))
        self.conn.commit()
        return cur.rowcount
