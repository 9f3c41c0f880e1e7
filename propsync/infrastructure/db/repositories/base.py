"""Base repository class with shared database query helpers.

Every repository wraps one SQLite connection and converts cursor rows into
plain dictionaries, so callers never deal with positional tuples.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Any


class BaseRepository:
    """Base class for all repository implementations."""

    #: Columns holding JSON documents; decoded by :meth:`_decode_row`.
    json_columns: tuple[str, ...] = ()

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialize repository with a database connection.

        Args:
            conn: SQLite database connection
        """
        self.conn = conn

    def _fetch_all_as_dicts(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> list[dict[str, Any]]:
        """Execute query and return all rows as dictionaries.

        Example:
            >>> rows = self._fetch_all_as_dicts(
            ...     "SELECT id, name FROM agents WHERE is_verified = ?",
            ...     (1,)
            ... )
            >>> rows[0]['name']
            'Sara Khan'
        """
        cur = self.conn.execute(query, params or ())
        columns = [c[0] for c in cur.description]
        return [self._decode_row(dict(zip(columns, row))) for row in cur.fetchall()]

    def _fetch_one_as_dict(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> dict[str, Any] | None:
        """Execute query and return the first row as a dictionary, or None."""
        cur = self.conn.execute(query, params or ())
        row = cur.fetchone()
        if not row:
            return None
        columns = [c[0] for c in cur.description]
        return self._decode_row(dict(zip(columns, row)))

    def _fetch_scalar(self, query: str, params: tuple[Any, ...] | None = None) -> Any:
        """Execute query and return first column of first row.

        Example:
            >>> count = self._fetch_scalar("SELECT COUNT(*) FROM properties")
            >>> count
            42
        """
        cur = self.conn.execute(query, params or ())
        row = cur.fetchone()
        return row[0] if row else None

    def _execute_insert(self, query: str, params: tuple[Any, ...] | None = None) -> int:
        """Execute INSERT query and return last row ID."""
        cur = self.conn.execute(query, params or ())
        return cur.lastrowid or 0

    def _execute(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> sqlite3.Cursor:
        """Execute query and return cursor for custom processing."""
        return self.conn.execute(query, params or ())

    @staticmethod
    def _dump_json(value: Any) -> str | None:
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False, sort_keys=True, default=str)

    def _decode_row(self, row: dict[str, Any]) -> dict[str, Any]:
        for column in self.json_columns:
            raw = row.get(column)
            if isinstance(raw, str):
                try:
                    row[column] = json.loads(raw)
                except ValueError:
                    pass
        return row
