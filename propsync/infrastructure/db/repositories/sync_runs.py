from __future__ import annotations

import sqlite3
from typing import Any, Mapping

from ..schema import ensure_schema
from .base import BaseRepository

COUNTER_COLUMNS: tuple[str, ...] = (
    "properties_found",
    "properties_synced",
    "photos_rehosted",
    "photos_cdn_referenced",
    "floor_plans_rehosted",
    "agents_discovered",
    "agencies_discovered",
    "api_calls_used",
    "estimated_storage_saved_mb",
)


class SyncRunRepository(BaseRepository):
    """Audit trail of sync invocations (one row per run)."""

    json_columns = ("errors",)

    def __init__(self, conn: sqlite3.Connection) -> None:
        super().__init__(conn)
        ensure_schema(self.conn)

    def create(self, sync_type: str, target: str | None, started_at: str) -> int:
        run_id = self._execute_insert(
            "INSERT INTO sync_runs (sync_type, target, status, started_at, errors) "
            "VALUES (?, ?, 'running', ?, '[]')",
            (sync_type, target, started_at),
        )
        if not run_id:
            raise RuntimeError("Failed to insert sync_runs record")
        self.conn.commit()
        return run_id

    def finalize(
        self,
        run_id: int,
        *,
        status: str,
        completed_at: str,
        counters: Mapping[str, Any],
        errors: list[str],
    ) -> None:
        assignments = ", ".join(f"{column} = ?" for column in COUNTER_COLUMNS)
        params = [counters.get(column, 0) for column in COUNTER_COLUMNS]
        self._execute(
            f"UPDATE sync_runs SET status = ?, completed_at = ?, errors = ?, {assignments} "
            "WHERE id = ?",
            (status, completed_at, self._dump_json(list(errors)), *params, run_id),
        )
        self.conn.commit()

    def get(self, run_id: int) -> dict[str, Any] | None:
        return self._fetch_one_as_dict("SELECT * FROM sync_runs WHERE id = ?", (run_id,))

    def list_recent(
        self, limit: int = 20, sync_type: str | None = None
    ) -> list[dict[str, Any]]:
        query = "SELECT * FROM sync_runs"
        params: list[Any] = []
        if sync_type:
            query += " WHERE sync_type = ?"
            params.append(sync_type)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        return self._fetch_all_as_dicts(query, tuple(params))
