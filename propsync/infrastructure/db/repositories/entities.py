from __future__ import annotations

import sqlite3
from typing import Any

from ..connection import iso_utcnow
from ..schema import ensure_schema
from .base import BaseRepository


class _ExternalEntityRepository(BaseRepository):
    """Upsert-by-``external_id`` helper shared by agents and agencies."""

    table: str = ""
    columns: tuple[str, ...] = ()

    def __init__(self, conn: sqlite3.Connection) -> None:
        super().__init__(conn)
        ensure_schema(self.conn)

    def upsert(self, fields: dict[str, Any]) -> int:
        values: list[Any] = []
        for column in self.columns:
            value = fields.get(column)
            if column in self.json_columns:
                value = self._dump_json(value)
            elif isinstance(value, bool):
                value = 1 if value else 0
            values.append(value)

        now = iso_utcnow()
        columns_sql = ", ".join(self.columns + ("created_at", "updated_at"))
        placeholders = ", ".join("?" for _ in range(len(self.columns) + 2))
        updates = ", ".join(
            f"{column} = excluded.{column}"
            for column in self.columns
            if column != "external_id"
        )
        self._execute(
            f"""
            INSERT INTO {self.table} ({columns_sql})
            VALUES ({placeholders})
            ON CONFLICT(external_id) DO UPDATE SET
                {updates},
                updated_at = excluded.updated_at
            """,
            tuple(values) + (now, now),
        )
        self.conn.commit()
        return int(
            self._fetch_scalar(
                f"SELECT id FROM {self.table} WHERE external_id = ?",
                (fields["external_id"],),
            )
        )

    def get(self, external_id: str) -> dict[str, Any] | None:
        return self._fetch_one_as_dict(
            f"SELECT * FROM {self.table} WHERE external_id = ?", (external_id,)
        )

    def count(self) -> int:
        return int(self._fetch_scalar(f"SELECT COUNT(*) FROM {self.table}") or 0)


class AgentRepository(_ExternalEntityRepository):
    table = "agents"
    columns = (
        "external_id",
        "name",
        "name_l1",
        "phone",
        "email",
        "photo_url",
        "agency_external_id",
        "is_verified",
        "is_trakheesi_verified",
        "languages",
        "agent_rating",
        "review_count",
        "experience_since",
        "raw_data",
        "last_synced_at",
    )
    json_columns = ("languages", "raw_data")


class AgencyRepository(_ExternalEntityRepository):
    table = "agencies"
    columns = (
        "external_id",
        "name",
        "name_l1",
        "logo_url",
        "license_number",
        "phone",
        "is_verified",
        "total_agents",
        "product_score",
        "review_score",
        "raw_data",
        "last_synced_at",
    )
    json_columns = ("raw_data",)
