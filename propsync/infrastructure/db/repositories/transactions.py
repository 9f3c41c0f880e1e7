from __future__ import annotations

import sqlite3
from typing import Any

from ..schema import ensure_schema
from .base import BaseRepository


class TransactionRepository(BaseRepository):
    json_columns = ("raw_data",)

    def __init__(self, conn: sqlite3.Connection) -> None:
        super().__init__(conn)
        ensure_schema(self.conn)

    def upsert(self, fields: dict[str, Any]) -> None:
        self._execute(
            """
            INSERT INTO transactions (
                external_id, location_name, property_type, transaction_type,
                price_aed, size_sqft, bedrooms, transaction_date, raw_data,
                last_synced_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(external_id) DO UPDATE SET
                location_name = excluded.location_name,
                property_type = excluded.property_type,
                transaction_type = excluded.transaction_type,
                price_aed = excluded.price_aed,
                size_sqft = excluded.size_sqft,
                bedrooms = excluded.bedrooms,
                transaction_date = excluded.transaction_date,
                raw_data = excluded.raw_data,
                last_synced_at = excluded.last_synced_at
            """,
            (
                fields["external_id"],
                fields.get("location_name"),
                fields.get("property_type"),
                fields.get("transaction_type"),
                fields.get("price_aed"),
                fields.get("size_sqft"),
                fields.get("bedrooms"),
                fields.get("transaction_date"),
                self._dump_json(fields.get("raw_data")),
                fields.get("last_synced_at"),
            ),
        )
        self.conn.commit()

    def count(self) -> int:
        return int(self._fetch_scalar("SELECT COUNT(*) FROM transactions") or 0)

    def get(self, external_id: str) -> dict[str, Any] | None:
        return self._fetch_one_as_dict(
            "SELECT * FROM transactions WHERE external_id = ?", (external_id,)
        )
