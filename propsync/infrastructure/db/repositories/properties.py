from __future__ import annotations

import sqlite3
from typing import Any

from ..connection import iso_utcnow
from ..schema import ensure_schema
from .base import BaseRepository

# Columns written by an upsert; ``id`` and ``created_at`` are never overwritten.
PROPERTY_COLUMNS: tuple[str, ...] = (
    "external_source",
    "external_id",
    "external_url",
    "title",
    "description",
    "price_aed",
    "size_sqft",
    "bedrooms",
    "bathrooms",
    "property_type",
    "listing_type",
    "location_area",
    "latitude",
    "longitude",
    "is_off_plan",
    "furnishing",
    "rera_permit_number",
    "amenities",
    "images",
    "gallery_urls",
    "floor_plan_urls",
    "agent_data",
    "agency_data",
    "building_info",
    "slug",
    "is_published",
    "last_synced_at",
)

_JSON_COLUMNS = (
    "amenities",
    "images",
    "gallery_urls",
    "floor_plan_urls",
    "agent_data",
    "agency_data",
    "building_info",
)

# Editorial state owned by the catalogue, kept as-is when a listing is refreshed.
_PRESERVED_ON_UPDATE = {"external_source", "external_id", "is_published"}


class PropertyRepository(BaseRepository):
    json_columns = _JSON_COLUMNS

    def __init__(self, conn: sqlite3.Connection) -> None:
        super().__init__(conn)
        ensure_schema(self.conn)

    def get_sync_state(
        self, external_source: str, external_id: str
    ) -> dict[str, Any] | None:
        """Return ``id`` and ``last_synced_at`` for one external listing."""
        return self._fetch_one_as_dict(
            "SELECT id, last_synced_at FROM properties "
            "WHERE external_source = ? AND external_id = ?",
            (external_source, external_id),
        )

    def get_by_external_id(
        self, external_source: str, external_id: str
    ) -> dict[str, Any] | None:
        return self._fetch_one_as_dict(
            "SELECT * FROM properties WHERE external_source = ? AND external_id = ?",
            (external_source, external_id),
        )

    def upsert(self, row: dict[str, Any]) -> int:
        """Insert or refresh a listing keyed on ``(external_source, external_id)``.

        The existing row keeps its primary key and ``created_at``. Returns the
        row id.
        """
        values: list[Any] = []
        for column in PROPERTY_COLUMNS:
            value = row.get(column)
            if column in _JSON_COLUMNS:
                value = self._dump_json(value)
            elif isinstance(value, bool):
                value = 1 if value else 0
            values.append(value)

        now = iso_utcnow()
        columns_sql = ", ".join(PROPERTY_COLUMNS + ("created_at", "updated_at"))
        placeholders = ", ".join("?" for _ in range(len(PROPERTY_COLUMNS) + 2))
        updates = ", ".join(
            f"{column} = excluded.{column}"
            for column in PROPERTY_COLUMNS
            if column not in _PRESERVED_ON_UPDATE
        )
        self._execute(
            f"""
            INSERT INTO properties ({columns_sql})
            VALUES ({placeholders})
            ON CONFLICT(external_source, external_id) DO UPDATE SET
                {updates},
                updated_at = excluded.updated_at
            """,
            tuple(values) + (now, now),
        )
        self.conn.commit()
        property_id = self._fetch_scalar(
            "SELECT id FROM properties WHERE external_source = ? AND external_id = ?",
            (row["external_source"], row["external_id"]),
        )
        if not property_id:
            raise RuntimeError("Failed to retrieve property id after upsert")
        return int(property_id)

    def count(self, external_source: str | None = None) -> int:
        if external_source is None:
            return int(self._fetch_scalar("SELECT COUNT(*) FROM properties") or 0)
        return int(
            self._fetch_scalar(
                "SELECT COUNT(*) FROM properties WHERE external_source = ?",
                (external_source,),
            )
            or 0
        )
