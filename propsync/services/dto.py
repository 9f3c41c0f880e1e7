"""
Centralized DTOs and input/output models for propsync services.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from propsync.infrastructure.http.client import PropertyFilters

IngestAction = Literal[
    "test",
    "get_areas",
    "search_locations",
    "sync_properties",
    "sync_transactions",
    "search_developers",
    "search_agents",
    "search_agencies",
    "get_property_details",
]


# --- Search / ingest DTOs ---
class SearchFilters(BaseModel):
    """Filter passthrough shared by property and transaction syncs."""

    model_config = ConfigDict(extra="ignore")

    locations_ids: list[int] = Field(default_factory=list)
    purpose: Literal["for-sale", "for-rent"] = "for-sale"
    category: str | None = None
    rooms: list[int] | None = None
    baths: list[int] | None = None
    price_min: float | None = None
    price_max: float | None = None
    area_min: float | None = None
    area_max: float | None = None
    is_furnished: bool | None = None
    is_completed: bool | None = None
    sale_type: str | None = None
    has_video: bool | None = None
    has_360_tour: bool | None = None
    has_floorplan: bool | None = None
    index: str = "latest"
    page: int = Field(default=0, ge=0)
    limit: int = Field(default=25, ge=1, le=100)

    def to_filters(self) -> PropertyFilters:
        return PropertyFilters(**self.model_dump(include=set(SearchFilters.model_fields)))


class IngestRequest(SearchFilters):
    """Body of one ingestion action."""

    action: IngestAction
    query: str | None = None
    external_id: str | None = None
    dry_run: bool = False


# --- Response DTOs ---
class SyncRunDTO(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    sync_type: str
    target: str | None = None
    status: str
    started_at: str
    completed_at: str | None = None
    properties_found: int = 0
    properties_synced: int = 0
    photos_rehosted: int = 0
    photos_cdn_referenced: int = 0
    floor_plans_rehosted: int = 0
    agents_discovered: int = 0
    agencies_discovered: int = 0
    api_calls_used: int = 0
    estimated_storage_saved_mb: float = 0.0
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "SyncRunDTO":
        data = {key: value for key, value in row.items() if value is not None}
        errors = data.get("errors")
        data["errors"] = [str(e) for e in errors] if isinstance(errors, list) else []
        return cls(**data)


def error_payload(message: str, **details: Any) -> dict[str, Any]:
    """Standard failure body returned by the ingestion surface."""
    payload: dict[str, Any] = {"success": False, "error": message}
    payload.update({k: v for k, v in details.items() if v is not None})
    return payload


__all__ = [
    "IngestAction",
    "IngestRequest",
    "SearchFilters",
    "SyncRunDTO",
    "error_payload",
]
