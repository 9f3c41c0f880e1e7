"""Decoders for provider listing payloads.

The provider returns loosely typed JSON; only the fields the pipeline
consumes are decoded here. Missing or malformed values fall back to the
named defaults below instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_TITLE = "Property"
DEFAULT_LOCATION_AREA = "Dubai"
DEFAULT_PURPOSE = "for-sale"


def coerce_int(value: Any, default: int | None = None) -> int | None:
    """Return ``value`` as an int, accepting numeric-looking strings."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(round(value))
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return default
        try:
            return int(float(text))
        except ValueError:
            digits = ""
            for char in text:
                if not char.isdigit():
                    break
                digits += char
            return int(digits) if digits else default
    return default


def coerce_float(value: Any, default: float | None = None) -> float | None:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        try:
            return float(text) if text else default
        except ValueError:
            return default
    return default


def coerce_bool(value: Any) -> bool:
    """Interpret provider flags; anything unrecognised is ``False``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "verified"}
    return False


def coerce_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _media_url(item: Any) -> str | None:
    if isinstance(item, str):
        return coerce_str(item)
    if isinstance(item, dict):
        return coerce_str(item.get("url") or item.get("src") or item.get("image"))
    return None


def _url_list(items: Any) -> list[str]:
    if not isinstance(items, list):
        items = [items] if items else []
    urls: list[str] = []
    for item in items:
        url = _media_url(item)
        if url:
            urls.append(url)
    return urls


@dataclass
class PropertyRecord:
    """One external listing as consumed by the sync pipeline."""

    external_id: str
    title: str = DEFAULT_TITLE
    description: str | None = None
    price: float = 0.0
    area_sqft: float = 0.0
    rooms: str | None = None
    baths: int = 0
    purpose: str = DEFAULT_PURPOSE
    category_slug: str | None = None
    locations: list[dict[str, Any]] = field(default_factory=list)
    latitude: float | None = None
    longitude: float | None = None
    completion_status: str | None = None
    furnishing_status: str | None = None
    permit_number: str | None = None
    amenities: list[str] = field(default_factory=list)
    cover_photo_url: str | None = None
    photo_urls: list[str] = field(default_factory=list)
    floor_plan_urls: list[str] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "PropertyRecord":
        """Decode one search result or detail payload.

        Raises:
            ValueError: If the payload has no usable external id.
        """
        external_id = coerce_str(payload.get("externalID")) or coerce_str(payload.get("id"))
        if not external_id:
            raise ValueError("Listing payload has no externalID or id")

        category = payload.get("category")
        category_slug = None
        if isinstance(category, list) and category:
            first = category[0]
            if isinstance(first, dict):
                category_slug = coerce_str(first.get("slug"))
        elif isinstance(category, str):
            category_slug = coerce_str(category)

        geography = payload.get("geography") or {}
        if not isinstance(geography, dict):
            geography = {}

        cover = payload.get("coverPhoto") or payload.get("cover_photo")
        floor_plans = (
            payload.get("floorPlans")
            or payload.get("floor_plans")
            or payload.get("floorPlan")
            or []
        )

        amenities = payload.get("amenities") or []
        if not isinstance(amenities, list):
            amenities = []

        locations = payload.get("location") or payload.get("locations") or []
        if not isinstance(locations, list):
            locations = []

        return cls(
            external_id=external_id,
            title=coerce_str(payload.get("title")) or DEFAULT_TITLE,
            description=coerce_str(payload.get("description")),
            price=coerce_float(payload.get("price"), 0.0) or 0.0,
            area_sqft=coerce_float(payload.get("area"), 0.0) or 0.0,
            rooms=coerce_str(payload.get("rooms")),
            baths=coerce_int(payload.get("baths"), 0) or 0,
            purpose=coerce_str(payload.get("purpose")) or DEFAULT_PURPOSE,
            category_slug=category_slug,
            locations=[loc for loc in locations if isinstance(loc, dict)],
            latitude=coerce_float(geography.get("lat")),
            longitude=coerce_float(geography.get("lng")),
            completion_status=coerce_str(payload.get("completionStatus")),
            furnishing_status=coerce_str(payload.get("furnishingStatus")),
            permit_number=coerce_str(payload.get("permitNumber")),
            amenities=[str(item) for item in amenities if item],
            cover_photo_url=_media_url(cover),
            photo_urls=_url_list(payload.get("photos")),
            floor_plan_urls=_url_list(floor_plans),
            raw=payload,
        )

    def candidate_image_urls(self) -> list[str]:
        """Cover photo first, then gallery photos, without duplicates."""
        urls: list[str] = []
        for url in [self.cover_photo_url, *self.photo_urls]:
            if url and url not in urls:
                urls.append(url)
        return urls

    @property
    def location_area(self) -> str:
        community = next(
            (loc for loc in self.locations if loc.get("level") in (1, 2) and loc.get("name")),
            None,
        )
        if community is not None:
            return str(community["name"])
        if self.locations and self.locations[0].get("name"):
            return str(self.locations[0]["name"])
        return DEFAULT_LOCATION_AREA

    @property
    def bedrooms(self) -> int:
        if not self.rooms or self.rooms.lower() == "studio":
            return 0
        return coerce_int(self.rooms, 0) or 0


__all__ = [
    "PropertyRecord",
    "coerce_bool",
    "coerce_float",
    "coerce_int",
    "coerce_str",
]
