"""HTTP client for the UAE real-estate listing provider (RapidAPI).

This module is transport only: it builds requests for each provider
operation, sends exactly one request per call, and turns every non-2xx
response or transport failure into a :class:`ProviderError` carrying the
upstream status and body. It holds no business logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import requests
from requests import Response, Session

from propsync import __version__
from propsync.infrastructure.observability.logging import get_logger
from propsync.infrastructure.observability.metrics import (
    PROVIDER_REQUEST_DURATION,
    Timer,
    record_provider_call,
)

logger = get_logger(__name__)

DEFAULT_API_HOST = "uae-real-estate2.p.rapidapi.com"
DEFAULT_TIMEOUT_SECONDS = 30.0


class ProviderConfigurationError(Exception):
    """Raised when the provider credential is missing."""


class ProviderError(Exception):
    """Raised for a non-2xx provider response or a transport failure."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        body: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body
        self.operation = operation


@dataclass
class PropertyFilters:
    """Search filters passed through to ``properties_search``."""

    locations_ids: list[int] = field(default_factory=list)
    purpose: str = "for-sale"
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
    page: int = 0
    limit: int = 25

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "purpose": self.purpose,
            "locations_ids": list(self.locations_ids),
            "index": self.index,
        }
        optional = {
            "category": self.category,
            "rooms": self.rooms,
            "baths": self.baths,
            "price_min": self.price_min,
            "price_max": self.price_max,
            "area_min": self.area_min,
            "area_max": self.area_max,
            "is_furnished": self.is_furnished,
            "is_completed": self.is_completed,
            "sale_type": self.sale_type,
            "has_video": self.has_video,
            "has_360_tour": self.has_360_tour,
            "has_floorplan": self.has_floorplan,
        }
        body.update({k: v for k, v in optional.items() if v is not None})
        return body

    def describe(self) -> str:
        locations = ",".join(str(loc) for loc in self.locations_ids) or "-"
        return f"locations={locations} purpose={self.purpose} page={self.page} limit={self.limit}"


@dataclass
class SearchPage:
    """One page of provider search results."""

    results: list[dict[str, Any]]
    total: int
    page: int = 0


def _extract_results(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if not isinstance(payload, dict):
        return []
    for key in ("results", "hits", "data"):
        value = payload.get(key)
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]
    return []


def _extract_total(payload: Any, results: list[dict[str, Any]]) -> int:
    if isinstance(payload, dict):
        for key in ("nbHits", "count", "total", "totalAvailable"):
            value = payload.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return int(value)
    return len(results)


class ProviderClient:
    """One method per provider operation, one outbound request per call."""

    def __init__(
        self,
        api_key: str | None,
        *,
        host: str = DEFAULT_API_HOST,
        base_url: str | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: Session | None = None,
    ) -> None:
        trimmed = (api_key or "").strip()
        if not trimmed:
            raise ProviderConfigurationError(
                "RAPIDAPI_KEY not configured; add the RapidAPI key to the environment"
            )
        if api_key != trimmed:
            logger.info(
                "RAPIDAPI_KEY contained whitespace; trimmed from %d to %d characters",
                len(api_key or ""),
                len(trimmed),
            )
        self.api_key = trimmed
        self.host = host
        self.base_url = (base_url or f"https://{host}").rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.api_calls = 0

    # -------------------- transport --------------------
    def _headers(self) -> dict[str, str]:
        return {
            "X-RapidAPI-Key": self.api_key,
            "X-RapidAPI-Host": self.host,
            "User-Agent": f"propsync/{__version__}",
        }

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        self.api_calls += 1
        try:
            with Timer(
                PROVIDER_REQUEST_DURATION,
                {"operation": operation},
                help_text="Provider request latency in seconds",
            ):
                response = self.session.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    headers=self._headers(),
                    timeout=self.timeout_seconds,
                )
        except requests.RequestException as exc:
            record_provider_call(operation, "transport_error")
            logger.error(f"Provider {operation} request failed: {exc}")
            raise ProviderError(
                f"{operation} request failed: {exc}", operation=operation
            ) from exc

        self._raise_for_status(operation, response)
        record_provider_call(operation, "ok")
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(
                f"{operation} returned invalid JSON",
                status=response.status_code,
                body=response.text[:500],
                operation=operation,
            ) from exc

    def _raise_for_status(self, operation: str, response: Response) -> None:
        if 200 <= response.status_code < 300:
            return
        record_provider_call(operation, f"http_{response.status_code}")
        body = response.text
        logger.error(
            f"Provider {operation} failed with status {response.status_code}: {body[:200]}"
        )
        raise ProviderError(
            f"{operation} failed with status {response.status_code}",
            status=response.status_code,
            body=body,
            operation=operation,
        )

    # -------------------- operations --------------------
    def search_locations(self, query: str) -> list[dict[str, Any]]:
        payload = self._request(
            "search_locations", "GET", "/locations_search", params={"query": query}
        )
        return _extract_results(payload)

    def search_properties(self, filters: PropertyFilters) -> SearchPage:
        payload = self._request(
            "search_properties",
            "POST",
            "/properties_search",
            params={"page": filters.page, "hitsPerPage": filters.limit},
            json_body=filters.to_body(),
        )
        results = _extract_results(payload)
        return SearchPage(
            results=results, total=_extract_total(payload, results), page=filters.page
        )

    def count_properties(self, filters: PropertyFilters) -> int:
        """Return ``totalAvailable`` for ``filters`` using a one-hit page."""
        payload = self._request(
            "count_properties",
            "POST",
            "/properties_search",
            params={"page": 0, "hitsPerPage": 1},
            json_body=filters.to_body(),
        )
        return _extract_total(payload, _extract_results(payload))

    def get_property_details(self, external_id: str) -> dict[str, Any]:
        payload = self._request(
            "get_property_details", "GET", f"/property/{external_id}"
        )
        if not isinstance(payload, dict):
            raise ProviderError(
                "get_property_details returned an unexpected payload",
                operation="get_property_details",
            )
        return payload

    def search_agents(self, query: str, page: int = 0) -> list[dict[str, Any]]:
        payload = self._request(
            "search_agents", "GET", "/agents_search", params={"query": query, "page": page}
        )
        return _extract_results(payload)

    def search_agencies(self, query: str, page: int = 0) -> list[dict[str, Any]]:
        payload = self._request(
            "search_agencies",
            "GET",
            "/agencies_search",
            params={"query": query, "page": page},
        )
        return _extract_results(payload)

    def search_developers(self, query: str, page: int = 0) -> list[dict[str, Any]]:
        payload = self._request(
            "search_developers",
            "GET",
            "/developers_search",
            params={"query": query, "page": page},
        )
        return _extract_results(payload)

    def get_transactions(self, filters: PropertyFilters) -> SearchPage:
        payload = self._request(
            "get_transactions",
            "POST",
            "/transactions",
            params={"page": filters.page, "hitsPerPage": filters.limit},
            json_body={
                "locations_ids": list(filters.locations_ids),
                "purpose": filters.purpose,
                **({"category": filters.category} if filters.category else {}),
            },
        )
        results = _extract_results(payload)
        return SearchPage(
            results=results, total=_extract_total(payload, results), page=filters.page
        )


__all__ = [
    "DEFAULT_API_HOST",
    "PropertyFilters",
    "ProviderClient",
    "ProviderConfigurationError",
    "ProviderError",
    "SearchPage",
]
