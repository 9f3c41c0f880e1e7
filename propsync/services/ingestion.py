"""Action dispatch for the ingestion surface.

``IngestionService.handle`` maps one :class:`IngestRequest` onto the provider
client or the sync orchestrator and returns a JSON-ready payload. Errors are
raised, not encoded: callers decide how ``ProviderConfigurationError``,
``SyncValidationError`` and ``ProviderError`` are presented.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from propsync.infrastructure.http.client import ProviderClient, ProviderError
from propsync.infrastructure.observability.logging import get_logger
from propsync.services.areas import list_areas
from propsync.services.dto import IngestRequest
from propsync.services.sync import SyncOrchestrator, SyncValidationError

logger = get_logger(__name__)

ClientFactory = Callable[[], ProviderClient]
OrchestratorFactory = Callable[[ProviderClient], SyncOrchestrator]

_DIAGNOSES: dict[int, tuple[str, str]] = {
    401: (
        "Invalid or expired API key",
        "Update the RapidAPI key: subscribe to the UAE Real Estate 2 API on "
        "rapidapi.com and copy the new key.",
    ),
    403: (
        "API access forbidden - subscription may have expired or quota exceeded",
        "Check the RapidAPI subscription status and quota limits for the "
        "UAE Real Estate 2 API.",
    ),
    429: (
        "Rate limit exceeded",
        "The API rate limit was exceeded. Wait a few minutes or upgrade the RapidAPI plan.",
    ),
}
_SERVER_ERROR = (
    "RapidAPI server error",
    "The RapidAPI server is experiencing issues. Try again in a few minutes.",
)


def diagnose(status: int | None) -> tuple[str, str]:
    """Return ``(issue, recommendation)`` for a failed connection test."""
    if status is None:
        return (
            "Connection failed",
            "Check network connectivity and RapidAPI status.",
        )
    if status in _DIAGNOSES:
        return _DIAGNOSES[status]
    if status in (500, 502, 503):
        return _SERVER_ERROR
    return f"HTTP {status} error", "Check the RapidAPI dashboard for more details."


class IngestionService:
    """Dispatch ingestion actions.

    The provider client is created lazily so actions that never reach the
    provider (``get_areas``) work without a configured API key.
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        orchestrator_factory: OrchestratorFactory,
    ) -> None:
        self._client_factory = client_factory
        self._orchestrator_factory = orchestrator_factory
        self._client: ProviderClient | None = None

    @property
    def client(self) -> ProviderClient:
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def handle(self, request: IngestRequest) -> dict[str, Any]:
        logger.info(f"Ingest action: {request.action}")
        handler = getattr(self, f"_action_{request.action}")
        return handler(request)

    # -------------------- actions --------------------
    def _action_get_areas(self, request: IngestRequest) -> dict[str, Any]:
        return {"success": True, "areas": list_areas()}

    def _action_test(self, request: IngestRequest) -> dict[str, Any]:
        client = self.client
        try:
            results = client.search_locations("dubai")
        except ProviderError as exc:
            issue, recommendation = diagnose(exc.status)
            logger.error(f"Connection test failed: {issue}")
            return {
                "success": False,
                "error": f"API Error: {exc.status}" if exc.status else str(exc),
                "diagnosis": {
                    "httpStatus": exc.status,
                    "issue": issue,
                    "recommendation": recommendation,
                    "details": (exc.body or "")[:500],
                },
                "apiCallsUsed": 1,
            }
        return {
            "success": True,
            "message": "API connection successful",
            "locationsFound": len(results),
            "apiCallsUsed": 1,
        }

    def _require_query(self, request: IngestRequest) -> str:
        query = (request.query or "").strip()
        if not query:
            raise SyncValidationError(f"'query' is required for {request.action}")
        return query

    def _action_search_locations(self, request: IngestRequest) -> dict[str, Any]:
        results = self.client.search_locations(self._require_query(request))
        return {"success": True, "results": results, "apiCallsUsed": 1}

    def _action_search_agents(self, request: IngestRequest) -> dict[str, Any]:
        results = self.client.search_agents(self._require_query(request), page=request.page)
        return {"success": True, "results": results, "apiCallsUsed": 1}

    def _action_search_agencies(self, request: IngestRequest) -> dict[str, Any]:
        results = self.client.search_agencies(self._require_query(request), page=request.page)
        return {"success": True, "results": results, "apiCallsUsed": 1}

    def _action_search_developers(self, request: IngestRequest) -> dict[str, Any]:
        results = self.client.search_developers(
            self._require_query(request), page=request.page
        )
        return {"success": True, "results": results, "apiCallsUsed": 1}

    def _action_get_property_details(self, request: IngestRequest) -> dict[str, Any]:
        external_id = (request.external_id or "").strip()
        if not external_id:
            raise SyncValidationError("'external_id' is required for get_property_details")
        details = self.client.get_property_details(external_id)
        return {"success": True, "property": details, "apiCallsUsed": 1}

    def _action_sync_properties(self, request: IngestRequest) -> dict[str, Any]:
        filters = request.to_filters()
        SyncOrchestrator.validate(filters)
        orchestrator = self._orchestrator_factory(self.client)
        result = orchestrator.sync_properties(filters, dry_run=request.dry_run)
        return result.to_response()

    def _action_sync_transactions(self, request: IngestRequest) -> dict[str, Any]:
        filters = request.to_filters()
        SyncOrchestrator.validate(filters)
        orchestrator = self._orchestrator_factory(self.client)
        return orchestrator.sync_transactions(filters).to_response()


__all__ = ["IngestionService", "diagnose"]
