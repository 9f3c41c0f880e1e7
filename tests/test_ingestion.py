from __future__ import annotations

import pytest
from conftest import FakeMediaStore, make_listing
from pydantic import ValidationError

from propsync.infrastructure.http.client import (
    ProviderClient,
    ProviderConfigurationError,
    ProviderError,
)
from propsync.services.dto import IngestRequest
from propsync.services.ingestion import IngestionService, diagnose
from propsync.services.sync import SyncOrchestrator, SyncValidationError, no_delay


@pytest.fixture
def service(provider_client, conn, clock) -> IngestionService:
    return IngestionService(
        client_factory=lambda: provider_client,
        orchestrator_factory=lambda client: SyncOrchestrator(
            client,
            conn,
            FakeMediaStore(),
            clock=clock,
            sleep=lambda seconds: None,
            delay_strategy=no_delay,
        ),
    )


def _missing_key() -> ProviderClient:
    return ProviderClient("")


@pytest.mark.parametrize(
    ("status", "issue"),
    [
        (401, "Invalid or expired API key"),
        (403, "API access forbidden - subscription may have expired or quota exceeded"),
        (429, "Rate limit exceeded"),
        (503, "RapidAPI server error"),
        (418, "HTTP 418 error"),
        (None, "Connection failed"),
    ],
)
def test_diagnose(status, issue) -> None:
    assert diagnose(status)[0] == issue


def test_get_areas_needs_no_provider_key() -> None:
    service = IngestionService(
        client_factory=_missing_key, orchestrator_factory=lambda client: None  # type: ignore[arg-type,return-value]
    )

    body = service.handle(IngestRequest(action="get_areas"))

    assert body["success"] is True
    assert len(body["areas"]) == 25


def test_missing_key_raises_configuration_error() -> None:
    service = IngestionService(
        client_factory=_missing_key, orchestrator_factory=lambda client: None  # type: ignore[arg-type,return-value]
    )

    with pytest.raises(ProviderConfigurationError):
        service.handle(IngestRequest(action="test"))


def test_connection_test_success(service, fake_session) -> None:
    fake_session.add("/locations_search", {"hits": [{"id": 1}, {"id": 2}]})

    body = service.handle(IngestRequest(action="test"))

    assert body == {
        "success": True,
        "message": "API connection successful",
        "locationsFound": 2,
        "apiCallsUsed": 1,
    }
    assert fake_session.calls[0]["params"] == {"query": "dubai"}


def test_connection_test_failure_is_diagnosed(service, fake_session) -> None:
    fake_session.add("/locations_search", {"message": "Invalid API key"}, status=401)

    body = service.handle(IngestRequest(action="test"))

    assert body["success"] is False
    assert body["error"] == "API Error: 401"
    assert body["diagnosis"]["httpStatus"] == 401
    assert body["diagnosis"]["issue"] == "Invalid or expired API key"
    assert "Invalid API key" in body["diagnosis"]["details"]


def test_search_actions_require_query(service, fake_session) -> None:
    with pytest.raises(SyncValidationError):
        service.handle(IngestRequest(action="search_agents", query="  "))
    assert fake_session.calls == []


def test_search_agents_passes_query_and_page(service, fake_session) -> None:
    fake_session.add("/agents_search", {"hits": [{"id": "a-1"}]})

    body = service.handle(IngestRequest(action="search_agents", query="sara", page=3))

    assert body == {"success": True, "results": [{"id": "a-1"}], "apiCallsUsed": 1}
    assert fake_session.calls[0]["params"] == {"query": "sara", "page": 3}


def test_property_details_requires_external_id(service) -> None:
    with pytest.raises(SyncValidationError):
        service.handle(IngestRequest(action="get_property_details"))


def test_property_details(service, fake_session) -> None:
    fake_session.add("/property/5001", make_listing("5001"))

    body = service.handle(IngestRequest(action="get_property_details", external_id="5001"))

    assert body["property"]["externalID"] == "5001"


def test_sync_properties_action(service, fake_session) -> None:
    fake_session.add("/properties_search", {"hits": [make_listing("1")], "nbHits": 4})

    body = service.handle(
        IngestRequest(action="sync_properties", locations_ids=[36], category="apartments")
    )

    assert body["success"] is True
    assert body["propertiesSynced"] == 1
    assert body["totalAvailable"] == 4
    assert fake_session.calls[0]["json"]["category"] == "apartments"


def test_sync_properties_dry_run_action(service, fake_session) -> None:
    fake_session.add("/properties_search", {"hits": [], "nbHits": 3})

    body = service.handle(
        IngestRequest(action="sync_properties", locations_ids=[36], dry_run=True)
    )

    assert body["dryRun"] is True
    assert body["wouldSync"] == 3


def test_sync_without_locations_is_rejected(service, fake_session) -> None:
    with pytest.raises(SyncValidationError):
        service.handle(IngestRequest(action="sync_transactions"))
    assert fake_session.calls == []


def test_provider_errors_propagate(service, fake_session) -> None:
    fake_session.add("/locations_search", {"message": "upstream down"}, status=502)

    with pytest.raises(ProviderError) as excinfo:
        service.handle(IngestRequest(action="search_locations", query="marina"))

    assert excinfo.value.status == 502


def test_unknown_action_is_invalid() -> None:
    with pytest.raises(ValidationError):
        IngestRequest(action="delete_everything")  # type: ignore[arg-type]


def test_request_filters_ignore_action_fields() -> None:
    request = IngestRequest(
        action="sync_properties", locations_ids=[36], query="x", limit=10, rooms=[1, 2]
    )

    filters = request.to_filters()

    assert filters.locations_ids == [36]
    assert filters.limit == 10
    assert filters.rooms == [1, 2]
