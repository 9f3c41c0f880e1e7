from __future__ import annotations

import sqlite3

import pytest
from conftest import FakeMediaStore, make_listing

from propsync.infrastructure.db.repositories import (
    AgentRepository,
    PropertyRepository,
    SyncRunRepository,
    TransactionRepository,
)
from propsync.infrastructure.http.client import PropertyFilters, ProviderError
from propsync.infrastructure.http.records import PropertyRecord
from propsync.infrastructure.observability.metrics import SYNC_RUNS, get_registry
from propsync.services.sync import (
    STATUS_COMPLETED,
    STATUS_COMPLETED_WITH_ERRORS,
    STATUS_FAILED,
    SyncOrchestrator,
    SyncPreview,
    SyncValidationError,
    generate_slug,
    no_delay,
    transaction_fields,
    transform_property,
)

MARINA = PropertyFilters(locations_ids=[36], limit=25)


def _orchestrator(provider_client, conn, clock, *, store=None, sleeps=None, delay=no_delay):
    return SyncOrchestrator(
        provider_client,
        conn,
        store or FakeMediaStore(),
        clock=clock,
        sleep=(sleeps.append if sleeps is not None else (lambda seconds: None)),
        delay_strategy=delay,
    )


def _serve(fake_session, listings, total=None) -> None:
    fake_session.add(
        "/properties_search",
        {"hits": listings, "nbHits": total if total is not None else len(listings)},
    )


def test_sync_persists_listing_run_and_entities(provider_client, fake_session, conn, clock) -> None:
    listing = make_listing(
        "5001",
        photos=[{"url": f"https://cdn.example.com/5001/p{i}.jpg"} for i in range(7)],
        floorPlans=[{"url": "https://cdn.example.com/5001/plan.png"}],
        agent={"externalID": "a-1", "name": "Sara Khan"},
        agency={"externalID": "ag-1", "name": "Marina Homes"},
    )
    _serve(fake_session, [listing], total=340)

    result = _orchestrator(provider_client, conn, clock).sync_properties(MARINA)

    assert result.status == STATUS_COMPLETED
    assert result.total_available == 340
    stats = result.stats
    assert (stats.properties_found, stats.properties_synced) == (1, 1)
    # cover + 7 photos: 4 owned copies, 4 CDN references
    assert (stats.photos_rehosted, stats.photos_cdn_referenced) == (4, 4)
    assert stats.floor_plans_rehosted == 1
    assert (stats.agents_discovered, stats.agencies_discovered) == (1, 1)
    assert stats.api_calls_used == 1
    assert stats.estimated_storage_saved_mb == 0.98

    row = PropertyRepository(conn).get_by_external_id("bayut", "5001")
    assert row["location_area"] == "Dubai Marina"
    assert row["images"][0] == "/media/bayut/5001/photos/cover.jpg"
    assert len(row["gallery_urls"]) == 4
    assert row["agent_data"]["external_id"] == "a-1"
    assert row["external_url"] == "https://www.bayut.com/property/details-5001.html"

    run = SyncRunRepository(conn).get(result.run_id)
    assert run["status"] == STATUS_COMPLETED
    assert run["sync_type"] == "properties"
    assert run["properties_synced"] == 1
    assert run["photos_cdn_referenced"] == 4
    assert run["errors"] == []
    assert run["completed_at"] == "2026-03-01T12:00:00.000000Z"

    request = fake_session.calls[0]
    assert request["method"] == "POST"
    assert request["params"] == {"page": 0, "hitsPerPage": 25}
    assert request["json"]["locations_ids"] == [36]


def test_resync_after_window_keeps_primary_key(provider_client, fake_session, conn, clock) -> None:
    _serve(fake_session, [make_listing("5001")])
    orchestrator = _orchestrator(provider_client, conn, clock)
    repo = PropertyRepository(conn)

    orchestrator.sync_properties(MARINA)
    first = repo.get_by_external_id("bayut", "5001")
    conn.execute("UPDATE properties SET is_published = 1 WHERE id = ?", (first["id"],))
    conn.commit()

    clock.advance(hours=25)
    result = orchestrator.sync_properties(MARINA)
    second = repo.get_by_external_id("bayut", "5001")

    assert result.stats.properties_synced == 1
    assert repo.count() == 1
    assert second["id"] == first["id"]
    assert second["created_at"] == first["created_at"]
    assert second["is_published"] == 1
    assert second["last_synced_at"] == "2026-03-02T13:00:00.000000Z"


def test_fresh_listing_is_skipped(provider_client, fake_session, conn, clock) -> None:
    _serve(fake_session, [make_listing("5001")])
    store = FakeMediaStore()
    orchestrator = _orchestrator(provider_client, conn, clock, store=store)

    orchestrator.sync_properties(MARINA)
    clock.advance(hours=2)
    result = orchestrator.sync_properties(MARINA)

    assert result.stats.properties_found == 1
    assert result.stats.properties_synced == 0
    assert result.status == STATUS_COMPLETED
    assert len(store.calls) == 1


def test_failing_record_media_does_not_stop_run(provider_client, fake_session, conn, clock) -> None:
    listings = [make_listing(str(i)) for i in range(1, 6)]
    listings[2]["photos"] = [{"url": f"https://cdn.example.com/3/p{n}.jpg"} for n in range(5)]
    listings[2]["floorPlans"] = [{"url": "https://cdn.example.com/3/plan.png"}]
    _serve(fake_session, listings)
    store = FakeMediaStore(fail_for={"3"})

    result = _orchestrator(provider_client, conn, clock, store=store).sync_properties(MARINA)

    assert result.stats.properties_synced == 5
    assert result.stats.photos_rehosted == 4
    assert result.stats.photos_cdn_referenced == 2
    assert result.stats.floor_plans_rehosted == 0
    assert result.errors == [
        "Image rehost failed for 3: 5 of 5 copies failed "
        "(first: storage unavailable for https://cdn.example.com/3/cover.jpg)"
    ]
    assert result.status == STATUS_COMPLETED_WITH_ERRORS
    row = PropertyRepository(conn).get_by_external_id("bayut", "3")
    assert row["images"] == []


class FailingPropertyRepository(PropertyRepository):
    def upsert(self, row):
        if row["external_id"] == "2":
            raise sqlite3.OperationalError("disk I/O error")
        return super().upsert(row)


def test_counters_skip_listings_that_were_not_stored(provider_client, fake_session, conn, clock) -> None:
    _serve(
        fake_session,
        [
            make_listing(
                str(i),
                agent={"externalID": f"a-{i}", "name": f"Agent {i}"},
                agency={"externalID": f"ag-{i}", "name": f"Agency {i}"},
            )
            for i in (1, 2)
        ],
    )
    orchestrator = _orchestrator(provider_client, conn, clock)
    orchestrator.properties = FailingPropertyRepository(conn)

    result = orchestrator.sync_properties(MARINA)

    assert result.stats.properties_synced == 1
    assert result.stats.photos_rehosted == 1
    assert (result.stats.agents_discovered, result.stats.agencies_discovered) == (1, 1)
    assert result.errors == ["Property 2: disk I/O error"]


def test_invalid_payload_is_reported(provider_client, fake_session, conn, clock) -> None:
    _serve(fake_session, [{"title": "no identifiers"}, make_listing("7")])

    result = _orchestrator(provider_client, conn, clock).sync_properties(MARINA)

    assert result.stats.properties_found == 2
    assert result.stats.properties_synced == 1
    assert result.errors == ["Invalid listing payload: Listing payload has no externalID or id"]


def test_batch_cooldown_every_twenty_records(provider_client, fake_session, conn, clock) -> None:
    _serve(fake_session, [make_listing(str(i)) for i in range(1, 42)])
    sleeps: list[float] = []

    result = _orchestrator(
        provider_client, conn, clock, sleeps=sleeps, delay=lambda: 0.0
    ).sync_properties(PropertyFilters(locations_ids=[36], limit=50))

    assert result.stats.properties_synced == 41
    assert sleeps == [5.0, 5.0]


def test_organic_delay_only_between_processed_records(
    provider_client, fake_session, conn, clock
) -> None:
    PropertyRepository(conn).upsert(
        transform_property(
            PropertyRecord.from_payload(make_listing("2")),
            synced_at="2026-03-01T11:00:00.000000Z",
        )
    )
    _serve(fake_session, [make_listing("1"), make_listing("2"), make_listing("3")])
    sleeps: list[float] = []

    result = _orchestrator(
        provider_client, conn, clock, sleeps=sleeps, delay=lambda: 1.5
    ).sync_properties(MARINA)

    assert result.stats.properties_synced == 2
    assert sleeps == [1.5]


def test_failed_search_marks_run_failed(provider_client, fake_session, conn, clock) -> None:
    fake_session.add("/properties_search", {"message": "Internal error"}, status=500)
    orchestrator = _orchestrator(provider_client, conn, clock)

    with pytest.raises(ProviderError) as excinfo:
        orchestrator.sync_properties(MARINA)

    assert excinfo.value.status == 500
    run = SyncRunRepository(conn).list_recent(limit=1)[0]
    assert run["status"] == STATUS_FAILED
    assert run["api_calls_used"] == 1
    assert run["errors"] == ["Sync failed: search_properties failed with status 500"]
    assert run["completed_at"] is not None
    runs_counter = get_registry().counter(SYNC_RUNS)
    assert runs_counter.get({"sync_type": "properties", "status": STATUS_FAILED}) == 1


def test_dry_run_spends_one_call_and_records_nothing(
    provider_client, fake_session, conn, clock
) -> None:
    _serve(fake_session, [make_listing("1")], total=120)

    preview = _orchestrator(provider_client, conn, clock).sync_properties(MARINA, dry_run=True)

    assert isinstance(preview, SyncPreview)
    assert preview.to_response() == {
        "success": True,
        "dryRun": True,
        "totalAvailable": 120,
        "wouldSync": 25,
        "estimatedApiCalls": 1,
        "apiCallsUsed": 1,
    }
    assert len(fake_session.calls) == 1
    assert fake_session.calls[0]["params"] == {"page": 0, "hitsPerPage": 1}
    assert SyncRunRepository(conn).list_recent() == []
    assert PropertyRepository(conn).count() == 0


def test_missing_locations_rejected_before_any_call(
    provider_client, fake_session, conn, clock
) -> None:
    orchestrator = _orchestrator(provider_client, conn, clock)

    with pytest.raises(SyncValidationError):
        orchestrator.sync_properties(PropertyFilters())
    with pytest.raises(SyncValidationError):
        orchestrator.sync_properties(PropertyFilters(), dry_run=True)

    assert fake_session.calls == []
    assert SyncRunRepository(conn).list_recent() == []


def test_run_response_payload(provider_client, fake_session, conn, clock) -> None:
    _serve(fake_session, [make_listing("1")], total=9)

    payload = _orchestrator(provider_client, conn, clock).sync_properties(MARINA).to_response()

    assert payload["success"] is True
    assert payload["propertiesFound"] == 1
    assert payload["storage"]["photosRehosted"] == 1
    assert payload["intelligence"] == {"agentsDiscovered": 0, "agenciesDiscovered": 0}
    assert payload["apiCallsUsed"] == 1
    assert payload["totalAvailable"] == 9
    assert "errors" not in payload


def test_sync_transactions_upserts_by_external_id(
    provider_client, fake_session, conn, clock
) -> None:
    fake_session.add(
        "/transactions",
        {
            "results": [
                {
                    "id": "t-1",
                    "amount": 2100000,
                    "date": "2026-02-11",
                    "location": {"name": "Dubai Marina"},
                    "property": {"type": "apartment", "beds": 2, "builtup_area": 1300},
                },
                {"amount": 900000, "location": "JLT"},
            ],
            "total": 2,
        },
    )
    orchestrator = _orchestrator(provider_client, conn, clock)

    result = orchestrator.sync_transactions(MARINA)
    orchestrator.sync_transactions(MARINA)

    assert result.sync_type == "transactions"
    assert result.stats.properties_synced == 2
    payload = result.to_response()
    assert payload["transactionsFound"] == 2
    assert payload["transactionsSynced"] == 2
    repo = TransactionRepository(conn)
    assert repo.count() == 2
    stored = repo.get("t-1")
    assert stored["location_name"] == "Dubai Marina"
    assert stored["bedrooms"] == 2
    assert fake_session.calls[0]["json"]["locations_ids"] == [36]


def test_transaction_without_id_gets_stable_id() -> None:
    raw = {"amount": 900000, "location": "JLT"}

    first = transaction_fields(raw, "2026-03-01T12:00:00.000000Z")
    second = transaction_fields(dict(raw), "2026-03-02T12:00:00.000000Z")

    assert first["external_id"].startswith("tx-")
    assert first["external_id"] == second["external_id"]
    assert first["location_name"] == "JLT"


def test_transform_property_maps_listing_fields() -> None:
    record = PropertyRecord.from_payload(
        make_listing(
            "42",
            rooms="studio",
            purpose="for-rent",
            completionStatus="off_plan",
            category=[{"slug": "villas"}],
        )
    )

    row = transform_property(record, synced_at="2026-03-01T12:00:00.000000Z")

    assert row["bedrooms"] == 0
    assert row["listing_type"] == "rent"
    assert row["is_off_plan"] is True
    assert row["property_type"] == "villa"
    assert row["size_sqft"] == 1205
    assert row["is_published"] is False
    assert row["slug"] == "marina-view-apartment-42-42"


def test_generate_slug() -> None:
    assert generate_slug("Luxury 2BR | Sea View!", "77") == "luxury-2br-sea-view-77"
    assert generate_slug("***", "77") == "77"
    assert len(generate_slug("x" * 80, "1")) == 52


def test_agents_deduplicated_within_run(provider_client, fake_session, conn, clock) -> None:
    agent = {"externalID": "a-1", "name": "Sara Khan"}
    _serve(fake_session, [make_listing("1", agent=agent), make_listing("2", agent=agent)])

    result = _orchestrator(provider_client, conn, clock).sync_properties(MARINA)

    assert result.stats.agents_discovered == 1
    assert AgentRepository(conn).count() == 1
