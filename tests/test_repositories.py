from __future__ import annotations

import sqlite3

from propsync.infrastructure.db import ensure_schema
from propsync.infrastructure.db.schema import CURRENT_SCHEMA_VERSION
from propsync.infrastructure.db.repositories import (
    AgencyRepository,
    SyncRunRepository,
    TransactionRepository,
)


def test_ensure_schema_is_idempotent(tmp_path) -> None:
    conn = sqlite3.connect(tmp_path / "schema.db")
    try:
        ensure_schema(conn)
        ensure_schema(conn)
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
        versions = conn.execute("SELECT version FROM schema_version").fetchall()
    finally:
        conn.close()

    assert {
        "properties",
        "agents",
        "agencies",
        "transactions",
        "sync_runs",
        "rate_limits",
    } <= tables
    assert versions == [(CURRENT_SCHEMA_VERSION,)]


def test_legacy_sync_runs_table_gains_media_columns(tmp_path) -> None:
    conn = sqlite3.connect(tmp_path / "legacy.db")
    try:
        conn.execute(
            "CREATE TABLE sync_runs (id INTEGER PRIMARY KEY AUTOINCREMENT, sync_type TEXT NOT NULL, "
            "target TEXT, status TEXT NOT NULL, started_at TEXT NOT NULL, completed_at TEXT, "
            "properties_found INTEGER DEFAULT 0, properties_synced INTEGER DEFAULT 0, "
            "photos_rehosted INTEGER DEFAULT 0, photos_cdn_referenced INTEGER DEFAULT 0, "
            "agents_discovered INTEGER DEFAULT 0, agencies_discovered INTEGER DEFAULT 0, "
            "api_calls_used INTEGER DEFAULT 0, errors TEXT)"
        )
        ensure_schema(conn)
        columns = {row[1] for row in conn.execute("PRAGMA table_info(sync_runs)")}
        recorded = conn.execute(
            "SELECT name FROM schema_migrations WHERE name = 'add_sync_runs_media_columns_v1'"
        ).fetchone()
    finally:
        conn.close()

    assert {"estimated_storage_saved_mb", "floor_plans_rehosted"} <= columns
    assert recorded is not None


def test_sync_run_lifecycle(conn) -> None:
    repo = SyncRunRepository(conn)
    run_id = repo.create("properties", "locations=36", "2026-03-01T12:00:00.000000Z")

    running = repo.get(run_id)
    assert running["status"] == "running"
    assert running["errors"] == []

    repo.finalize(
        run_id,
        status="completed_with_errors",
        completed_at="2026-03-01T12:05:00.000000Z",
        counters={"properties_found": 3, "properties_synced": 2, "estimated_storage_saved_mb": 0.49},
        errors=["Property 3: boom"],
    )

    finished = repo.get(run_id)
    assert finished["status"] == "completed_with_errors"
    assert finished["properties_synced"] == 2
    assert finished["api_calls_used"] == 0
    assert finished["estimated_storage_saved_mb"] == 0.49
    assert finished["errors"] == ["Property 3: boom"]


def test_list_recent_filters_and_orders(conn) -> None:
    repo = SyncRunRepository(conn)
    first = repo.create("properties", None, "2026-03-01T12:00:00.000000Z")
    second = repo.create("transactions", None, "2026-03-01T12:01:00.000000Z")
    third = repo.create("properties", None, "2026-03-01T12:02:00.000000Z")

    assert [r["id"] for r in repo.list_recent()] == [third, second, first]
    assert [r["id"] for r in repo.list_recent(sync_type="properties")] == [third, first]
    assert [r["id"] for r in repo.list_recent(limit=1)] == [third]


def test_agency_upsert_updates_in_place(conn) -> None:
    repo = AgencyRepository(conn)
    first_id = repo.upsert({"external_id": "ag-1", "name": "Old Name", "is_verified": False})
    second_id = repo.upsert({"external_id": "ag-1", "name": "New Name", "is_verified": True})

    stored = repo.get("ag-1")
    assert first_id == second_id
    assert stored["name"] == "New Name"
    assert stored["is_verified"] == 1
    assert repo.count() == 1


def test_transaction_upsert_keeps_raw_payload(conn) -> None:
    repo = TransactionRepository(conn)
    repo.upsert({"external_id": "t-1", "price_aed": 100.0, "raw_data": {"amount": 100}})
    repo.upsert({"external_id": "t-1", "price_aed": 120.0, "raw_data": {"amount": 120}})

    stored = repo.get("t-1")
    assert repo.count() == 1
    assert stored["price_aed"] == 120.0
    assert stored["raw_data"] == {"amount": 120}
