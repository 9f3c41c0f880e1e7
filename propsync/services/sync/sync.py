"""Synchronization of provider listings and transactions into the local store.

One :class:`SyncOrchestrator` call is one run: it creates a ``sync_runs``
row, makes a single paged search, then walks the returned records in order.
Each record is freshness-gated, its agent/agency are upserted, its images
are split between owned storage and CDN references, and the listing is
upserted. Failures inside a record are collected on the run and the walk
continues; a failure outside any record fails the run.
"""

from __future__ import annotations

import hashlib
import json
import re
import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from propsync.infrastructure.db.connection import format_timestamp, utcnow
from propsync.infrastructure.db.repositories import (
    AgencyRepository,
    AgentRepository,
    PropertyRepository,
    SyncRunRepository,
    TransactionRepository,
)
from propsync.infrastructure.db.repositories.sync_runs import COUNTER_COLUMNS
from propsync.infrastructure.http.client import PropertyFilters, ProviderClient
from propsync.infrastructure.http.records import (
    PropertyRecord,
    coerce_float,
    coerce_int,
    coerce_str,
)
from propsync.infrastructure.observability.logging import (
    get_logger,
    log_context,
    log_exception,
)
from propsync.infrastructure.observability.metrics import record_sync_run

from .entities import EntityExtractor, EntityOutcome
from .freshness import DEFAULT_FRESHNESS_HOURS, FreshnessGate
from .media import (
    REHOST_LIMIT,
    HybridMediaStrategist,
    MediaDistribution,
    MediaRehoster,
    estimated_storage_saved_mb,
)
from .pacing import (
    BATCH_COOLDOWN_SECONDS,
    BATCH_SIZE,
    DelayStrategy,
    Sleeper,
    organic_delay,
)

logger = get_logger(__name__)

EXTERNAL_SOURCE = "bayut"
LISTING_URL_TEMPLATE = "https://www.bayut.com/property/details-{external_id}.html"

PROPERTY_TYPES = {
    "apartment": "apartment",
    "apartments": "apartment",
    "villa": "villa",
    "villas": "villa",
    "townhouse": "townhouse",
    "townhouses": "townhouse",
    "penthouse": "penthouse",
    "penthouses": "penthouse",
    "duplex": "duplex",
    "studio": "studio",
    "land": "land",
    "office": "commercial",
    "offices": "commercial",
    "shop": "commercial",
    "shops": "commercial",
    "warehouse": "commercial",
    "warehouses": "commercial",
}
DEFAULT_PROPERTY_TYPE = "apartment"

STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_COMPLETED_WITH_ERRORS = "completed_with_errors"
STATUS_FAILED = "failed"


class SyncValidationError(ValueError):
    """Raised for a sync request that must not reach the provider."""


@dataclass
class RunStats:
    properties_found: int = 0
    properties_synced: int = 0
    photos_rehosted: int = 0
    photos_cdn_referenced: int = 0
    floor_plans_rehosted: int = 0
    agents_discovered: int = 0
    agencies_discovered: int = 0
    api_calls_used: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def estimated_storage_saved_mb(self) -> float:
        return round(estimated_storage_saved_mb(self.photos_cdn_referenced), 2)

    def add_media(self, media: MediaDistribution) -> None:
        self.photos_rehosted += media.rehosted_count
        self.photos_cdn_referenced += media.cdn_count
        self.floor_plans_rehosted += media.floor_plans_count

    def add_entities(self, outcome: EntityOutcome) -> None:
        self.agents_discovered += outcome.new_agents
        self.agencies_discovered += outcome.new_agencies

    def counters(self) -> dict[str, Any]:
        values = {
            "properties_found": self.properties_found,
            "properties_synced": self.properties_synced,
            "photos_rehosted": self.photos_rehosted,
            "photos_cdn_referenced": self.photos_cdn_referenced,
            "floor_plans_rehosted": self.floor_plans_rehosted,
            "agents_discovered": self.agents_discovered,
            "agencies_discovered": self.agencies_discovered,
            "api_calls_used": self.api_calls_used,
            "estimated_storage_saved_mb": self.estimated_storage_saved_mb,
        }
        return {column: values[column] for column in COUNTER_COLUMNS}


@dataclass
class SyncRunResult:
    run_id: int
    sync_type: str
    status: str
    stats: RunStats
    total_available: int = 0
    target: str | None = None

    @property
    def errors(self) -> list[str]:
        return self.stats.errors

    def to_response(self) -> dict[str, Any]:
        stats = self.stats
        if self.sync_type == "transactions":
            payload: dict[str, Any] = {
                "success": True,
                "message": f"Synced {stats.properties_synced} of "
                f"{stats.properties_found} transactions",
                "runId": self.run_id,
                "status": self.status,
                "transactionsFound": stats.properties_found,
                "transactionsSynced": stats.properties_synced,
                "apiCallsUsed": stats.api_calls_used,
                "totalAvailable": self.total_available,
            }
        else:
            payload = {
                "success": True,
                "message": f"Synced {stats.properties_synced} of "
                f"{stats.properties_found} properties",
                "runId": self.run_id,
                "status": self.status,
                "propertiesFound": stats.properties_found,
                "propertiesSynced": stats.properties_synced,
                "storage": {
                    "photosRehosted": stats.photos_rehosted,
                    "photosCdnReferenced": stats.photos_cdn_referenced,
                    "floorPlansRehosted": stats.floor_plans_rehosted,
                    "estimatedStorageSavedMb": stats.estimated_storage_saved_mb,
                },
                "intelligence": {
                    "agentsDiscovered": stats.agents_discovered,
                    "agenciesDiscovered": stats.agencies_discovered,
                },
                "apiCallsUsed": stats.api_calls_used,
                "totalAvailable": self.total_available,
            }
        if stats.errors:
            payload["errors"] = list(stats.errors)
        return payload


@dataclass
class SyncPreview:
    total_available: int
    would_sync: int
    api_calls_used: int = 1

    def to_response(self) -> dict[str, Any]:
        return {
            "success": True,
            "dryRun": True,
            "totalAvailable": self.total_available,
            "wouldSync": self.would_sync,
            "estimatedApiCalls": 1,
            "apiCallsUsed": self.api_calls_used,
        }


def generate_slug(title: str, external_id: str) -> str:
    """``<title slug, at most 50 chars>-<external_id>``."""
    base = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")[:50].strip("-")
    return f"{base}-{external_id}" if base else str(external_id)


def transform_property(
    record: PropertyRecord,
    *,
    synced_at: str,
    source: str = EXTERNAL_SOURCE,
    media: MediaDistribution | None = None,
    entities: EntityOutcome | None = None,
) -> dict[str, Any]:
    """Map one provider listing onto a ``properties`` row."""
    media = media or MediaDistribution()
    property_type = PROPERTY_TYPES.get(
        (record.category_slug or "").lower(), DEFAULT_PROPERTY_TYPE
    )
    return {
        "external_source": source,
        "external_id": record.external_id,
        "external_url": LISTING_URL_TEMPLATE.format(external_id=record.external_id),
        "title": record.title,
        "description": record.description,
        "price_aed": record.price,
        "size_sqft": int(round(record.area_sqft)),
        "bedrooms": record.bedrooms,
        "bathrooms": record.baths,
        "property_type": property_type,
        "listing_type": "rent" if record.purpose == "for-rent" else "sale",
        "location_area": record.location_area,
        "latitude": record.latitude,
        "longitude": record.longitude,
        "is_off_plan": (record.completion_status or "").lower() in {"off_plan", "off-plan"},
        "furnishing": record.furnishing_status,
        "rera_permit_number": record.permit_number,
        "amenities": list(record.amenities),
        "images": list(media.rehosted_images),
        "gallery_urls": list(media.cdn_gallery_urls),
        "floor_plan_urls": list(media.floor_plan_urls),
        "agent_data": entities.agent.snapshot() if entities and entities.agent else None,
        "agency_data": entities.agency.snapshot() if entities and entities.agency else None,
        "building_info": entities.building.to_dict() if entities else None,
        "slug": generate_slug(record.title, record.external_id),
        "is_published": False,
        "last_synced_at": synced_at,
    }


def transaction_fields(raw: dict[str, Any], synced_at: str) -> dict[str, Any]:
    """Map one provider transaction onto a ``transactions`` row.

    Transactions without an id get a stable digest of their payload so a
    repeated sync updates the same row.
    """
    external_id = coerce_str(raw.get("id")) or coerce_str(raw.get("externalID"))
    if not external_id:
        digest = hashlib.sha1(
            json.dumps(raw, sort_keys=True, default=str).encode("utf-8")
        ).hexdigest()
        external_id = f"tx-{digest[:20]}"

    location = raw.get("location")
    if isinstance(location, dict):
        location_name = coerce_str(location.get("name") or location.get("full_name"))
    elif isinstance(location, list) and location and isinstance(location[-1], dict):
        location_name = coerce_str(location[-1].get("name"))
    else:
        location_name = coerce_str(location or raw.get("location_name"))

    prop = raw.get("property") if isinstance(raw.get("property"), dict) else {}
    return {
        "external_id": external_id,
        "location_name": location_name,
        "property_type": coerce_str(prop.get("type") or raw.get("property_type") or raw.get("category")),
        "transaction_type": coerce_str(raw.get("transaction_type") or raw.get("purpose") or raw.get("type")),
        "price_aed": coerce_float(raw.get("amount") or raw.get("price")),
        "size_sqft": coerce_float(prop.get("builtup_area") or raw.get("area") or raw.get("size")),
        "bedrooms": coerce_int(prop.get("beds") or raw.get("beds") or raw.get("rooms")),
        "transaction_date": coerce_str(raw.get("date") or raw.get("transaction_date")),
        "raw_data": raw,
        "last_synced_at": synced_at,
    }


class SyncOrchestrator:
    """Run property and transaction syncs against one provider client."""

    def __init__(
        self,
        client: ProviderClient,
        conn: sqlite3.Connection,
        media_store: MediaRehoster,
        *,
        source: str = EXTERNAL_SOURCE,
        clock: Callable[[], datetime] = utcnow,
        sleep: Sleeper = time.sleep,
        delay_strategy: DelayStrategy | None = None,
        batch_size: int = BATCH_SIZE,
        batch_cooldown_seconds: float = BATCH_COOLDOWN_SECONDS,
        freshness_hours: float = DEFAULT_FRESHNESS_HOURS,
        rehost_limit: int = REHOST_LIMIT,
    ) -> None:
        self.client = client
        self.conn = conn
        self.source = source
        self.clock = clock
        self.sleep = sleep
        self.delay_strategy = delay_strategy or organic_delay()
        self.batch_size = max(1, batch_size)
        self.batch_cooldown_seconds = batch_cooldown_seconds

        self.properties = PropertyRepository(conn)
        self.runs = SyncRunRepository(conn)
        self.agents = AgentRepository(conn)
        self.agencies = AgencyRepository(conn)
        self.transactions = TransactionRepository(conn)
        self.freshness = FreshnessGate(
            self.properties, source=source, clock=clock, threshold_hours=freshness_hours
        )
        self.media = HybridMediaStrategist(media_store, rehost_limit=rehost_limit)

    @staticmethod
    def validate(filters: PropertyFilters) -> None:
        if not filters.locations_ids:
            raise SyncValidationError("At least one location id is required")

    def preview(self, filters: PropertyFilters) -> SyncPreview:
        """Report how many listings a sync would see, spending one provider call."""
        self.validate(filters)
        total = self.client.count_properties(filters)
        logger.info(f"Dry run for {filters.describe()}: {total} listings available")
        return SyncPreview(total_available=total, would_sync=min(filters.limit, total))

    def sync_properties(
        self, filters: PropertyFilters, *, dry_run: bool = False
    ) -> SyncRunResult | SyncPreview:
        self.validate(filters)
        if dry_run:
            return self.preview(filters)

        target = filters.describe()
        started = self.clock()
        run_id = self.runs.create("properties", target, format_timestamp(started))
        stats = RunStats()
        calls_before = self.client.api_calls
        extractor = EntityExtractor(self.agents, self.agencies, clock=self.clock)
        perf_start = time.perf_counter()
        total_available = 0

        with log_context(sync_run_id=run_id):
            logger.info(f"Starting property sync: {target}")
            try:
                page = self.client.search_properties(filters)
                records = page.results
                total_available = page.total
                stats.properties_found = len(records)
                logger.info(f"Found {len(records)} listings ({page.total} available)")

                for index, raw in enumerate(records):
                    if index and index % self.batch_size == 0:
                        logger.info(
                            f"Batch of {self.batch_size} done, cooling down "
                            f"{self.batch_cooldown_seconds}s"
                        )
                        self.sleep(self.batch_cooldown_seconds)
                    processed = self._sync_record(raw, stats, extractor)
                    if processed and index < len(records) - 1:
                        delay = self.delay_strategy()
                        if delay > 0:
                            self.sleep(delay)
            except Exception as exc:
                stats.api_calls_used = self.client.api_calls - calls_before
                stats.errors.append(f"Sync failed: {exc}")
                log_exception(logger, "Property sync failed", exc)
                self._finish(run_id, "properties", STATUS_FAILED, stats, perf_start)
                raise

            stats.api_calls_used = self.client.api_calls - calls_before
            status = STATUS_COMPLETED_WITH_ERRORS if stats.errors else STATUS_COMPLETED
            self._finish(run_id, "properties", status, stats, perf_start)
            logger.info(
                f"Property sync {status}: {stats.properties_synced}/"
                f"{stats.properties_found} synced, {len(stats.errors)} errors"
            )

        return SyncRunResult(
            run_id=run_id,
            sync_type="properties",
            status=status,
            stats=stats,
            total_available=total_available,
            target=target,
        )

    def _sync_record(
        self, raw: dict[str, Any], stats: RunStats, extractor: EntityExtractor
    ) -> bool:
        """Sync one listing; returns ``False`` only when it was skipped as fresh."""
        try:
            record = PropertyRecord.from_payload(raw)
        except ValueError as exc:
            stats.errors.append(f"Invalid listing payload: {exc}")
            logger.warning(f"Skipping invalid listing payload: {exc}")
            return True

        external_id = record.external_id
        with log_context(external_id=external_id):
            try:
                if not self.freshness.needs_sync(external_id):
                    logger.debug(f"Skipping {external_id}: recently synced")
                    return False

                entities = extractor.upsert_related(raw)
                stats.errors.extend(entities.errors)

                media = self.media.distribute_images(
                    record.candidate_image_urls(), record.floor_plan_urls, external_id
                )
                stats.errors.extend(media.errors)

                row = transform_property(
                    record,
                    synced_at=format_timestamp(self.clock()),
                    source=self.source,
                    media=media,
                    entities=entities,
                )
                self.properties.upsert(row)
                # counters only cover listings that were stored
                stats.add_entities(entities)
                stats.add_media(media)
                stats.properties_synced += 1
            except Exception as exc:
                stats.errors.append(f"Property {external_id}: {exc}")
                log_exception(logger, f"Failed to sync property {external_id}", exc)
        return True

    def sync_transactions(self, filters: PropertyFilters) -> SyncRunResult:
        """Fetch one page of transactions and upsert them by external id."""
        self.validate(filters)
        target = filters.describe()
        run_id = self.runs.create("transactions", target, format_timestamp(self.clock()))
        stats = RunStats()
        calls_before = self.client.api_calls
        perf_start = time.perf_counter()

        with log_context(sync_run_id=run_id):
            logger.info(f"Starting transaction sync: {target}")
            try:
                page = self.client.get_transactions(filters)
                stats.properties_found = len(page.results)
                for raw in page.results:
                    try:
                        self.transactions.upsert(
                            transaction_fields(raw, format_timestamp(self.clock()))
                        )
                        stats.properties_synced += 1
                    except sqlite3.Error as exc:
                        stats.errors.append(f"Transaction upsert failed: {exc}")
                        logger.warning(f"Transaction upsert failed: {exc}")
            except Exception as exc:
                stats.api_calls_used = self.client.api_calls - calls_before
                stats.errors.append(f"Sync failed: {exc}")
                log_exception(logger, "Transaction sync failed", exc)
                self._finish(run_id, "transactions", STATUS_FAILED, stats, perf_start)
                raise

            stats.api_calls_used = self.client.api_calls - calls_before
            status = STATUS_COMPLETED_WITH_ERRORS if stats.errors else STATUS_COMPLETED
            self._finish(run_id, "transactions", status, stats, perf_start)

        return SyncRunResult(
            run_id=run_id,
            sync_type="transactions",
            status=status,
            stats=stats,
            total_available=page.total,
            target=target,
        )

    def _finish(
        self, run_id: int, sync_type: str, status: str, stats: RunStats, perf_start: float
    ) -> None:
        self.runs.finalize(
            run_id,
            status=status,
            completed_at=format_timestamp(self.clock()),
            counters=stats.counters(),
            errors=stats.errors,
        )
        record_sync_run(
            sync_type, status, time.perf_counter() - perf_start, stats.properties_synced
        )


__all__ = [
    "EXTERNAL_SOURCE",
    "RunStats",
    "STATUS_COMPLETED",
    "STATUS_COMPLETED_WITH_ERRORS",
    "STATUS_FAILED",
    "STATUS_RUNNING",
    "SyncOrchestrator",
    "SyncPreview",
    "SyncRunResult",
    "SyncValidationError",
    "generate_slug",
    "transaction_fields",
    "transform_property",
]
