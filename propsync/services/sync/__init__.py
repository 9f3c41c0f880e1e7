"""Sync services for pulling provider listings into the local store.

Public API:
  - SyncOrchestrator – runs property and transaction syncs
  - SyncRunResult / SyncPreview – run outcome objects with API payloads
  - RunStats – counters owned by one run
  - FreshnessGate – 24h freshness decision per listing
  - HybridMediaStrategist – rehost-or-reference split for listing images
  - EntityExtractor – agent/agency/building extraction with per-run dedupe
  - organic_delay() – default pacing strategy

Internal modules (sync.py, media.py, entities.py, ...) may change; import
from this package.
"""

from .entities import (
    AgencyFields,
    AgentFields,
    BuildingFields,
    EntityExtractor,
    EntityOutcome,
    extract_agency,
    extract_agent,
    extract_building_info,
)
from .freshness import DEFAULT_FRESHNESS_HOURS, FreshnessGate
from .media import (
    AVERAGE_IMAGE_SIZE_KB,
    REHOST_LIMIT,
    HybridMediaStrategist,
    MediaDistribution,
    estimated_storage_saved_mb,
)
from .pacing import BATCH_COOLDOWN_SECONDS, BATCH_SIZE, no_delay, organic_delay
from .sync import (
    EXTERNAL_SOURCE,
    STATUS_COMPLETED,
    STATUS_COMPLETED_WITH_ERRORS,
    STATUS_FAILED,
    STATUS_RUNNING,
    RunStats,
    SyncOrchestrator,
    SyncPreview,
    SyncRunResult,
    SyncValidationError,
    generate_slug,
    transaction_fields,
    transform_property,
)

__all__ = [
    # === Orchestration
    "EXTERNAL_SOURCE",
    "STATUS_COMPLETED",
    "STATUS_COMPLETED_WITH_ERRORS",
    "STATUS_FAILED",
    "STATUS_RUNNING",
    "RunStats",
    "SyncOrchestrator",
    "SyncPreview",
    "SyncRunResult",
    "SyncValidationError",
    "generate_slug",
    "transaction_fields",
    "transform_property",
    # === Freshness
    "DEFAULT_FRESHNESS_HOURS",
    "FreshnessGate",
    # === Media
    "AVERAGE_IMAGE_SIZE_KB",
    "REHOST_LIMIT",
    "HybridMediaStrategist",
    "MediaDistribution",
    "estimated_storage_saved_mb",
    # === Entities
    "AgencyFields",
    "AgentFields",
    "BuildingFields",
    "EntityExtractor",
    "EntityOutcome",
    "extract_agency",
    "extract_agent",
    "extract_building_info",
    # === Pacing
    "BATCH_COOLDOWN_SECONDS",
    "BATCH_SIZE",
    "no_delay",
    "organic_delay",
]
