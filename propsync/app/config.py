"""Runtime settings for propsync.

Settings are read from the optional ``config.json`` (see
:mod:`propsync.infrastructure.db.config`) and the environment. The provider
credential is only ever taken from ``RAPIDAPI_KEY``.
"""

from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from propsync.infrastructure.db.config import get_path_config, load_config
from propsync.infrastructure.http.client import (
    DEFAULT_API_HOST,
    DEFAULT_TIMEOUT_SECONDS,
    ProviderClient,
)
from propsync.infrastructure.persistence import MediaStore
from propsync.services.ingestion import IngestionService
from propsync.services.rate_limiter import DEFAULT_MAX_REQUESTS, DEFAULT_WINDOW_SECONDS
from propsync.services.sync import SyncOrchestrator
from propsync.services.sync.freshness import DEFAULT_FRESHNESS_HOURS
from propsync.services.sync.media import REHOST_LIMIT
from propsync.services.sync.pacing import (
    BATCH_COOLDOWN_SECONDS,
    BATCH_SIZE,
    PACING_MAX_SECONDS,
    PACING_MIN_SECONDS,
    organic_delay,
)

API_KEY_ENV = "RAPIDAPI_KEY"


@dataclass
class Settings:
    db_path: Path
    media_root: Path
    media_base_url: str = "/media"
    api_key: str | None = None
    provider_host: str = DEFAULT_API_HOST
    provider_base_url: str | None = None
    provider_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    batch_size: int = BATCH_SIZE
    batch_cooldown_seconds: float = BATCH_COOLDOWN_SECONDS
    pacing_min_seconds: float = PACING_MIN_SECONDS
    pacing_max_seconds: float = PACING_MAX_SECONDS
    freshness_hours: float = DEFAULT_FRESHNESS_HOURS
    rehost_limit: int = REHOST_LIMIT
    rate_limit_max_requests: int = DEFAULT_MAX_REQUESTS
    rate_limit_window_seconds: int = DEFAULT_WINDOW_SECONDS


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = cfg.get(name, {})
    return value if isinstance(value, dict) else {}


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Build :class:`Settings` from ``config.json`` and the environment."""
    cfg = load_config(config_path)
    paths = get_path_config(config_path)
    provider = _section(cfg, "provider")
    sync = _section(cfg, "sync")
    rate_limit = _section(cfg, "rate_limit")

    return Settings(
        db_path=paths["db_path"],
        media_root=paths["media_root"],
        media_base_url=str(cfg.get("media_base_url", "/media")),
        api_key=os.environ.get(API_KEY_ENV),
        provider_host=str(provider.get("host", DEFAULT_API_HOST)),
        provider_base_url=provider.get("base_url"),
        provider_timeout_seconds=float(
            provider.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)
        ),
        batch_size=int(sync.get("batch_size", BATCH_SIZE)),
        batch_cooldown_seconds=float(
            sync.get("batch_cooldown_seconds", BATCH_COOLDOWN_SECONDS)
        ),
        pacing_min_seconds=float(sync.get("pacing_min_seconds", PACING_MIN_SECONDS)),
        pacing_max_seconds=float(sync.get("pacing_max_seconds", PACING_MAX_SECONDS)),
        freshness_hours=float(sync.get("freshness_hours", DEFAULT_FRESHNESS_HOURS)),
        rehost_limit=int(sync.get("rehost_limit", REHOST_LIMIT)),
        rate_limit_max_requests=int(
            rate_limit.get("max_requests", DEFAULT_MAX_REQUESTS)
        ),
        rate_limit_window_seconds=int(
            rate_limit.get("window_seconds", DEFAULT_WINDOW_SECONDS)
        ),
    )


def build_provider_client(settings: Settings) -> ProviderClient:
    """Create the provider client; raises when ``RAPIDAPI_KEY`` is unset."""
    return ProviderClient(
        settings.api_key,
        host=settings.provider_host,
        base_url=settings.provider_base_url,
        timeout_seconds=settings.provider_timeout_seconds,
    )


def build_orchestrator(
    settings: Settings, conn: sqlite3.Connection, client: ProviderClient
) -> SyncOrchestrator:
    return SyncOrchestrator(
        client,
        conn,
        MediaStore(settings.media_root, settings.media_base_url),
        delay_strategy=organic_delay(settings.pacing_min_seconds, settings.pacing_max_seconds),
        batch_size=settings.batch_size,
        batch_cooldown_seconds=settings.batch_cooldown_seconds,
        freshness_hours=settings.freshness_hours,
        rehost_limit=settings.rehost_limit,
    )


def build_ingestion_service(
    settings: Settings, conn: sqlite3.Connection
) -> IngestionService:
    return IngestionService(
        client_factory=lambda: build_provider_client(settings),
        orchestrator_factory=lambda client: build_orchestrator(settings, conn, client),
    )


__all__ = [
    "API_KEY_ENV",
    "Settings",
    "build_ingestion_service",
    "build_orchestrator",
    "build_provider_client",
    "load_settings",
]
