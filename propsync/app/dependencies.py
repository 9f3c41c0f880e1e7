"""Shared FastAPI dependencies for propsync application components."""

from __future__ import annotations

import sqlite3
from typing import Annotated, Iterator

from fastapi import Depends

from propsync.app.config import Settings, build_ingestion_service, load_settings
from propsync.infrastructure.db import ensure_schema, get_connection
from propsync.infrastructure.db.repositories import SyncRunRepository
from propsync.services.ingestion import IngestionService
from propsync.services.rate_limiter import RateLimiter

__all__ = [
    # Factory functions
    "get_settings",
    "get_db_connection",
    "get_sync_run_repository",
    "get_rate_limiter",
    "get_ingestion_service",
    # Annotated dependency types
    "SettingsDep",
    "SyncRunRepositoryDep",
    "RateLimiterDep",
    "IngestionServiceDep",
]


def get_settings() -> Settings:
    return load_settings()


def get_db_connection(
    settings: Settings = Depends(get_settings),
) -> Iterator[sqlite3.Connection]:
    """Provide a SQLite connection with the required schema ensured.

    Uses check_same_thread=False because sync runs are executed in a worker
    thread while the request holds the connection.
    """

    with get_connection(settings.db_path, check_same_thread=False) as conn:
        ensure_schema(conn)
        yield conn


def get_sync_run_repository(
    conn: sqlite3.Connection = Depends(get_db_connection),
) -> SyncRunRepository:
    return SyncRunRepository(conn)


def get_rate_limiter(
    conn: sqlite3.Connection = Depends(get_db_connection),
) -> RateLimiter:
    return RateLimiter(conn)


def get_ingestion_service(
    settings: Settings = Depends(get_settings),
    conn: sqlite3.Connection = Depends(get_db_connection),
) -> IngestionService:
    return build_ingestion_service(settings, conn)


SettingsDep = Annotated[Settings, Depends(get_settings)]
SyncRunRepositoryDep = Annotated[SyncRunRepository, Depends(get_sync_run_repository)]
RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter)]
IngestionServiceDep = Annotated[IngestionService, Depends(get_ingestion_service)]
