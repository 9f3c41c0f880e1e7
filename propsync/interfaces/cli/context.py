"""Shared helpers for composing CLI command contexts.

This module centralises common CLI wiring such as resolving settings and
building SQLite connections, provider clients and sync orchestrators with
the project defaults applied.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterator, TypeVar

from propsync.app.config import (
    Settings,
    build_orchestrator,
    build_provider_client,
    load_settings,
)
from propsync.infrastructure.db import ensure_schema, get_connection
from propsync.infrastructure.db.repositories.base import BaseRepository
from propsync.infrastructure.http.client import ProviderClient
from propsync.services.sync import SyncOrchestrator

RepositoryT = TypeVar("RepositoryT", bound=BaseRepository)


@dataclass(frozen=True)
class CLIContext:
    """Container for CLI settings and connection helpers."""

    settings: Settings

    @property
    def db_path(self) -> Path:
        return self.settings.db_path

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Open a configured SQLite connection and ensure the schema exists."""

        with get_connection(self.settings.db_path) as connection:
            ensure_schema(connection)
            yield connection

    @contextmanager
    def repository(self, repository_cls: type[RepositoryT]) -> Iterator[RepositoryT]:
        """Yield a repository instance wired to a managed connection."""

        with self.connect() as connection:
            yield repository_cls(connection)

    def client(self) -> ProviderClient:
        return build_provider_client(self.settings)

    @contextmanager
    def orchestrator(self) -> Iterator[SyncOrchestrator]:
        """Yield an orchestrator with a fresh client and a managed connection.

        The client is created first so a missing API key fails before the
        database is touched.
        """

        client = self.client()
        with self.connect() as connection:
            yield build_orchestrator(self.settings, connection, client)


def build_cli_context(
    db_path: str | None = None, config_path: str | None = None
) -> CLIContext:
    settings = load_settings(config_path)
    if db_path:
        settings = replace(settings, db_path=Path(db_path))
    return CLIContext(settings=settings)


__all__ = ["CLIContext", "build_cli_context"]
