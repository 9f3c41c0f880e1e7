from __future__ import annotations

from .migrations import SchemaMigrator
from .tables import (
    SCHEMA_AGENCIES_SQL,
    SCHEMA_AGENTS_SQL,
    SCHEMA_PROPERTIES_SQL,
    SCHEMA_RATE_LIMITS_SQL,
    SCHEMA_SYNC_RUNS_SQL,
    SCHEMA_TRANSACTIONS_SQL,
)


def ensure_schema(conn) -> None:
    """Apply the full database schema."""

    migrator = SchemaMigrator(conn)
    migrator.ensure_tables()
    migrator.ensure_current_version()
    conn.executescript(SCHEMA_PROPERTIES_SQL)
    conn.executescript(SCHEMA_AGENTS_SQL)
    conn.executescript(SCHEMA_AGENCIES_SQL)
    conn.executescript(SCHEMA_TRANSACTIONS_SQL)
    conn.executescript(SCHEMA_SYNC_RUNS_SQL)
    conn.executescript(SCHEMA_RATE_LIMITS_SQL)
    _ensure_sync_run_columns(conn, migrator)


def _ensure_sync_run_columns(conn, migrator: SchemaMigrator) -> None:
    existing = {row[1] for row in conn.execute("PRAGMA table_info(sync_runs)").fetchall()}

    to_add = {
        "estimated_storage_saved_mb": "REAL DEFAULT 0",
        "floor_plans_rehosted": "INTEGER DEFAULT 0",
    }

    added_cols: list[str] = []
    for col, col_type in to_add.items():
        if col in existing:
            continue
        conn.execute(f"ALTER TABLE sync_runs ADD COLUMN {col} {col_type}")
        added_cols.append(col)
    if added_cols:
        migration_name = "add_sync_runs_media_columns_v1"
        if not migrator.has_migration(migration_name):
            migrator.record(migration_name, ",".join(added_cols))
