from __future__ import annotations

from ..connection import iso_utcnow
from .tables import SCHEMA_MIGRATIONS_SQL, SCHEMA_VERSION_SQL

# Bump together with structural changes to tables.py.
CURRENT_SCHEMA_VERSION = 2


class SchemaMigrator:
    """Tracks the schema version and the named in-place column upgrades.

    ``schema_version`` holds a single integer row. Upgrades such as the
    ``sync_runs`` media columns are recorded by name in ``schema_migrations``
    so they are reported once.
    """

    def __init__(self, conn) -> None:
        self.conn = conn

    def ensure_tables(self) -> None:
        self.conn.executescript(SCHEMA_VERSION_SQL)
        self.conn.executescript(SCHEMA_MIGRATIONS_SQL)

    def get_version(self) -> int | None:
        row = self.conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
        return row[0] if row else None

    def ensure_current_version(self) -> None:
        current = self.get_version()
        if current is not None and current >= CURRENT_SCHEMA_VERSION:
            return
        self.conn.execute("DELETE FROM schema_version")
        self.conn.execute(
            "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
            (CURRENT_SCHEMA_VERSION, iso_utcnow()),
        )

    def has_migration(self, name: str) -> bool:
        cur = self.conn.execute("SELECT 1 FROM schema_migrations WHERE name = ?", (name,))
        return cur.fetchone() is not None

    def record(self, name: str, notes: str | None = None) -> None:
        self.conn.execute(
            "INSERT INTO schema_migrations (name, applied_at, notes) VALUES (?, ?, ?)",
            (name, iso_utcnow(), notes),
        )
