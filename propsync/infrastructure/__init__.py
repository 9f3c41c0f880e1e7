"""Infrastructure layer for propsync.

Holds adapters for the provider HTTP API, SQLite persistence, owned media
storage and observability.
"""

from . import db, http, observability, persistence

__all__ = ["db", "http", "observability", "persistence"]
