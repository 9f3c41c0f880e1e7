"""Service layer modules for propsync."""

from .ingestion import IngestionService  # noqa: F401
from .rate_limiter import RateLimiter, RateLimitResult  # noqa: F401
from .scheduled import run_scheduled_sync  # noqa: F401
from .sync import *  # noqa: F401,F403

__all__ = ["IngestionService", "RateLimiter", "RateLimitResult", "run_scheduled_sync"] + [
    name
    for name in dir()
    if not name.startswith("_")
    and name not in {"IngestionService", "RateLimiter", "RateLimitResult", "run_scheduled_sync"}
]
