from .entities import AgencyRepository, AgentRepository
from .properties import PropertyRepository
from .rate_limits import RateLimitRepository
from .sync_runs import SyncRunRepository
from .transactions import TransactionRepository

__all__ = [
    "AgencyRepository",
    "AgentRepository",
    "PropertyRepository",
    "RateLimitRepository",
    "SyncRunRepository",
    "TransactionRepository",
]
