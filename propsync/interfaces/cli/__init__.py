"""CLI interface for propsync.

This package is the home for all Click commands; the ``propsync`` console
script points at :func:`cli`.
"""

from .__main__ import cli
from .provider import areas, test_connection
from .runs import runs
from .sync import scheduled_sync, sync, sync_transactions

__all__ = [
    "areas",
    "cli",
    "runs",
    "scheduled_sync",
    "sync",
    "sync_transactions",
    "test_connection",
]
