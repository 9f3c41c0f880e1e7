"""Interface layer for propsync.

Packages under ``propsync.interfaces`` expose boundary adapters such as CLI
commands.
"""

from . import cli

__all__ = ["cli"]
