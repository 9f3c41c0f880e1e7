"""Application layer: settings, FastAPI dependencies and the HTTP app."""

from . import config

__all__ = ["config"]
