"""
propsync package initializer.

This package pulls property, agent, agency and transaction records from the
Bayut-backed UAE real-estate API on RapidAPI and mirrors them into a local
catalogue, rehosting the images a listing card shows and keeping the rest of
each gallery as CDN references.

The package exposes a ``__version__`` attribute read from pyproject.toml via
importlib.metadata.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("propsync")
except PackageNotFoundError:
    # Package is not installed (running from source without pip install -e .)
    __version__ = "0.0.0.dev"

__all__: list[str] = ["__version__"]
