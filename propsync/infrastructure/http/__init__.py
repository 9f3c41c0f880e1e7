from .client import (
    DEFAULT_API_HOST,
    PropertyFilters,
    ProviderClient,
    ProviderConfigurationError,
    ProviderError,
    SearchPage,
)
from .records import PropertyRecord

__all__ = [
    "DEFAULT_API_HOST",
    "PropertyFilters",
    "PropertyRecord",
    "ProviderClient",
    "ProviderConfigurationError",
    "ProviderError",
    "SearchPage",
]
