"""Integration registry: resolves integration ids to validated descriptors."""

from startforge.registry.cache import Cache, FileCache, MemoryCache
from startforge.registry.fetch import (
    BINARY_PREFIX,
    IntegrationRegistry,
    RegistryError,
    resolve_integration_ids,
)

__all__ = [
    "BINARY_PREFIX",
    "Cache",
    "FileCache",
    "IntegrationRegistry",
    "MemoryCache",
    "RegistryError",
    "resolve_integration_ids",
]
