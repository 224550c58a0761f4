"""
Client-side query result cache.

Typical use::

    coordinator = QueryCoordinator({"colors": QueryDefinition("colors", fetch_colors, default={})})
    entry = coordinator.query("colors", {"page": 1})      # current state, fetch started
    entry = await coordinator.resolve("colors", {"page": 1})  # settled state
    coordinator.invalidate_where("colors", {"page": 1})
"""

from .binding import QueryBinding, map_queries
from .caching import (
    CacheEntry,
    CacheStore,
    DEFAULT_TTL_SECONDS,
    InvalidationEngine,
    QueryCoordinator,
    contains,
    parse,
    serialize,
)
from .context import QueryContext
from .registry import QueryDefinition, QueryRegistry

__version__ = "1.0.0"

__all__ = [
    "CacheEntry",
    "CacheStore",
    "DEFAULT_TTL_SECONDS",
    "InvalidationEngine",
    "QueryBinding",
    "QueryContext",
    "QueryCoordinator",
    "QueryDefinition",
    "QueryRegistry",
    "contains",
    "map_queries",
    "parse",
    "serialize",
]
