"""
Query caching package.

Memoizes asynchronous query results per (query name, parameters), refreshes
them lazily after their TTL and exposes explicit invalidation. Entries are
never evicted; invalidation only moves their expiry into the past.
"""

from .cache_store import CacheEntry, CacheStore
from .coordinator import DEFAULT_TTL_SECONDS, QueryCoordinator
from .invalidation import InvalidationEngine
from .key_codec import contains, parse, serialize

__all__ = [
    "CacheEntry",
    "CacheStore",
    "DEFAULT_TTL_SECONDS",
    "InvalidationEngine",
    "QueryCoordinator",
    "contains",
    "parse",
    "serialize",
]
