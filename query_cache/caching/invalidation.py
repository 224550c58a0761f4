"""
Bulk and pattern invalidation on top of the coordinator's single-key expiry.
"""

from typing import Any, Mapping, Optional, TYPE_CHECKING

from shared.errors import KeyCodecError
from shared.logging import get_logger
from .key_codec import contains, parse, serialize

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .coordinator import QueryCoordinator


class InvalidationEngine:
    """Expire cache entries without removing their data.

    Invalidation is lenient: unknown queries, empty queries and missing keys are
    no-ops. Every form goes through ``QueryCoordinator.expire``.
    """

    def __init__(self, coordinator: "QueryCoordinator"):
        self.coordinator = coordinator
        self.logger = get_logger("query_cache.invalidation")

    def invalidate(self, query: Optional[str] = None, *, key: Optional[str] = None, params: Any = None) -> int:
        if query is None:
            count = sum(self.invalidate(name) for name in self.coordinator.registry.names())
            self.logger.info("Invalidated all queries", entries=count)
            return count

        if key is None and params is None:
            count = sum(self.invalidate(query, key=cached) for cached in self.coordinator.store.keys(query))
            self.logger.info("Invalidated query", query=query, entries=count)
            return count

        if key is None:
            key = serialize(params)
        return 1 if self.coordinator.expire(query, key) else 0

    def invalidate_where(self, query: str, match: Mapping[str, Any]) -> int:
        """Expire every entry whose decoded parameters structurally contain ``match``."""
        pattern = parse(serialize(match))
        count = 0
        for key in self.coordinator.store.keys(query):
            try:
                params = parse(key)
            except KeyCodecError:
                self.logger.debug("Skipping undecodable cache key", query=query, key=key)
                continue

            if contains(params, pattern):
                count += self.invalidate(query, key=key)

        self.logger.info("Invalidated matching entries", query=query, match=match, entries=count)
        return count
