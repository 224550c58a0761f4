"""
In-memory cache store: query name -> cache key -> entry.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from shared.logging import get_logger


@dataclass(frozen=True)
class CacheEntry:
    """Cached state of one (query, key) pair.

    Entries are immutable; every commit stores a new object so observers can
    detect changes by identity.
    """

    data: Any = None
    loading: bool = False
    error: Optional[BaseException] = None
    expires_at: float = 0.0

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


Listener = Callable[[str, str, CacheEntry], None]


class CacheStore:
    """Entry storage with per-(query, key) change notifications.

    The coordinator is the only writer. Listeners are called synchronously
    after every commit, including commits that leave field values unchanged.
    """

    def __init__(self, queries: Iterable[str] = ()):
        self.logger = get_logger("query_cache.store")
        self._cache: Dict[str, Dict[str, CacheEntry]] = {name: {} for name in queries}
        self._listeners: Dict[Tuple[str, str], List[Listener]] = {}

    def queries(self) -> List[str]:
        """Return the query names the store holds buckets for."""
        return list(self._cache.keys())

    def keys(self, query: str) -> List[str]:
        """Snapshot of the keys cached under ``query`` (empty for unknown queries)."""
        return list(self._cache.get(query, {}).keys())

    def get(self, query: str, key: str) -> Optional[CacheEntry]:
        return self._cache.get(query, {}).get(key)

    def commit(self, query: str, key: str, *, notify: bool = True, **props: Any) -> CacheEntry:
        """Shallow-merge ``props`` into the entry for (query, key) and notify unless ``notify`` is False."""
        bucket = self._cache.setdefault(query, {})
        current = bucket.get(key)
        entry = replace(current, **props) if current is not None else CacheEntry(**props)
        bucket[key] = entry
        if notify:
            self._notify(query, key, entry)
        return entry

    def touch(self, query: str, key: str) -> Optional[CacheEntry]:
        """Replace the entry with an identical copy and notify listeners."""
        current = self.get(query, key)
        if current is None:
            return None
        entry = replace(current)
        self._cache[query][key] = entry
        self._notify(query, key, entry)
        return entry

    def subscribe(self, query: str, key: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for changes to (query, key); returns an unsubscribe callable."""
        listeners = self._listeners.setdefault((query, key), [])
        listeners.append(listener)

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)
            if not listeners and self._listeners.get((query, key)) is listeners:
                self._listeners.pop((query, key), None)

        return unsubscribe

    def _notify(self, query: str, key: str, entry: CacheEntry) -> None:
        for listener in list(self._listeners.get((query, key), ())):
            try:
                listener(query, key, entry)
            except Exception as exc:  # listener errors never reach the committer
                self.logger.error(
                    "Cache listener failed",
                    query=query,
                    key=key,
                    error=str(exc),
                    exc_info=True,
                )
