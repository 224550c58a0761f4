"""
Query coordinator: memoized, self-refreshing query results.
"""

import asyncio
import copy
import inspect
import time
from functools import partial
from typing import Any, Callable, Dict, Mapping, Optional, Set, Tuple, TYPE_CHECKING, Union

from shared.config import QueryCacheConfig
from shared.errors import ConfigurationError
from shared.logging import get_logger
from .cache_store import CacheEntry, CacheStore, Listener
from .invalidation import InvalidationEngine
from .key_codec import serialize
from ..context import QueryContext
from ..registry import FetchFunction, QueryDefinition, QueryRegistry

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_TTL_SECONDS = 300.0

SlotKey = Tuple[str, str]


class QueryCoordinator:
    """Serve cached query results and refresh them when they expire.

    ``query()`` is synchronous: it returns the entry as currently known and, if
    that entry is missing or expired, starts exactly one fetch on the running
    event loop. The entry's expiry is pushed forward before the fetch is awaited,
    so further calls for the same key see a fresh entry and do not fetch again
    until the new expiry passes or the key is invalidated.

    Fetch results and failures are written back into the store; failures never
    propagate to callers and keep the previous ``data``. There is no ordering
    guard between fetches for the same key: if a key is invalidated while a
    fetch is in flight, the older fetch can settle after the newer one and its
    result wins.
    """

    def __init__(
        self,
        queries: Union[QueryRegistry, Mapping[str, Union[QueryDefinition, FetchFunction]]],
        *,
        ttl: Optional[float] = None,
        config: Optional[QueryCacheConfig] = None,
        context: Optional[QueryContext] = None,
        metrics: Optional["MetricsCollector"] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.registry = queries if isinstance(queries, QueryRegistry) else QueryRegistry(queries)
        self.config = config
        if ttl is None:
            ttl = config.default_ttl_seconds if config is not None else DEFAULT_TTL_SECONDS
        if ttl <= 0:
            raise ConfigurationError("Coordinator ttl must be positive", {"ttl": ttl})
        self.default_ttl = ttl

        self.context = context or QueryContext(config=config)
        self.context.coordinator = self
        self.metrics = metrics
        self.clock = clock
        self.logger = get_logger("query_cache.coordinator")

        self.store = CacheStore(self.registry.names())
        self.invalidation = InvalidationEngine(self)

        self._in_flight: Dict[SlotKey, asyncio.Task] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._stale_checks: Dict[SlotKey, asyncio.TimerHandle] = {}

    def query(self, name: str, params: Any = None, key: Optional[str] = None) -> CacheEntry:
        """Return the cached entry for ``name``/``params``, fetching if it is missing or expired.

        Omitted ``params`` mean ``{}``. Raises :class:`UnknownQueryError` for
        unregistered names. Starting a fetch requires a running event loop.
        """
        definition = self.registry.get(name)
        if params is None:
            params = {}
        if key is None:
            key = serialize(params)

        now = self.clock()
        entry = self.store.get(name, key)
        if entry is not None and not entry.is_expired(now):
            self._record("query_cache_requests_total", query=name, result="hit")
            return entry

        loop = asyncio.get_running_loop()
        if entry is None:
            # listeners hear about the entry once the fetch cycle has committed its expiry
            entry = self.store.commit(
                name,
                key,
                notify=False,
                data=copy.deepcopy(definition.default),
                loading=False,
                error=None,
                expires_at=now,
            )
            self._record("query_cache_requests_total", query=name, result="miss")
        else:
            self._record("query_cache_requests_total", query=name, result="refresh")

        self._start_fetch(loop, definition, key, params, now)
        return entry

    def _start_fetch(
        self,
        loop: asyncio.AbstractEventLoop,
        definition: QueryDefinition,
        key: str,
        params: Any,
        now: float,
    ) -> None:
        name = definition.name
        ttl = definition.ttl if definition.ttl is not None else self.default_ttl
        expires_at = now + ttl

        self._schedule_stale_check(loop, name, key, ttl, expires_at)
        self.store.commit(name, key, loading=True, expires_at=expires_at)
        self.logger.info("Fetching query", query=name, key=key, ttl=ttl)

        started = time.perf_counter()
        try:
            result = definition.fetch(self.context, params)
        except Exception as exc:
            self._settle_failure(name, key, exc, started)
            return

        if not inspect.isawaitable(result):
            self._settle_success(name, key, result, started)
            return

        slot = (name, key)
        task = loop.create_task(self._await_fetch(name, key, result, started))
        self._in_flight[slot] = task
        self._tasks.add(task)
        task.add_done_callback(partial(self._discard_task, slot))

    async def _await_fetch(self, name: str, key: str, awaitable: Any, started: float) -> None:
        try:
            data = await awaitable
        except asyncio.CancelledError:
            self.store.commit(name, key, loading=False)
            raise
        except Exception as exc:
            self._settle_failure(name, key, exc, started)
        else:
            self._settle_success(name, key, data, started)

    def _settle_success(self, name: str, key: str, data: Any, started: float) -> None:
        self.store.commit(name, key, loading=False, error=None, data=data)
        self._record_fetch(name, "success", started)
        self.logger.debug("Query resolved", query=name, key=key)

    def _settle_failure(self, name: str, key: str, exc: Exception, started: float) -> None:
        self.store.commit(name, key, loading=False, error=exc)
        self._record_fetch(name, "error", started)
        if self.metrics is not None:
            try:
                self.metrics.record_error(type(exc).__name__)
            except Exception as metrics_exc:  # pragma: no cover - metrics failures never break the cache
                self.logger.debug("Failed to record fetch error", error=str(metrics_exc))
        self.logger.warning("Query fetch failed", query=name, key=key, error=str(exc))

    def _discard_task(self, slot: SlotKey, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if self._in_flight.get(slot) is task:
            del self._in_flight[slot]

    def _schedule_stale_check(
        self,
        loop: asyncio.AbstractEventLoop,
        name: str,
        key: str,
        ttl: float,
        expires_at: float,
    ) -> None:
        slot = (name, key)
        previous = self._stale_checks.pop(slot, None)
        if previous is not None:
            previous.cancel()
        self._stale_checks[slot] = loop.call_later(ttl, self._stale_check_due, name, key, expires_at)

    def _stale_check_due(self, name: str, key: str, expires_at: float) -> None:
        self._stale_checks.pop((name, key), None)
        # the loop timer may fire a hair before the wall clock reaches expires_at
        self.mark_if_stale(name, key, max(self.clock(), expires_at))

    def mark_if_stale(self, name: str, key: str, now: Optional[float] = None) -> bool:
        """Republish an expired entry unchanged so subscribers notice it went stale.

        Never fetches. Returns False when the entry is missing or still fresh.
        """
        entry = self.store.get(name, key)
        if entry is None or not entry.is_expired(self.clock() if now is None else now):
            return False

        self.store.touch(name, key)
        self._record("query_cache_stale_marks_total", query=name)
        self.logger.debug("Marked entry stale", query=name, key=key)
        return True

    def expire(self, name: str, key: str) -> bool:
        """Force the entry for (name, key) to be expired, keeping its data.

        Unknown queries and keys are ignored.
        """
        if self.store.get(name, key) is None:
            return False

        self.store.commit(name, key, expires_at=self.clock())
        self._record("query_cache_invalidations_total", query=name)
        self.logger.debug("Invalidated entry", query=name, key=key)
        return True

    def invalidate(self, query: Optional[str] = None, key: Optional[str] = None, params: Any = None) -> int:
        """Invalidate everything, one query, or one entry. Returns the number of entries expired."""
        return self.invalidation.invalidate(query, key=key, params=params)

    def invalidate_where(self, query: str, match: Mapping[str, Any]) -> int:
        """Invalidate entries of ``query`` whose parameters contain ``match``."""
        return self.invalidation.invalidate_where(query, match)

    def result(self, name: str, key: str) -> Optional[CacheEntry]:
        """Read an entry without triggering a fetch."""
        self.registry.get(name)
        return self.store.get(name, key)

    def subscribe(self, name: str, key: str, listener: Listener) -> Callable[[], None]:
        """Call ``listener(query, key, entry)`` after every change to (name, key)."""
        self.registry.get(name)
        return self.store.subscribe(name, key, listener)

    async def resolve(self, name: str, params: Any = None, key: Optional[str] = None) -> CacheEntry:
        """Query and wait for the fetch it started (or joined) to settle."""
        if params is None:
            params = {}
        if key is None:
            key = serialize(params)
        self.query(name, params, key)

        task = self._in_flight.get((name, key))
        if task is not None:
            await asyncio.shield(task)
        return self.store.get(name, key)

    async def drain(self) -> None:
        """Wait until no fetch is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Cancel pending stale checks. In-flight fetches are left to settle."""
        for handle in self._stale_checks.values():
            handle.cancel()
        self._stale_checks.clear()
        self.logger.debug("Coordinator closed", in_flight=len(self._tasks))

    def _record_fetch(self, name: str, status: str, started: float) -> None:
        self._record("query_cache_fetch_total", query=name, status=status)
        if self.metrics is None:
            return
        try:
            self.metrics.observe_histogram(
                "query_cache_fetch_duration_seconds",
                time.perf_counter() - started,
                query=name,
            )
        except Exception as exc:  # pragma: no cover - metrics failures never break the cache
            self.logger.debug("Failed to record fetch duration", error=str(exc))

    def _record(self, metric_name: str, **labels: Any) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.increment_counter(metric_name, **labels)
        except Exception as exc:  # pragma: no cover - metrics failures never break the cache
            self.logger.debug("Failed to record metric", metric=metric_name, error=str(exc))
