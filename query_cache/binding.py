"""
Read accessors that bind view code to coordinator queries.
"""

from typing import Any, Callable, Dict, Mapping, Optional

from .caching.cache_store import CacheEntry, Listener
from .caching.coordinator import QueryCoordinator
from .caching.key_codec import serialize


ParamsFactory = Callable[[], Any]


class QueryBinding:
    """``data``/``loading``/``error`` accessors for one query.

    Every read re-issues ``coordinator.query`` with fresh parameters from
    ``params_factory``, so reading is also what keeps the value fresh.
    """

    def __init__(self, coordinator: QueryCoordinator, name: str, params_factory: Optional[ParamsFactory] = None):
        self.coordinator = coordinator
        self.name = name
        self.params_factory = params_factory or dict

    @property
    def key(self) -> str:
        return serialize(self.params_factory())

    @property
    def state(self) -> CacheEntry:
        params = self.params_factory()
        return self.coordinator.query(self.name, params, serialize(params))

    @property
    def data(self) -> Any:
        return self.state.data

    @property
    def loading(self) -> bool:
        return self.state.loading

    @property
    def error(self) -> Optional[BaseException]:
        return self.state.error

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Subscribe to changes of the entry selected by the current parameters."""
        return self.coordinator.subscribe(self.name, self.key, listener)

    def __repr__(self) -> str:
        return f"QueryBinding(name={self.name!r})"


def map_queries(coordinator: QueryCoordinator, bindings: Mapping[str, ParamsFactory]) -> Dict[str, QueryBinding]:
    """Build a :class:`QueryBinding` per query name, e.g.
    ``map_queries(coordinator, {"colors": lambda: {"page": view.page}})``.
    """
    return {name: QueryBinding(coordinator, name, factory) for name, factory in bindings.items()}
