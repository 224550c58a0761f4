"""
Static registry of cacheable queries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from shared.errors import ConfigurationError, UnknownQueryError

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .context import QueryContext


FetchFunction = Callable[["QueryContext", Any], Any]


@dataclass(frozen=True)
class QueryDefinition:
    """A named, parameterized read operation.

    ``fetch`` is called as ``fetch(context, params)`` and usually returns an
    awaitable. ``ttl`` is in seconds and overrides the coordinator default.
    """

    name: str
    fetch: FetchFunction
    default: Any = None
    ttl: Optional[float] = None


class QueryRegistry:
    """Immutable mapping of query name to :class:`QueryDefinition`.

    Values may be full definitions or bare fetch callables; a bare callable is
    registered with a ``None`` default and the coordinator TTL.
    """

    def __init__(self, queries: Mapping[str, Union[QueryDefinition, FetchFunction]]):
        self._definitions: Dict[str, QueryDefinition] = {}
        for name, value in queries.items():
            self._definitions[name] = self._normalize(name, value)

    @staticmethod
    def _normalize(name: str, value: Union[QueryDefinition, FetchFunction]) -> QueryDefinition:
        if isinstance(value, QueryDefinition):
            definition = value
            if definition.name != name:
                raise ConfigurationError(
                    "Query definition registered under a different name",
                    {"query": name, "definition_name": definition.name},
                )
        elif callable(value):
            definition = QueryDefinition(name=name, fetch=value)
        else:
            raise ConfigurationError(
                "Query must be a QueryDefinition or a fetch callable",
                {"query": name, "type": type(value).__name__},
            )

        if not callable(definition.fetch):
            raise ConfigurationError("Query fetch is not callable", {"query": name})
        if definition.ttl is not None and definition.ttl <= 0:
            raise ConfigurationError("Query ttl must be positive", {"query": name, "ttl": definition.ttl})
        return definition

    def get(self, name: str) -> QueryDefinition:
        """Return the definition for ``name`` or raise :class:`UnknownQueryError`."""
        try:
            return self._definitions[name]
        except KeyError:
            raise UnknownQueryError(name) from None

    def names(self) -> List[str]:
        return list(self._definitions.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)
