"""
Context handed to every fetch function.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

from shared.config import QueryCacheConfig

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .caching.coordinator import QueryCoordinator


@dataclass
class QueryContext:
    """Cross-cutting dependencies for fetch functions and mutations.

    ``client`` is whatever the fetch functions use to reach their upstream
    (for the bundled colors queries, a :class:`ColorsClient`). ``coordinator``
    is filled in by the coordinator that owns the context, so mutations can
    invalidate the queries they affect.
    """

    client: Any = None
    config: Optional[QueryCacheConfig] = None
    coordinator: Optional["QueryCoordinator"] = None
    extras: Dict[str, Any] = field(default_factory=dict)
