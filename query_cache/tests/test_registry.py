"""
Unit tests for the query registry.
"""

import pytest
from unittest.mock import AsyncMock

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from query_cache.registry import QueryDefinition, QueryRegistry
from shared.errors import ConfigurationError, UnknownQueryError


class TestQueryRegistry:
    """Test cases for QueryRegistry."""

    def test_full_definitions(self):
        """Definitions are kept as given."""
        fetch = AsyncMock()
        definition = QueryDefinition(name="search", fetch=fetch, default=[], ttl=30)
        registry = QueryRegistry({"search": definition})

        assert registry.get("search") is definition
        assert "search" in registry
        assert len(registry) == 1

    def test_shorthand_query_defaults_to_none(self):
        """A bare callable becomes a definition with a None default and no TTL."""
        fetch = AsyncMock()
        registry = QueryRegistry({"short": fetch})

        definition = registry.get("short")
        assert definition.name == "short"
        assert definition.fetch is fetch
        assert definition.default is None
        assert definition.ttl is None

    def test_names_preserve_order(self):
        """names() lists queries in registration order."""
        registry = QueryRegistry({"b": AsyncMock(), "a": AsyncMock()})
        assert registry.names() == ["b", "a"]
        assert list(registry) == ["b", "a"]

    def test_unknown_query(self):
        """Unknown names raise UnknownQueryError."""
        registry = QueryRegistry({})
        with pytest.raises(UnknownQueryError) as exc_info:
            registry.get("other")
        assert exc_info.value.code == "UNKNOWN_QUERY"
        assert exc_info.value.query == "other"

    def test_mismatched_name_rejected(self):
        """A definition must be registered under its own name."""
        with pytest.raises(ConfigurationError):
            QueryRegistry({"search": QueryDefinition(name="other", fetch=AsyncMock())})

    def test_non_callable_rejected(self):
        """Values must be definitions or callables."""
        with pytest.raises(ConfigurationError):
            QueryRegistry({"search": "not a fetch"})
        with pytest.raises(ConfigurationError):
            QueryRegistry({"search": QueryDefinition(name="search", fetch=None)})

    @pytest.mark.parametrize("ttl", [0, -1])
    def test_non_positive_ttl_rejected(self, ttl):
        """TTL overrides must be positive."""
        with pytest.raises(ConfigurationError):
            QueryRegistry({"search": QueryDefinition(name="search", fetch=AsyncMock(), ttl=ttl)})
