"""
Integration tests for the colors query flow: coordinator + colors client + bindings.
"""

import httpx
from unittest.mock import AsyncMock
import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from query_cache import QueryContext, QueryCoordinator, QueryDefinition, map_queries
from query_cache.adapters import ColorsClient
from query_cache.domain.colors import (
    COLORS_DEFAULT,
    COLORS_QUERY,
    COLORS_TTL_SECONDS,
    build_colors_registry,
    delete_color,
)


BASE_URL = "https://colors.example.com"


class FakeColorsApi:
    """In-memory colors API served through httpx.MockTransport."""

    def __init__(self):
        self.pages = {1: ["red", "green"], 2: ["blue"]}
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        path = request.url.path
        if request.method == "GET" and path.endswith(".json"):
            page = int(path.rsplit("/", 1)[-1].split(".")[0])
            if page not in self.pages:
                return httpx.Response(404)
            return httpx.Response(200, json={
                "colors": self.pages[page],
                "meta": {"next": page + 1 if page + 1 in self.pages else None, "prev": page - 1 or None},
            })
        if request.method == "DELETE":
            name = path.rsplit("/", 1)[-1]
            for colors in self.pages.values():
                if name in colors:
                    colors.remove(name)
                    return httpx.Response(204)
            return httpx.Response(404)
        return httpx.Response(405)

    def get_count(self) -> int:
        return sum(1 for method, _ in self.requests if method == "GET")


class TestColorsFlow:
    """End-to-end flow over a fake colors API."""

    @pytest.fixture
    def api(self):
        """Fake colors API."""
        return FakeColorsApi()

    @pytest.fixture
    def coordinator(self, api):
        """Coordinator wired to the fake API."""
        http = httpx.AsyncClient(transport=httpx.MockTransport(api.handler))
        client = ColorsClient(BASE_URL, client=http)
        return QueryCoordinator(build_colors_registry(), context=QueryContext(client=client))

    @pytest.mark.asyncio
    async def test_first_query_returns_default_then_resolves(self, coordinator, api):
        """The first read serves the default; once fetched, reads serve the page."""
        first = coordinator.query(COLORS_QUERY, {"page": 1})
        assert first.data == COLORS_DEFAULT
        assert first.loading is False

        await coordinator.drain()

        second = coordinator.query(COLORS_QUERY, {"page": 1})
        assert second.data["colors"] == ["red", "green"]
        assert second.data["meta"] == {"next": 2, "prev": None}
        assert second.loading is False
        assert second.error is None
        assert api.get_count() == 1

    def test_colors_ttl(self, coordinator):
        """The colors query caches for five minutes."""
        assert COLORS_TTL_SECONDS == 300
        assert coordinator.registry.get(COLORS_QUERY).ttl == 300

    @pytest.mark.asyncio
    async def test_delete_invalidates_all_pages(self, coordinator, api):
        """Deleting a color expires every cached page; the next read refetches."""
        await coordinator.resolve(COLORS_QUERY, {"page": 1})
        await coordinator.resolve(COLORS_QUERY, {"page": 2})

        invalidated = await delete_color(coordinator.context, "red")
        assert invalidated == 2

        stale = coordinator.query(COLORS_QUERY, {"page": 1})
        assert stale.data["colors"] == ["red", "green"]

        await coordinator.drain()
        assert coordinator.query(COLORS_QUERY, {"page": 1}).data["colors"] == ["green"]
        assert api.get_count() == 3

    @pytest.mark.asyncio
    async def test_missing_page_records_error(self, coordinator):
        """Upstream errors land in the entry and keep the default data."""
        entry = await coordinator.resolve(COLORS_QUERY, {"page": 9})

        assert entry.error is not None
        assert entry.error.code == "EXTERNAL_SERVICE_ERROR"
        assert entry.data == COLORS_DEFAULT
        assert entry.loading is False

    @pytest.mark.asyncio
    async def test_bindings_follow_page(self, coordinator):
        """Bindings re-key when the params factory changes."""
        view = {"page": 1}
        bindings = map_queries(coordinator, {COLORS_QUERY: lambda: {"page": view["page"]}})
        colors = bindings[COLORS_QUERY]

        assert colors.data == COLORS_DEFAULT
        await coordinator.drain()
        assert colors.data["colors"] == ["red", "green"]

        view["page"] = 2
        assert colors.data == COLORS_DEFAULT
        await coordinator.drain()
        assert colors.data["colors"] == ["blue"]
        assert colors.loading is False

    @pytest.mark.asyncio
    async def test_invalidate_where_page(self, coordinator, api):
        """Pattern invalidation only refetches matching pages."""
        await coordinator.resolve(COLORS_QUERY, {"page": 1})
        await coordinator.resolve(COLORS_QUERY, {"page": 2})

        assert coordinator.invalidate_where(COLORS_QUERY, {"page": 2}) == 1
        coordinator.query(COLORS_QUERY, {"page": 1})
        coordinator.query(COLORS_QUERY, {"page": 2})
        await coordinator.drain()

        assert api.get_count() == 3


class TestColorsScenario:
    """The colors scenario with a stubbed fetch function."""

    @pytest.mark.asyncio
    async def test_default_then_fetched_page(self):
        """First read returns the default synchronously; after the fetch, the page."""
        fetch = AsyncMock(return_value={"colors": ["red"], "meta": {"next": 2, "prev": None}})
        coordinator = QueryCoordinator(
            {COLORS_QUERY: QueryDefinition(name=COLORS_QUERY, fetch=fetch, default=COLORS_DEFAULT, ttl=300)},
        )

        first = coordinator.query(COLORS_QUERY, {"page": 1})
        assert first.data == {"colors": [], "meta": {"next": None, "prev": None}}
        fetch.assert_called_once_with(coordinator.context, {"page": 1})

        await coordinator.drain()
        second = coordinator.query(COLORS_QUERY, {"page": 1})

        assert second.data["colors"] == ["red"]
        assert fetch.call_count == 1
        coordinator.close()
