"""
The ``colors`` query and the mutation that invalidates it.
"""

from typing import Any, Dict

from shared.logging import get_logger
from ..context import QueryContext
from ..registry import QueryDefinition, QueryRegistry


COLORS_QUERY = "colors"
COLORS_TTL_SECONDS = 5 * 60

COLORS_DEFAULT: Dict[str, Any] = {"colors": [], "meta": {"next": None, "prev": None}}

logger = get_logger("query_cache.domain.colors")


async def fetch_colors(context: QueryContext, params: Dict[str, Any]) -> Dict[str, Any]:
    """Fetch one page of colors through ``context.client``."""
    return await context.client.get_page(params["page"])


def build_colors_registry(ttl: float = COLORS_TTL_SECONDS) -> QueryRegistry:
    return QueryRegistry({
        COLORS_QUERY: QueryDefinition(
            name=COLORS_QUERY,
            fetch=fetch_colors,
            default=COLORS_DEFAULT,
            ttl=ttl,
        ),
    })


async def delete_color(context: QueryContext, name: str) -> int:
    """Delete a color upstream, then invalidate every cached colors page.

    Returns the number of cached pages invalidated.
    """
    await context.client.delete_color(name)
    invalidated = context.coordinator.invalidate(COLORS_QUERY)
    logger.info("Invalidated colors after delete", name=name, pages=invalidated)
    return invalidated
