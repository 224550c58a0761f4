#!/usr/bin/env python3
"""
Query a colors API through the cache coordinator.

Resolves one page, reads it again from cache, optionally deletes a color
(which invalidates every cached page) and prints the resulting entries.
"""

import argparse
import asyncio
import json
from typing import Any, Dict, Optional
import sys
import os

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from shared.config import get_config  # noqa: E402
from shared.logging import configure_logging, get_logger  # noqa: E402
from shared.metrics import get_metrics_collector  # noqa: E402
from query_cache import QueryContext, QueryCoordinator  # noqa: E402
from query_cache.adapters import ColorsClient  # noqa: E402
from query_cache.domain.colors import COLORS_QUERY, build_colors_registry, delete_color  # noqa: E402


def _entry_summary(entry) -> Dict[str, Any]:
    return {
        "data": entry.data,
        "loading": entry.loading,
        "error": str(entry.error) if entry.error else None,
        "expires_at": entry.expires_at,
    }


async def run(*, base_url: str, page: int, delete: Optional[str], ttl: float, metrics_port: Optional[int]) -> Dict[str, Any]:
    """Run the demo flow and return a summary."""
    overrides: Dict[str, Any] = {"api_base_url": base_url, "default_ttl_seconds": ttl}
    if metrics_port is not None:
        overrides["enable_metrics"] = True
    config = get_config(**overrides)
    logger = get_logger("query_cache.scripts.colors_demo")

    metrics = None
    if config.enable_metrics:
        metrics = get_metrics_collector()
        if metrics_port is not None:
            metrics.start_metrics_server(metrics_port)

    async with ColorsClient(config.api_base_url, timeout=config.http_timeout_seconds) as client:
        coordinator = QueryCoordinator(
            build_colors_registry(ttl=config.default_ttl_seconds),
            config=config,
            context=QueryContext(client=client, config=config),
            metrics=metrics,
        )
        params = {"page": page}
        try:
            initial = coordinator.query(COLORS_QUERY, params)
            resolved = await coordinator.resolve(COLORS_QUERY, params)
            cached = coordinator.query(COLORS_QUERY, params)
            summary: Dict[str, Any] = {
                "initial": _entry_summary(initial),
                "resolved": _entry_summary(resolved),
                "served_from_cache": cached is resolved,
            }

            if delete:
                summary["invalidated"] = await delete_color(coordinator.context, delete)
                summary["after_delete"] = _entry_summary(await coordinator.resolve(COLORS_QUERY, params))
        finally:
            coordinator.close()

    logger.info("Colors demo finished", page=page, deleted=delete)
    return summary


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Query a colors API through the query cache.")
    parser.add_argument("--base-url", default=os.getenv("QUERY_CACHE_API_BASE_URL", "http://localhost:8080"), help="Colors API base URL")
    parser.add_argument("--page", type=int, default=1, help="Page to query")
    parser.add_argument("--delete", default=None, help="Color to delete after the first read")
    parser.add_argument("--ttl", type=float, default=300.0, help="Cache TTL in seconds")
    parser.add_argument("--metrics-port", type=int, default=None, help="Enable metrics and expose them on this port (QUERY_CACHE_ENABLE_METRICS enables them without a server)")
    parser.add_argument("--log-level", default=os.getenv("QUERY_CACHE_LOG_LEVEL", "info"), help="Log level")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    configure_logging("query_cache", args.log_level)
    summary = asyncio.run(run(
        base_url=args.base_url,
        page=args.page,
        delete=args.delete,
        ttl=args.ttl,
        metrics_port=args.metrics_port,
    ))
    print(json.dumps(summary, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
