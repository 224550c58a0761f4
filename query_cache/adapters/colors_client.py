"""
HTTP client for the colors API used by the bundled ``colors`` query.
"""

from typing import Any, Dict, Optional

import httpx

from shared.errors import ExternalServiceError
from shared.logging import get_logger
from shared.retry import RetryConfig, retry_on_exception


class ColorsClient:
    """Thin async wrapper around the colors endpoints."""

    def __init__(self, base_url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip('/')
        self.logger = get_logger("query_cache.colors_client")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def __aenter__(self) -> "ColorsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @retry_on_exception((httpx.TransportError,), config=RetryConfig(max_attempts=3, base_delay=0.5, max_delay=5.0))
    async def get_page(self, page: int) -> Dict[str, Any]:
        """Fetch one page of colors: ``{"colors": [...], "meta": {"next": ..., "prev": ...}}``."""
        response = await self._client.get(f"{self.base_url}/colors/{page}.json")
        self._raise_for_status(response, "get_page", page=page)
        self.logger.debug("Colors page retrieved", page=page)
        return response.json()

    async def delete_color(self, name: str) -> None:
        """Delete a color by name."""
        response = await self._client.delete(f"{self.base_url}/colors/{name}")
        self._raise_for_status(response, "delete_color", name=name)
        self.logger.info("Color deleted", name=name)

    def _raise_for_status(self, response: httpx.Response, operation: str, **fields: Any) -> None:
        if response.is_success:
            return

        self.logger.error(
            "Colors request failed",
            operation=operation,
            status_code=response.status_code,
            response=response.text,
            **fields
        )
        raise ExternalServiceError(
            "colors",
            f"{operation} failed with status {response.status_code}",
            {"status_code": response.status_code, **fields},
        )
