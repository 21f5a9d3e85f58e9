"""Async HTTP client for concurrent catalog requests."""
import asyncio
import contextlib
import httpx
from typing import Optional, Dict, Any
import logging

from bookshelf.client import BASE_URL, build_search_params, lookup_params, volume_url
from bookshelf.errors import CatalogUnavailable
from bookshelf.models import Book, SearchResult
from bookshelf.parse import parse_search_response, parse_volume

logger = logging.getLogger(__name__)


class AsyncCatalogClient:
    """Async client for Google Books search and lookup."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: int = 10,
        max_concurrent: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize async client.

        Args:
            api_key: Optional API key
            timeout: Request timeout
            max_concurrent: Maximum concurrent requests (None for unbounded)
            transport: Optional httpx transport, e.g. a MockTransport
        """
        self.api_key = api_key
        self.timeout = timeout
        self.semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent else None

        # Create async HTTP client
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def search(
        self,
        query: str,
        page_size: int = 20,
        start_offset: int = 0
    ) -> SearchResult:
        """
        Search for books asynchronously.

        Args:
            query: Search query
            page_size: Results per page
            start_offset: Pagination offset

        Returns:
            SearchResult for the requested page
        """
        params = build_search_params(query, page_size, start_offset, self.api_key)
        logger.info(f"Async search: {query} (index={start_offset})")
        return parse_search_response(await self._get_json(BASE_URL, params))

    async def lookup(self, item_id: str) -> Book:
        """Fetch a single book by its volume id."""
        data = await self._get_json(volume_url(item_id), lookup_params(self.api_key))
        return parse_volume(item_id, data)

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        # Use semaphore to limit concurrency when configured
        guard = self.semaphore if self.semaphore is not None else contextlib.nullcontext()
        async with guard:
            try:
                response = await self.client.get(url, params=params)
            except httpx.HTTPError as e:
                logger.error(f"Async request failed: {e}")
                raise CatalogUnavailable(f"Catalog request failed: {e}") from e

        if response.status_code != 200:
            logger.warning(f"Status {response.status_code} for {url}")
            raise CatalogUnavailable(
                f"Catalog returned {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise CatalogUnavailable("Invalid response from catalog", status_code=200) from e

        if not isinstance(data, dict):
            raise CatalogUnavailable("Invalid response from catalog", status_code=200)
        return data

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
