"""HTTP client for the Google Books API."""
import requests
from typing import Optional, Dict, Any
from urllib.parse import quote
import logging

from bookshelf.errors import CatalogUnavailable, InvalidQuery
from bookshelf.models import Book, SearchResult
from bookshelf.parse import parse_search_response, parse_volume

logger = logging.getLogger(__name__)

BASE_URL = "https://www.googleapis.com/books/v1/volumes"
MAX_PAGE_SIZE = 40  # API limit


def build_search_params(
    query: str,
    page_size: int,
    start_offset: int,
    api_key: Optional[str] = None
) -> Dict[str, Any]:
    """
    Validate search arguments and build query parameters.

    Args:
        query: Search text; the wildcard ``*`` is passed through as-is
        page_size: Results per page (clamped to the API limit)
        start_offset: Zero-based index of the first result

    Raises:
        InvalidQuery: if the query is blank
        ValueError: if page_size or start_offset is out of range
    """
    if not query or not query.strip():
        raise InvalidQuery()
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    if start_offset < 0:
        raise ValueError(f"start_offset must not be negative, got {start_offset}")

    params = {
        "q": query.strip(),
        "maxResults": min(page_size, MAX_PAGE_SIZE),
        "startIndex": start_offset
    }

    if api_key:
        params["key"] = api_key

    return params


def volume_url(item_id: str) -> str:
    """URL of a single volume."""
    return f"{BASE_URL}/{quote(item_id, safe='')}"


def lookup_params(api_key: Optional[str] = None) -> Dict[str, Any]:
    """Query parameters for a single-volume lookup."""
    return {"key": api_key} if api_key else {}


class CatalogClient:
    """Blocking client for Google Books search and lookup."""

    def __init__(self, api_key: Optional[str] = None, timeout: int = 10):
        """
        Initialize Google Books API client.

        Args:
            api_key: Optional API key (increases rate limits)
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.timeout = timeout

        # Create session for connection pooling
        self.session = requests.Session()

    def search(
        self,
        query: str,
        page_size: int = 20,
        start_offset: int = 0
    ) -> SearchResult:
        """
        Search for books.

        Args:
            query: Search query string
            page_size: Maximum results to return (1-40)
            start_offset: Pagination offset

        Returns:
            SearchResult for the requested page

        Raises:
            InvalidQuery: if the query is blank
            CatalogUnavailable: on transport failure or non-success response
        """
        params = build_search_params(query, page_size, start_offset, self.api_key)
        logger.info(f"Searching: {query} (index={start_offset})")
        return parse_search_response(self._get_json(BASE_URL, params))

    def lookup(self, item_id: str) -> Book:
        """
        Fetch a single book by its volume id.

        Raises:
            CatalogUnavailable: on transport failure or non-success response
            ItemNotFound: if the response has no volume details
        """
        url = volume_url(item_id)
        logger.info(f"Looking up volume {item_id}")
        return parse_volume(item_id, self._get_json(url, lookup_params(self.api_key)))

    def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Make a GET request and decode the JSON object it returns.

        Raises:
            CatalogUnavailable: on any transport, status or decoding failure
        """
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request to {url} failed: {e}")
            raise CatalogUnavailable(f"Catalog request failed: {e}") from e

        if response.status_code != 200:
            logger.warning(f"Status {response.status_code} for {url}")
            raise CatalogUnavailable(
                f"Catalog returned {response.status_code}: {response.reason}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise CatalogUnavailable("Invalid response from catalog", status_code=200) from e

        if not isinstance(data, dict):
            raise CatalogUnavailable("Invalid response from catalog", status_code=200)
        return data

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
