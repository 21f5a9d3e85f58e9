"""Paged search state over the catalog client."""
import logging
import math
from typing import Dict, List, Optional

from bookshelf.client import MAX_PAGE_SIZE, build_search_params
from bookshelf.errors import BookshelfError
from bookshelf.models import Book, SearchResult

logger = logging.getLogger(__name__)

# Browse without a specific term; the API ranks matches on its own
WILDCARD_QUERY = "*"

CATEGORIES: Dict[str, str] = {
    "all": WILDCARD_QUERY,
    "fantasy": "fantasy",
    "mystery": "mystery",
    "romance": "romance",
    "scifi": "scifi",
    "history": "history",
}


class PaginationController:
    """
    Tracks the current query and page and re-runs searches on navigation.

    Every ``run_query`` takes a new request token. When a response arrives
    after a newer request was issued it is discarded, so the displayed page
    always belongs to the most recent request.
    """

    def __init__(self, catalog, page_size: int = 20):
        """
        Args:
            catalog: Async catalog client exposing ``search``
            page_size: Results per page, at most the API limit of 40
        """
        if not 0 < page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {page_size}")
        self.catalog = catalog
        self.page_size = page_size
        self.current_query = ""
        self.current_page = 1
        self.total_items = 0
        self.items: List[Book] = []
        self.loading = False
        self.error: Optional[str] = None
        self._request_token = 0

    @property
    def last_page(self) -> int:
        return math.ceil(self.total_items / self.page_size)

    @property
    def show_pagination(self) -> bool:
        """Pagination controls are hidden for empty and single-page results."""
        return self.last_page > 1

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.last_page

    def start_offset(self, page: int) -> int:
        return (page - 1) * self.page_size

    async def run_query(self, query: str, page: int = 1) -> Optional[SearchResult]:
        """
        Search for ``query`` and show the given page.

        Stale results are cleared before the request is sent. If a newer
        request is issued while this one is in flight, this one's outcome is
        dropped and None is returned.

        Raises:
            InvalidQuery: if the query is blank (state is left untouched)
            CatalogUnavailable: if the latest request fails
        """
        start_offset = self.start_offset(page)
        build_search_params(query, self.page_size, start_offset)

        self._request_token += 1
        token = self._request_token

        self.current_query = query
        self.current_page = page
        self.items = []
        self.loading = True
        self.error = None

        try:
            result = await self.catalog.search(query, self.page_size, start_offset)
        except BookshelfError as e:
            if token != self._request_token:
                logger.info(f"Ignoring failure of superseded search '{query}': {e}")
                return None
            self.loading = False
            self.error = str(e)
            raise

        if token != self._request_token:
            logger.info(f"Discarding superseded results for '{query}' (page {page})")
            return None

        self.items = result.items
        self.total_items = result.total_items
        self.loading = False
        return result

    async def go_to_page(self, page: int) -> Optional[SearchResult]:
        """Show another page of the current query; out-of-range pages are ignored."""
        if page < 1 or page > self.last_page:
            return None
        return await self.run_query(self.current_query, page)

    async def next_page(self) -> Optional[SearchResult]:
        return await self.go_to_page(self.current_page + 1)

    async def prev_page(self) -> Optional[SearchResult]:
        return await self.go_to_page(self.current_page - 1)

    async def browse(self) -> Optional[SearchResult]:
        """Load the default wildcard listing."""
        return await self.run_query(WILDCARD_QUERY)

    async def search_category(self, category: str) -> Optional[SearchResult]:
        """
        Run the query behind a category shortcut.

        Raises:
            KeyError: if the category is unknown
        """
        return await self.run_query(CATEGORIES[category])
