"""Resolve a user's membership rows into bucketed collections."""
import asyncio
import contextlib
import logging
from typing import Any, Dict, List, Optional, Tuple

from bookshelf.buckets import Collections
from bookshelf.database import BOOK_LISTS_TABLE
from bookshelf.errors import AggregationFailed, BookshelfError, RowStoreError
from bookshelf.models import Book, MembershipRow

logger = logging.getLogger(__name__)


class CollectionAggregator:
    """Builds Collections by looking up every listed book in the catalog."""

    def __init__(self, catalog, row_store, max_concurrent: Optional[int] = None):
        """
        Args:
            catalog: Async catalog client exposing ``lookup``
            row_store: Row store exposing ``select``
            max_concurrent: Bound on concurrent lookups (None for unbounded)
        """
        self.catalog = catalog
        self.row_store = row_store
        self.max_concurrent = max_concurrent

    async def aggregate(self, user_id: str) -> Collections:
        """
        Fetch the user's rows and resolve each to its book.

        Lookups run concurrently. A failed lookup drops that row and is
        recorded in ``Collections.unresolved``; it never aborts the rest.

        Raises:
            AggregationFailed: if the rows themselves cannot be fetched
        """
        try:
            records = await self.row_store.select(BOOK_LISTS_TABLE, {"user_id": user_id})
        except RowStoreError as e:
            logger.error(f"Failed to load lists for user {user_id}: {e}")
            raise AggregationFailed(f"Could not load your collections: {e}") from e

        collections = Collections()
        rows = self._parse_rows(records)

        semaphore = asyncio.Semaphore(self.max_concurrent) if self.max_concurrent else None
        results = await asyncio.gather(*(self._resolve(row, semaphore) for row in rows))

        for row, book, reason in results:
            if book is None:
                collections.unresolved.append((row, reason))
            else:
                collections.add(row, book)

        logger.info(
            f"Aggregated {len(collections)} of {len(rows)} books for user {user_id}"
        )
        return collections

    def _parse_rows(self, records: List[Dict[str, Any]]) -> List[MembershipRow]:
        rows = []
        for record in records:
            try:
                rows.append(MembershipRow.from_record(record))
            except (BookshelfError, KeyError) as e:
                logger.warning(f"Skipping malformed list row {record!r}: {e}")
        return rows

    async def _resolve(
        self,
        row: MembershipRow,
        semaphore: Optional[asyncio.Semaphore]
    ) -> Tuple[MembershipRow, Optional[Book], str]:
        guard = semaphore if semaphore is not None else contextlib.nullcontext()
        async with guard:
            try:
                book = await self.catalog.lookup(row.book_id)
            except BookshelfError as e:
                logger.warning(f"Could not load details for book {row.book_id}: {e}")
                return row, None, str(e)
        return row, book, ""
