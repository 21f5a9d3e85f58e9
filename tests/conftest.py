"""Shared fakes and fixtures for bookshelf tests."""
import asyncio
import itertools
from typing import Any, Dict, List

import pytest

from bookshelf.errors import CatalogUnavailable, ItemNotFound, RowStoreError
from bookshelf.models import Book, ListName, SearchResult


def make_book(book_id: str, title: str = None) -> Book:
    return Book(book_id, title or f"Book {book_id}", [], None, None, None, [], None, "en")


class FakeRowStore:
    """In-memory book_lists table enforcing the same constraints as Postgres."""

    def __init__(self):
        self.rows: List[Dict[str, Any]] = []
        self._ids = itertools.count(1)
        self.fail_select = False

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        if row["list_name"] not in {name.value for name in ListName}:
            raise RowStoreError("violates check constraint", code=RowStoreError.CHECK_VIOLATION)
        for existing in self.rows:
            if existing["user_id"] == row["user_id"] and existing["book_id"] == row["book_id"]:
                raise RowStoreError("duplicate key value", code=RowStoreError.UNIQUE_VIOLATION)
        stored = dict(row, id=next(self._ids), created_at="2024-01-01T00:00:00")
        self.rows.append(stored)
        return dict(stored)

    async def update(self, table: str, patch: Dict[str, Any], filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        updated = []
        for row in self._matching(filters):
            row.update(patch)
            updated.append(dict(row))
        return updated

    async def select(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        if self.fail_select:
            raise RowStoreError("connection refused")
        return [dict(row) for row in self._matching(filters)]

    def _matching(self, filters):
        return [r for r in self.rows if all(r.get(k) == v for k, v in filters.items())]


class FakeCatalog:
    """Async catalog answering from a dict of books."""

    def __init__(self, books=None, unavailable=(), missing=()):
        self.books = {book.id: book for book in books or []}
        self.unavailable = set(unavailable)
        self.missing = set(missing)
        self.lookups: List[str] = []
        self.searches: List[tuple] = []
        self.total_items = 0
        self.closed = False

    async def lookup(self, item_id: str) -> Book:
        self.lookups.append(item_id)
        await asyncio.sleep(0)
        if item_id in self.unavailable:
            raise CatalogUnavailable("Catalog returned 503", status_code=503)
        if item_id in self.missing or item_id not in self.books:
            raise ItemNotFound(item_id)
        return self.books[item_id]

    async def search(self, query: str, page_size: int, start_offset: int) -> SearchResult:
        self.searches.append((query, page_size, start_offset))
        items = list(self.books.values())[start_offset:start_offset + page_size]
        return SearchResult(items=items, total_items=self.total_items or len(self.books))

    async def close(self):
        self.closed = True


@pytest.fixture
def row_store():
    return FakeRowStore()


@pytest.fixture
def catalog():
    return FakeCatalog([make_book("id1"), make_book("id2"), make_book("id3")])
