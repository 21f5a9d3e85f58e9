"""Parse and normalize Google Books API responses."""
import logging
from typing import Dict, Any, List, Optional

from bookshelf.errors import ItemNotFound
from bookshelf.models import Book, SearchResult

logger = logging.getLogger(__name__)


def parse_book(item: Dict[str, Any]) -> Optional[Book]:
    """
    Parse a single book item from Google Books API.

    Args:
        item: Single item from Google Books API response

    Returns:
        Book object or None if parsing fails
    """
    try:
        volume_info = item.get("volumeInfo") or {}

        # Extract fields with safe defaults
        book_id = item.get("id", "")
        if not book_id:
            return None

        # Extract thumbnail (prefer higher quality)
        image_links = volume_info.get("imageLinks") or {}
        thumbnail = image_links.get("thumbnail") or image_links.get("smallThumbnail")

        identifiers = {
            entry.get("type", ""): entry.get("identifier", "")
            for entry in volume_info.get("industryIdentifiers") or []
        }

        return Book(
            id=book_id,
            title=volume_info.get("title", "Unknown Title"),
            authors=list(volume_info.get("authors") or []),
            published_date=volume_info.get("publishedDate"),
            description=volume_info.get("description"),
            page_count=volume_info.get("pageCount"),
            categories=list(volume_info.get("categories") or []),
            thumbnail=thumbnail,
            language=volume_info.get("language", "en"),
            subtitle=volume_info.get("subtitle"),
            publisher=volume_info.get("publisher"),
            identifiers=identifiers,
            preview_link=volume_info.get("previewLink"),
            info_link=volume_info.get("infoLink"),
        )
    except (AttributeError, TypeError) as e:
        # Log but don't crash - APIs can be unpredictable
        logger.warning(f"Failed to parse book: {e}")
        return None


def parse_books_response(response_json: Dict[str, Any]) -> List[Book]:
    """
    Parse the items of a search response.

    Args:
        response_json: Complete API response JSON

    Returns:
        List of Book objects (empty if no items found)
    """
    items = response_json.get("items")
    if not isinstance(items, list):
        return []

    books = []
    for item in items:
        book = parse_book(item)
        if book:
            books.append(book)

    return books


def parse_search_response(response_json: Dict[str, Any]) -> SearchResult:
    """
    Parse a search response into a SearchResult.

    A response without an ``items`` list is a valid empty page; the total
    falls back to 0. Otherwise a missing total falls back to the number of
    items returned.
    """
    items = response_json.get("items")
    if not isinstance(items, list):
        logger.info("Search returned no items")
        return SearchResult(items=[], total_items=int(response_json.get("totalItems") or 0))

    books = deduplicate_books(parse_books_response(response_json))
    total = response_json.get("totalItems") or len(items)
    return SearchResult(items=books, total_items=int(total))


def parse_volume(item_id: str, response_json: Any) -> Book:
    """
    Parse a single-volume lookup response.

    Raises:
        ItemNotFound: if the payload lacks volume details
    """
    if not isinstance(response_json, dict) or not response_json.get("volumeInfo"):
        raise ItemNotFound(item_id)

    payload = dict(response_json)
    payload.setdefault("id", item_id)
    book = parse_book(payload)
    if book is None:
        raise ItemNotFound(item_id)
    return book


def deduplicate_books(books: List[Book]) -> List[Book]:
    """
    Remove duplicate books by ID.

    Args:
        books: List of Book objects

    Returns:
        Deduplicated list of books
    """
    seen_ids = set()
    unique_books = []

    for book in books:
        if book.id not in seen_ids:
            seen_ids.add(book.id)
            unique_books.append(book)

    return unique_books
