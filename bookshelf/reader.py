"""Paged text view of a book's details."""
import re
from typing import List

from bookshelf.models import Book

MAX_CONTENT_LENGTH = 5000
EMPTY_CONTENT = "Content not available for this book."

_TAG_RE = re.compile(r"<[^>]+>")
_PARAGRAPH_RE = re.compile(r"\n\n+|\n(?=\S)")


def build_reader_text(book: Book) -> str:
    """Render title, metadata, description and links as plain text."""
    text = ""
    if book.title:
        text += f"# {book.title}\n\n"
        if book.subtitle:
            text += f"## {book.subtitle}\n\n"

    metadata = [
        book.authors and f"Authors: {', '.join(book.authors)}",
        book.published_date and f"Published: {book.published_date}",
        book.publisher and f"Publisher: {book.publisher}",
        book.categories and f"Categories: {', '.join(book.categories)}",
        book.page_count and f"Pages: {book.page_count}",
    ]
    metadata_text = "\n".join(line for line in metadata if line)
    if metadata_text:
        text += f"{metadata_text}\n\n"

    if book.description:
        description = re.sub(r"\n{2,}", "\n\n", _TAG_RE.sub("", book.description))
        text += f"## Description\n\n{description}\n\n"

    if book.preview_link:
        text += f"\n\nPreview: {book.preview_link}"
    if book.info_link:
        text += f"\nMore information: {book.info_link}"

    return text


def truncate(text: str, limit: int = MAX_CONTENT_LENGTH) -> str:
    """Cut text on a paragraph boundary so it fits ``limit``, marking the cut."""
    if len(text) <= limit:
        return text

    kept = ""
    for paragraph in _PARAGRAPH_RE.split(text):
        if len(kept + paragraph) > limit:
            break
        kept += paragraph + "\n\n"
    return kept.strip() + "..."


def build_reader_pages(book: Book) -> List[str]:
    """One page per paragraph of the rendered details."""
    text = truncate(build_reader_text(book))
    pages = [
        re.sub(r"\n+", " ", paragraph).strip()
        for paragraph in re.split(r"\n{2,}", text)
    ]
    pages = [page for page in pages if page]
    return pages or [EMPTY_CONTENT]


class BookReader:
    """Steps through a book's pages; the cursor never leaves the page range."""

    def __init__(self, book: Book):
        self.book = book
        self.pages = build_reader_pages(book)
        self.current_page = 0

    @property
    def page(self) -> str:
        return self.pages[self.current_page]

    def next_page(self) -> str:
        self.current_page = min(self.current_page + 1, len(self.pages) - 1)
        return self.page

    def prev_page(self) -> str:
        self.current_page = max(self.current_page - 1, 0)
        return self.page
