"""Data models for books, reading lists and sessions."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from bookshelf.errors import InvalidListName


@dataclass(frozen=True)
class Book:
    """Normalized book representation."""
    id: str
    title: str
    authors: List[str]
    published_date: Optional[str]
    description: Optional[str]
    page_count: Optional[int]
    categories: List[str]
    thumbnail: Optional[str]
    language: str
    subtitle: Optional[str] = None
    publisher: Optional[str] = None
    identifiers: Dict[str, str] = field(default_factory=dict)
    preview_link: Optional[str] = None
    info_link: Optional[str] = None

    @property
    def authors_str(self) -> str:
        """Format authors as comma-separated string."""
        return ", ".join(self.authors) if self.authors else "Unknown"

    @property
    def categories_str(self) -> str:
        """Format categories as comma-separated string."""
        return ", ".join(self.categories) if self.categories else "None"


@dataclass
class SearchResult:
    """One page of search results plus the total count for the query."""
    items: List[Book]
    total_items: int


class ListName(str, Enum):
    """Reading-status lists a book can belong to."""
    WANT_TO_READ = "want-to-read"
    READING = "reading"
    FINISHED = "finished"

    @classmethod
    def parse(cls, value: Any) -> "ListName":
        """
        Convert a raw value into a ListName.

        Raises:
            InvalidListName: if the value is not one of the fixed lists
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidListName(str(value)) from None


@dataclass(frozen=True)
class MembershipRow:
    """A book's membership in one of a user's lists."""
    user_id: str
    book_id: str
    list_name: ListName
    created_at: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "MembershipRow":
        """Build a row from a ``book_lists`` record."""
        created_at = record.get("created_at")
        row_id = record.get("id")
        return cls(
            user_id=str(record["user_id"]),
            book_id=str(record["book_id"]),
            list_name=ListName.parse(record["list_name"]),
            created_at=str(created_at) if created_at is not None else None,
            id=str(row_id) if row_id is not None else None,
        )

    def to_record(self) -> Dict[str, Any]:
        """Columns written on insert; the store fills id and created_at."""
        return {
            "user_id": self.user_id,
            "book_id": self.book_id,
            "list_name": self.list_name.value,
        }


@dataclass(frozen=True)
class Session:
    """Authenticated identity issued by the auth backend."""
    user_id: str
    email: Optional[str] = None
    access_token: Optional[str] = None

    @classmethod
    def from_auth(cls, raw: Any) -> Optional["Session"]:
        """Convert a Supabase auth session into a Session (None if absent)."""
        if raw is None or getattr(raw, "user", None) is None:
            return None
        return cls(
            user_id=str(raw.user.id),
            email=raw.user.email,
            access_token=getattr(raw, "access_token", None),
        )
