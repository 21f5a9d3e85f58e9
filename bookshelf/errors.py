"""Error types raised by the bookshelf services."""
from typing import Optional


class BookshelfError(Exception):
    """Base class for all user-facing bookshelf errors."""


class InvalidQuery(BookshelfError):
    """Search text is empty after trimming whitespace."""

    def __init__(self, message: str = "Please enter a search term"):
        super().__init__(message)


class CatalogUnavailable(BookshelfError):
    """The catalog API could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ItemNotFound(BookshelfError):
    """A lookup answered without the expected volume details."""

    def __init__(self, item_id: str):
        super().__init__(f"Book details not available for {item_id}")
        self.item_id = item_id


class NotAuthenticated(BookshelfError):
    def __init__(self, message: str = "Sign in to manage your lists"):
        super().__init__(message)


class InvalidListName(BookshelfError):
    def __init__(self, list_name: str):
        super().__init__(f"Invalid list name: {list_name}")
        self.list_name = list_name


class NotInList(BookshelfError):
    """A move named a book the user has no membership row for."""

    def __init__(self, item_id: str):
        super().__init__(f"Book {item_id} is not in your lists")
        self.item_id = item_id


class AlreadyInList(BookshelfError):
    """The user already has a membership row for this book."""

    def __init__(self, item_id: str):
        super().__init__("This book is already in your lists")
        self.item_id = item_id


class AggregationFailed(BookshelfError):
    """The user's membership rows could not be fetched."""


class AuthError(BookshelfError):
    """Authentication failed; the message is safe to show to the user."""


class BackendNotConfigured(BookshelfError):
    def __init__(self, message: str = "Supabase credentials are not configured"):
        super().__init__(message)


class RowStoreError(BookshelfError):
    """
    Row store operation failed.

    ``code`` carries the PostgreSQL SQLSTATE when the store reported one,
    e.g. ``23505`` for a unique violation.
    """

    UNIQUE_VIOLATION = "23505"
    CHECK_VIOLATION = "23514"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code

    @property
    def is_unique_violation(self) -> bool:
        return self.code == self.UNIQUE_VIOLATION

    @property
    def is_check_violation(self) -> bool:
        return self.code == self.CHECK_VIOLATION
