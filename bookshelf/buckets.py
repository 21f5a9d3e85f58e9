"""In-memory reading-list buckets built from membership rows."""
import itertools
from dataclasses import dataclass, replace
from typing import Dict, Iterator, List, Optional, Tuple, Union

from bookshelf.models import Book, ListName, MembershipRow

ALL_BUCKET = "all"
BUCKET_NAMES = [name.value for name in ListName] + [ALL_BUCKET]


@dataclass
class CollectionEntry:
    """A membership row paired with its resolved book."""
    row: MembershipRow
    book: Book

    @property
    def book_id(self) -> str:
        return self.row.book_id

    @property
    def list_name(self) -> ListName:
        return self.row.list_name


class Collections:
    """
    A user's books grouped by reading list.

    Entries are held once, indexed by book id, in the order they were added;
    that order is the ``all`` bucket. Each named bucket is a view over the
    same entries ordered by when the entry joined that list, so an entry is
    always in exactly one named bucket and in ``all``.
    """

    def __init__(self):
        self._entries: Dict[str, CollectionEntry] = {}
        self._joined: Dict[str, int] = {}
        self._sequence = itertools.count()
        # Rows whose book could not be resolved, with the reason
        self.unresolved: List[Tuple[MembershipRow, str]] = []

    def add(self, row: MembershipRow, book: Book) -> CollectionEntry:
        """Add or replace the entry for ``row.book_id``."""
        entry = CollectionEntry(row=row, book=book)
        self._entries[row.book_id] = entry
        self._joined[row.book_id] = next(self._sequence)
        return entry

    def get(self, book_id: str) -> Optional[CollectionEntry]:
        return self._entries.get(book_id)

    def bucket(self, name: Union[str, ListName]) -> List[CollectionEntry]:
        """
        Entries of one bucket.

        Args:
            name: A list name or ``"all"``

        Raises:
            InvalidListName: if the name is neither
        """
        if name == ALL_BUCKET:
            return list(self._entries.values())

        list_name = ListName.parse(name)
        members = [e for e in self._entries.values() if e.list_name == list_name]
        members.sort(key=lambda e: self._joined[e.book_id])
        return members

    def counts(self) -> Dict[str, int]:
        """Number of entries per bucket, including ``all``."""
        return {name: len(self.bucket(name)) for name in BUCKET_NAMES}

    def move(self, book_id: str, from_list: ListName, to_list: ListName) -> Optional[CollectionEntry]:
        """
        Move an entry between named buckets.

        The entry keeps its place in ``all``; only its row's list name
        changes. Nothing happens if the entry is not in ``from_list``.

        Returns:
            The updated entry, or None if nothing moved
        """
        entry = self._entries.get(book_id)
        if entry is None or entry.list_name != from_list:
            return None

        entry.row = replace(entry.row, list_name=to_list)
        self._joined[book_id] = next(self._sequence)
        return entry

    def __contains__(self, book_id: str) -> bool:
        return book_id in self._entries

    def __iter__(self) -> Iterator[CollectionEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)
