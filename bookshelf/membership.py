"""Add books to reading lists and move them between lists."""
import logging
from typing import Optional

from bookshelf.buckets import Collections
from bookshelf.database import BOOK_LISTS_TABLE
from bookshelf.errors import AlreadyInList, InvalidListName, NotAuthenticated, NotInList, RowStoreError
from bookshelf.models import ListName, MembershipRow

logger = logging.getLogger(__name__)


class ListMembershipMutator:
    """
    Writes membership rows to the row store.

    The store enforces one row per (user, book); a second add for the same
    book is reported as AlreadyInList rather than a failure.
    """

    def __init__(self, row_store):
        self.row_store = row_store

    async def add(self, user_id: Optional[str], item_id: str, list_name) -> MembershipRow:
        """
        Put a book on one of the user's lists.

        Args:
            user_id: Signed-in user's id, None when signed out
            item_id: Catalog volume id
            list_name: One of the ListName values

        Returns:
            The stored row

        Raises:
            NotAuthenticated: if there is no user
            InvalidListName: if the list name is not allowed
            AlreadyInList: if the book is already on one of the user's lists
            RowStoreError: for any other storage failure
        """
        if not user_id:
            raise NotAuthenticated()
        target = ListName.parse(list_name)

        row = MembershipRow(user_id=user_id, book_id=item_id, list_name=target)
        try:
            stored = await self.row_store.insert(BOOK_LISTS_TABLE, row.to_record())
        except RowStoreError as e:
            if e.is_unique_violation:
                logger.info(f"Book {item_id} is already listed for user {user_id}")
                raise AlreadyInList(item_id) from e
            if e.is_check_violation:
                raise InvalidListName(target.value) from e
            raise

        logger.info(f"Added book {item_id} to '{target.value}' for user {user_id}")
        return MembershipRow.from_record({**row.to_record(), **stored})

    async def move(
        self,
        user_id: Optional[str],
        item_id: str,
        from_list,
        to_list,
        collections: Optional[Collections] = None
    ) -> bool:
        """
        Move a book from one list to another.

        Only the list name of the (user, book) row changes. When
        ``collections`` is given, the entry moves between its named buckets
        and keeps its place in ``all``.

        Returns:
            False when the lists are the same (nothing is written)

        Raises:
            NotInList: if the user has no row for the book
        """
        if not user_id:
            raise NotAuthenticated()
        source = ListName.parse(from_list)
        target = ListName.parse(to_list)
        if source == target:
            return False

        try:
            updated = await self.row_store.update(
                BOOK_LISTS_TABLE,
                {"list_name": target.value},
                {"user_id": user_id, "book_id": item_id},
            )
        except RowStoreError as e:
            if e.is_check_violation:
                raise InvalidListName(target.value) from e
            raise
        if not updated:
            raise NotInList(item_id)

        if collections is not None:
            collections.move(item_id, source, target)

        logger.info(f"Moved book {item_id} from '{source.value}' to '{target.value}'")
        return True
