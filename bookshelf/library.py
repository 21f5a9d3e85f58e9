"""Wires the catalog, auth backend and reading lists together."""
import logging
from typing import Optional

from supabase import AsyncClient, acreate_client

from bookshelf.aggregator import CollectionAggregator
from bookshelf.async_client import AsyncCatalogClient
from bookshelf.auth import AuthGateway, SessionState
from bookshelf.buckets import Collections
from bookshelf.config import Config
from bookshelf.database import PostgresRowStore, SupabaseRowStore
from bookshelf.errors import AggregationFailed, BackendNotConfigured, NotAuthenticated
from bookshelf.membership import ListMembershipMutator
from bookshelf.models import MembershipRow, Session
from bookshelf.pagination import PaginationController

logger = logging.getLogger(__name__)


async def connect_backend(config: Config) -> Optional[AsyncClient]:
    """
    Create the Supabase client.

    Returns None, after a warning, when credentials are missing so that
    sign-in and lists switch off instead of failing at start-up.
    """
    if not config.has_backend:
        logger.warning(
            "Supabase credentials are not configured; sign-in and reading lists are disabled"
        )
        return None
    return await acreate_client(config.SUPABASE_URL, config.SUPABASE_ANON_KEY)


def create_row_store(config: Config, backend: Optional[AsyncClient]):
    """Pick the row store named by ROW_STORE (None when unavailable)."""
    if config.ROW_STORE == "postgres":
        return PostgresRowStore(config.DATABASE_URL)
    if backend is None:
        return None
    return SupabaseRowStore(backend)


class Library:
    """
    Application state for one user session.

    Search works without a backend; reading lists need both a row store
    and a signed-in user.
    """

    def __init__(self, catalog, auth: AuthGateway, row_store=None, page_size: int = 20, lookup_concurrency: Optional[int] = None):
        self.catalog = catalog
        self.auth = auth
        self.row_store = row_store
        self.pagination = PaginationController(catalog, page_size=page_size)
        self.aggregator = CollectionAggregator(catalog, row_store, max_concurrent=lookup_concurrency)
        self.mutator = ListMembershipMutator(row_store)
        self.collections: Optional[Collections] = None
        self._last_user_id = auth.state.user_id
        self._session_subscription = auth.on_session_change(self._on_session_change)

    @classmethod
    async def create(cls, config: Config) -> "Library":
        """Build a Library from configuration and load the current session."""
        backend = await connect_backend(config)
        catalog = AsyncCatalogClient(
            api_key=config.GOOGLE_BOOKS_API_KEY,
            timeout=config.DEFAULT_TIMEOUT,
        )
        auth = AuthGateway(backend, SessionState())
        library = cls(
            catalog,
            auth,
            row_store=create_row_store(config, backend),
            page_size=config.PAGE_SIZE,
            lookup_concurrency=config.LOOKUP_CONCURRENCY,
        )
        await auth.start()
        return library

    @property
    def session(self) -> Optional[Session]:
        return self.auth.get_current_session()

    def _on_session_change(self, session: Optional[Session]):
        user_id = session.user_id if session else None
        if user_id != self._last_user_id:
            # Lists belong to the previous user
            self.collections = None
        self._last_user_id = user_id

    def _require_row_store(self):
        if self.row_store is None:
            raise BackendNotConfigured()
        return self.row_store

    async def search(self, query: str, page: int = 1):
        return await self.pagination.run_query(query, page)

    async def browse(self):
        return await self.pagination.browse()

    async def go_to_page(self, page: int):
        return await self.pagination.go_to_page(page)

    async def open_collections(self) -> Collections:
        """
        Rebuild the signed-in user's collections.

        Raises:
            NotAuthenticated: if nobody is signed in
            AggregationFailed: if the rows cannot be fetched
        """
        self._require_row_store()
        if self.session is None:
            raise NotAuthenticated("Sign in to see your collections")
        self.collections = await self.aggregator.aggregate(self.session.user_id)
        return self.collections

    async def add_to_list(self, item_id: str, list_name) -> MembershipRow:
        """
        Store a membership row and refresh open collections.

        The row is stored even when the refresh fails; the collections then
        keep their previous contents until the next ``open_collections``.
        """
        self._require_row_store()
        user_id = self.session.user_id if self.session else None
        row = await self.mutator.add(user_id, item_id, list_name)
        if self.collections is not None:
            try:
                await self.open_collections()
            except AggregationFailed as e:
                logger.warning(f"Added {item_id} but could not refresh collections: {e}")
        return row

    async def move(self, item_id: str, from_list, to_list) -> bool:
        self._require_row_store()
        user_id = self.session.user_id if self.session else None
        return await self.mutator.move(user_id, item_id, from_list, to_list, self.collections)

    async def close(self):
        self._session_subscription.unsubscribe()
        self.auth.close()
        if isinstance(self.row_store, PostgresRowStore):
            self.row_store.close()
        await self.catalog.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
