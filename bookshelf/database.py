"""Row stores for reading-list membership rows."""
import asyncio
import logging
from typing import Any, Dict, List

import httpx
import psycopg2
from psycopg2 import pool, sql
from psycopg2.extras import RealDictCursor
from supabase import AsyncClient, PostgrestAPIError

from bookshelf.errors import RowStoreError
from bookshelf.models import ListName

logger = logging.getLogger(__name__)

BOOK_LISTS_TABLE = "book_lists"


class SupabaseRowStore:
    """Row store backed by Supabase's PostgREST API."""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a row and return it as stored.

        Raises:
            RowStoreError: with the SQLSTATE code on constraint violations
        """
        response = await self._execute(self.client.table(table).insert(row))
        return response.data[0] if response.data else dict(row)

    async def update(
        self,
        table: str,
        patch: Dict[str, Any],
        filters: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        """Update rows matching every filter column; returns the updated rows."""
        query = self.client.table(table).update(patch)
        for column, value in filters.items():
            query = query.eq(column, value)
        response = await self._execute(query)
        return list(response.data or [])

    async def select(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Select rows matching every filter column."""
        query = self.client.table(table).select("*")
        for column, value in filters.items():
            query = query.eq(column, value)
        response = await self._execute(query)
        return list(response.data or [])

    async def _execute(self, query):
        try:
            return await query.execute()
        except PostgrestAPIError as e:
            logger.error(f"Supabase error ({e.code}): {e.message}")
            raise RowStoreError(e.message or str(e), code=e.code) from e
        except httpx.HTTPError as e:
            logger.error(f"Supabase request failed: {e}")
            raise RowStoreError(f"Storage request failed: {e}") from e


class PostgresRowStore:
    """
    Row store talking to PostgreSQL directly, with connection pooling.

    Used for self-hosted setups where the ``book_lists`` table lives in a
    plain database. psycopg2 is blocking, so each call runs in a worker
    thread and is awaited before the caller continues. The pool is shared
    by those threads.
    """

    def __init__(self, connection_string: str, min_conn: int = 1, max_conn: int = 10):
        """
        Initialize database connection pool.

        Args:
            connection_string: PostgreSQL connection string
            min_conn: Minimum connections in pool
            max_conn: Maximum connections in pool
        """
        try:
            self.connection_pool = psycopg2.pool.ThreadedConnectionPool(
                min_conn,
                max_conn,
                connection_string
            )
        except psycopg2.Error as e:
            logger.error(f"Failed to create connection pool: {e}")
            raise RowStoreError(f"Database unavailable: {str(e).strip()}") from e
        logger.info("Database connection pool created successfully")

    def init_schema(self):
        """Create the book_lists table if it doesn't exist."""
        allowed = ", ".join(f"'{name.value}'" for name in ListName)
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute(f"""
                    CREATE TABLE IF NOT EXISTS {BOOK_LISTS_TABLE} (
                        id BIGSERIAL PRIMARY KEY,
                        user_id VARCHAR(255) NOT NULL,
                        book_id VARCHAR(255) NOT NULL,
                        list_name VARCHAR(32) NOT NULL CHECK (list_name IN ({allowed})),
                        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
                        UNIQUE (user_id, book_id)
                    )
                """)

                cur.execute(f"""
                    CREATE INDEX IF NOT EXISTS idx_book_lists_user
                    ON {BOOK_LISTS_TABLE} (user_id)
                """)

                conn.commit()
                logger.info("Database schema initialized successfully")

        finally:
            self.connection_pool.putconn(conn)

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        columns = list(row)
        statement = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            sql.Identifier(table),
            sql.SQL(", ").join(map(sql.Identifier, columns)),
            sql.SQL(", ").join(sql.Placeholder() * len(columns)),
        )
        rows = await asyncio.to_thread(self._run, statement, [row[c] for c in columns])
        return rows[0]

    async def update(
        self,
        table: str,
        patch: Dict[str, Any],
        filters: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in patch
        )
        statement = sql.SQL("UPDATE {} SET {} WHERE {} RETURNING *").format(
            sql.Identifier(table), assignments, self._where(filters)
        )
        params = list(patch.values()) + list(filters.values())
        return await asyncio.to_thread(self._run, statement, params)

    async def select(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        statement = sql.SQL("SELECT * FROM {} WHERE {} ORDER BY created_at").format(
            sql.Identifier(table), self._where(filters)
        )
        return await asyncio.to_thread(self._run, statement, list(filters.values()))

    @staticmethod
    def _where(filters: Dict[str, Any]):
        if not filters:
            return sql.SQL("TRUE")
        return sql.SQL(" AND ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in filters
        )

    def _run(self, statement, params: List[Any]) -> List[Dict[str, Any]]:
        """
        Execute one statement in its own transaction.

        Returns:
            Result rows as dicts

        Raises:
            RowStoreError: carrying the SQLSTATE of the failure
        """
        try:
            conn = self.connection_pool.getconn()
        except psycopg2.Error as e:
            # Covers an exhausted pool as well as a failed connect
            logger.error(f"Could not get a database connection: {e}")
            raise RowStoreError(f"Database unavailable: {str(e).strip()}") from e

        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(statement, params)
                rows = [dict(r) for r in cur.fetchall()] if cur.description else []
            conn.commit()
            return rows
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Database error ({e.pgcode}): {e}")
            raise RowStoreError(str(e).strip(), code=e.pgcode) from e
        finally:
            self.connection_pool.putconn(conn)

    def close(self):
        """Close all connections in the pool."""
        if self.connection_pool:
            self.connection_pool.closeall()
            logger.info("Database connection pool closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
