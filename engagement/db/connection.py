"""Pooled PostgreSQL connections for the document store"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from engagement.config import DATABASE_URL, DB_POOL_MIN_SIZE, DB_POOL_MAX_SIZE
from engagement.exceptions import ConnectionError

logger = logging.getLogger(__name__)


class Database:
    """
    Owns the AsyncConnectionPool behind PostgresDocumentStore

    The pool is opened by the hosting application (init_pool) before the
    first store call and closed on shutdown. Connections come back with
    dict rows so documents read as plain dicts.
    """

    def __init__(
        self,
        connection_string: str = DATABASE_URL,
        min_size: int = DB_POOL_MIN_SIZE,
        max_size: int = DB_POOL_MAX_SIZE,
    ):
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[AsyncConnectionPool] = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    async def init_pool(self) -> None:
        """Open the pool; calling it again on an open pool is a no-op"""
        if self._pool is not None:
            return
        logger.info(f"Opening document store pool (min={self.min_size}, max={self.max_size})")
        pool = AsyncConnectionPool(
            self.connection_string,
            min_size=self.min_size,
            max_size=self.max_size,
            open=False
        )
        await pool.open()
        self._pool = pool

    async def close_pool(self) -> None:
        if self._pool:
            logger.info("Closing document store pool")
            await self._pool.close()
            self._pool = None

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Borrow a connection for one store operation

        Raises:
            ConnectionError: if init_pool() has not been awaited
        """
        if not self._pool:
            raise ConnectionError("Document store pool is not open; await init_pool() first",
                                  operation="connection")

        async with self._pool.connection() as conn:
            conn.row_factory = dict_row
            yield conn


# Shared instance used by PostgresDocumentStore by default
db = Database()
