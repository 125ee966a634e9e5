"""
PostgreSQL Async Database Client

This module provides an async PostgreSQL client with connection pooling
and the small set of query methods the persistence adapter builds on.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import asyncpg
from asyncpg import Pool

from altiora.core.environment import get_database_connection_string

logger = logging.getLogger("app")


class PostgresAsyncClient:
    """Async PostgreSQL client with connection pooling."""

    def __init__(self, environment: Optional[str] = None, connection_string: Optional[str] = None):
        """
        Initialize PostgreSQL async client with environment support.

        Args:
            environment (str, optional): Environment name (test, staging, prod).
                                        If None, auto-detect from environment variables.
            connection_string (str, optional): Explicit DSN, bypasses environment lookup.
        """
        self.environment = environment
        self.connection_string = connection_string or get_database_connection_string(environment)

        self._pool: Optional[Pool] = None
        self._init_lock: Optional[asyncio.Lock] = None
        self._pool_loop_id: Optional[int] = None  # Event loop the pool was created in

    def _get_init_lock(self) -> asyncio.Lock:
        """Get or create the initialization lock (lazy initialization)"""
        if self._init_lock is None:
            self._init_lock = asyncio.Lock()
        return self._init_lock

    def _is_pool_valid(self) -> bool:
        """Check if the pool exists and is bound to the current event loop"""
        if self._pool is None:
            return False
        try:
            current_loop_id = id(asyncio.get_running_loop())
        except RuntimeError:
            return False
        if self._pool_loop_id is not None and self._pool_loop_id != current_loop_id:
            return False
        return not self._pool.is_closing()

    async def init_pool(self):
        """Initialize connection pool (async-safe, event-loop aware)"""
        if self._is_pool_valid():
            return

        async with self._get_init_lock():
            # Double-check after acquiring lock
            if self._is_pool_valid():
                return

            if self._pool is not None:
                # Pool belongs to a dead loop; terminate without awaiting it
                self._pool.terminate()
                self._pool = None
                self._pool_loop_id = None

            self._pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=1,
                max_size=20,
                command_timeout=60,
                statement_cache_size=0,
            )
            self._pool_loop_id = id(asyncio.get_running_loop())
            logger.info("PostgreSQL pool initialized")

    async def close(self):
        """Close the database connection pool"""
        if self._pool is None:
            return
        async with self._get_init_lock():
            if self._pool:
                await self._pool.close()
                self._pool = None
                self._pool_loop_id = None

    @asynccontextmanager
    async def get_connection(self):
        """Get a database connection from the pool (auto-initializes if needed)"""
        await self.init_pool()

        if not self._pool or not self._is_pool_valid():
            raise RuntimeError("Failed to initialize database connection pool")

        async with self._pool.acquire() as connection:
            yield connection

    # ================== Simple Query Methods ==================

    async def read(self, query: str, *args: Any) -> List[Dict[str, Any]]:
        """
        Execute a SELECT query and return results as list of dictionaries

        Args:
            query (str): SQL SELECT query with $1, $2, etc. placeholders
            *args: Parameters for the query placeholders

        Returns:
            List[Dict[str, Any]]: Query results as list of dictionaries
        """
        async with self.get_connection() as conn:
            rows = await conn.fetch(query, *args)
            return [dict(row) for row in rows]

    async def read_one(self, query: str, *args: Any) -> Optional[Dict[str, Any]]:
        """
        Execute a SELECT query and return first result as dictionary

        Returns:
            Optional[Dict[str, Any]]: First row, or None if no result
        """
        async with self.get_connection() as conn:
            row = await conn.fetchrow(query, *args)
            return dict(row) if row else None

    async def insert_one(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a single record into a table and return the stored row.

        Args:
            table (str): Table name
            data (Dict[str, Any]): Column names mapped to values

        Returns:
            Dict[str, Any]: The inserted row
        """
        columns = list(data.keys())
        placeholders = [f"${i}" for i in range(1, len(columns) + 1)]

        query = f"""
            INSERT INTO {table} ({', '.join(columns)})
            VALUES ({', '.join(placeholders)})
            RETURNING *
        """

        async with self.get_connection() as conn:
            row = await conn.fetchrow(query, *data.values())
            return dict(row)

    async def execute(self, query: str, *args: Any) -> str:
        """
        Execute an INSERT, UPDATE, DELETE or DDL statement

        Returns:
            str: Result status from the database (e.g., "UPDATE 1")
        """
        async with self.get_connection() as conn:
            return await conn.execute(query, *args)
