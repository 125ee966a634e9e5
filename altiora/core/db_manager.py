"""
Database Manager

Owns the process-wide persistence adapter. The backend is chosen by the
"database_backend" config key: "postgres" (asyncpg) or "memory".
"""

import logging
from typing import Optional

from altiora.core.adapter import DatabaseAdapter, MemoryAdapter, PostgresAdapter
from altiora.core.environment import EnvironmentConfig
from altiora.core.postgres_database import PostgresAsyncClient

logger = logging.getLogger("app")

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS users (
        user_id VARCHAR(32) PRIMARY KEY,
        email VARCHAR(255) NOT NULL UNIQUE,
        name VARCHAR(255) NOT NULL,
        password_hash TEXT NOT NULL,
        role VARCHAR(32) NOT NULL DEFAULT 'user',
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS access_list (
        id VARCHAR(32) PRIMARY KEY,
        email VARCHAR(255) NOT NULL UNIQUE,
        status VARCHAR(16) NOT NULL CHECK (status IN ('approved', 'pending', 'rejected')),
        added_by VARCHAR(32),
        user_id VARCHAR(32),
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_access_list_status_created ON access_list (status, created_at)",
]

_db: Optional[DatabaseAdapter] = None


async def init_database(environment: Optional[str] = None) -> DatabaseAdapter:
    """
    Create the global adapter if it does not exist yet.

    Args:
        environment (str, optional): Force specific environment (test, staging, prod)

    Returns:
        DatabaseAdapter: The active adapter
    """
    global _db
    if _db is not None:
        return _db

    config = EnvironmentConfig(environment)
    backend = config.get("database_backend", "postgres")

    if backend == "memory":
        _db = MemoryAdapter()
    elif backend == "postgres":
        client = PostgresAsyncClient(environment)
        for statement in SCHEMA_STATEMENTS:
            await client.execute(statement)
        _db = PostgresAdapter(client)
    else:
        raise ValueError(f"Unknown database backend: {backend}")

    logger.info(f"Database initialized with {backend} backend ({config.environment.value})")
    return _db


async def close_database() -> None:
    """Close and forget the global adapter."""
    global _db
    if _db is not None:
        await _db.close()
        _db = None


def set_db(adapter: Optional[DatabaseAdapter]) -> None:
    """Install a specific adapter as the global one (None resets it)."""
    global _db
    _db = adapter


def get_db() -> DatabaseAdapter:
    """
    Get the active adapter.

    Raises:
        RuntimeError: If init_database() has not run
    """
    if _db is None:
        raise RuntimeError("Database is not initialized; call init_database() first")
    return _db
