"""
Database connection module for the task agent.

Provides an async PostgreSQL connection pool using asyncpg. The pool is only
created when DATABASE_URL is configured; otherwise the in-memory store is used.
"""

import logging
import os
import pathlib
from contextlib import asynccontextmanager
from typing import Optional

import asyncpg

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
DB_POOL_MIN = int(os.getenv("DB_POOL_MIN", "2"))
DB_POOL_MAX = int(os.getenv("DB_POOL_MAX", "10"))

# Connection pool singleton
_pool: Optional[asyncpg.Pool] = None


async def init_db_pool(
    dsn: str = DATABASE_URL,
    min_size: int = DB_POOL_MIN,
    max_size: int = DB_POOL_MAX,
    command_timeout: float = 60.0,
) -> asyncpg.Pool:
    """
    Initialize the database connection pool.

    Should be called once at application startup.
    """
    global _pool

    if _pool is not None:
        logger.warning("Database pool already initialized")
        return _pool

    logger.info(f"Initializing database pool (min={min_size}, max={max_size})")

    try:
        _pool = await asyncpg.create_pool(
            dsn,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
        )
    except Exception as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise

    logger.info("Database pool initialized")
    return _pool


async def close_db_pool() -> None:
    """Close the pool at application shutdown."""
    global _pool

    if _pool is None:
        return

    logger.info("Closing database pool")
    await _pool.close()
    _pool = None


def get_pool() -> asyncpg.Pool:
    """
    Get the database connection pool.

    Raises RuntimeError if pool is not initialized.
    """
    if _pool is None:
        raise RuntimeError(
            "Database pool not initialized. Call init_db_pool() first."
        )
    return _pool


@asynccontextmanager
async def get_connection():
    """
    Acquire a connection from the pool.

    Usage:
        async with get_connection() as conn:
            rows = await conn.fetch("SELECT * FROM tasks")
    """
    pool = get_pool()
    async with pool.acquire() as connection:
        yield connection


@asynccontextmanager
async def transaction(isolation: str = "read_committed", readonly: bool = False):
    """Acquire a connection and run the block inside one transaction."""
    async with get_connection() as conn:
        async with conn.transaction(isolation=isolation, readonly=readonly):
            yield conn


async def execute(query: str, *args) -> str:
    """Execute a query and return the status."""
    async with get_connection() as conn:
        return await conn.execute(query, *args)


async def fetchrow(query: str, *args):
    """Execute a query and return the first row."""
    async with get_connection() as conn:
        return await conn.fetchrow(query, *args)


async def fetchval(query: str, *args):
    """Execute a query and return the first column of the first row."""
    async with get_connection() as conn:
        return await conn.fetchval(query, *args)


async def init_schema() -> None:
    """Apply schema.sql (idempotent, every statement uses IF NOT EXISTS)."""
    schema_path = pathlib.Path(__file__).parent / "schema.sql"

    if not schema_path.exists():
        raise FileNotFoundError(f"Schema file not found: {schema_path}")

    logger.info(f"Initializing database schema from {schema_path}")

    async with get_connection() as conn:
        await conn.execute(schema_path.read_text())


async def health_check() -> dict:
    try:
        await fetchval("SELECT 1")
        return {
            "status": "healthy",
            "database": "connected",
            "pool_size": _pool.get_size() if _pool else 0,
            "pool_free": _pool.get_idle_size() if _pool else 0,
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(e),
        }
