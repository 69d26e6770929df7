#!/usr/bin/env python3
"""Database Utilities for the Device-Lending Ledger.

This module provides database utilities including:
    - A connection context manager with acquire timeout
    - Connection pool management
    - Conversion of driver errors into the ledger exception hierarchy

Example:
    async with database_connection(pool) as conn:
        row = await conn.fetchrow("SELECT * FROM iphones WHERE id = $1", device_id)
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable

import asyncpg

from .exceptions import (
    ConnectionPoolError,
    DatabaseError,
    IntegrityError,
    TransactionError,
)

logger = logging.getLogger(__name__)

ACQUIRE_TIMEOUT_SECONDS = 30.0


# ============================================
# Connection Context Manager
# ============================================

@asynccontextmanager
async def database_connection(pool) -> AsyncIterator[Any]:
    """Simple context manager for database connection without transaction.

    Use this for reads and single statements. Only waiting for a free
    connection is bounded by ACQUIRE_TIMEOUT_SECONDS; errors raised while
    the connection is in use propagate unchanged.

    Args:
        pool: asyncpg connection pool

    Yields:
        Database connection
    """
    if pool is None:
        raise ConnectionPoolError("Database connection pool is not initialized")

    try:
        conn = await asyncio.wait_for(pool.acquire(), timeout=ACQUIRE_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        raise ConnectionPoolError(
            "Timeout acquiring database connection",
            details={"timeout_seconds": ACQUIRE_TIMEOUT_SECONDS},
        )

    try:
        yield conn
    finally:
        await pool.release(conn)


# ============================================
# Error Conversion
# ============================================

# (asyncpg class, message markers for other drivers, constraint, label)
_CONSTRAINT_VIOLATIONS = (
    (asyncpg.UniqueViolationError, ("unique", "duplicate"), "unique", "Duplicate entry"),
    (asyncpg.ForeignKeyViolationError, ("foreign key",), "foreign_key", "Foreign key violation"),
    (asyncpg.NotNullViolationError, ("not null",), "not_null", "Not null violation"),
)


def convert_db_exception(e: Exception) -> DatabaseError:
    """Convert a driver exception to the matching DatabaseError subtype.

    asyncpg errors are matched on their class (SQLSTATE), which also gives
    the violated constraint's name. Anything else falls back to matching
    the error text.
    """
    if isinstance(e, DatabaseError):
        return e

    for error_type, _, constraint, label in _CONSTRAINT_VIOLATIONS:
        if isinstance(e, error_type):
            return IntegrityError(
                f"{label}: {e}",
                constraint=constraint,
                constraint_name=e.constraint_name,
                cause=e,
            )

    if isinstance(e, asyncpg.DeadlockDetectedError):
        return TransactionError(f"Deadlock detected: {e}", operation="transaction", cause=e)

    if isinstance(e, (asyncio.TimeoutError, asyncpg.QueryCanceledError)):
        return TransactionError(f"Database operation timed out: {e}", operation="query", cause=e)

    if isinstance(e, asyncpg.PostgresError):
        return DatabaseError(
            f"Database operation failed: {e}",
            details={"sqlstate": e.sqlstate},
            cause=e,
        )

    error_str = str(e).lower()
    for _, markers, constraint, label in _CONSTRAINT_VIOLATIONS:
        if any(marker in error_str for marker in markers):
            return IntegrityError(f"{label}: {e}", constraint=constraint, cause=e)
    if "deadlock" in error_str:
        return TransactionError(f"Deadlock detected: {e}", operation="transaction", cause=e)
    if "timeout" in error_str or "timed out" in error_str:
        return TransactionError(f"Database operation timed out: {e}", operation="query", cause=e)

    return DatabaseError(f"Database operation failed: {e}", cause=e)


# ============================================
# Connection Pool Helpers
# ============================================

APPLICATION_NAME = "device-lending-ledger"


async def create_pool(
    database_url: str,
    min_size: int = 2,
    max_size: int = 10,
    command_timeout: float = 60.0,
    application_name: str = APPLICATION_NAME,
    **kwargs,
):
    """Create the ledger's connection pool.

    Sessions are tagged with application_name so they can be told apart
    in pg_stat_activity.

    Args:
        database_url: PostgreSQL connection string
        min_size: Minimum pool connections
        max_size: Maximum pool connections
        command_timeout: Default query timeout in seconds
        application_name: Name reported by every session
        **kwargs: Additional asyncpg.create_pool arguments

    Returns:
        asyncpg.Pool instance

    Raises:
        ConnectionPoolError: If pool creation fails
    """
    try:
        pool = await asyncpg.create_pool(
            database_url,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
            server_settings={"application_name": application_name},
            **kwargs,
        )
    except Exception as e:
        raise ConnectionPoolError(
            f"Failed to create database pool: {e}",
            cause=e,
        )

    logger.info(f"Ledger pool created (min={min_size}, max={max_size}, app={application_name})")
    return pool


async def close_pool(pool, timeout: float = 10.0):
    """Close the pool, terminating it if connections are not returned in time."""
    if pool is None:
        return

    try:
        await asyncio.wait_for(pool.close(), timeout=timeout)
    except Exception as e:
        logger.warning(f"Ledger pool did not close cleanly ({e!r}), terminating")
        pool.terminate()
        return

    logger.info("Ledger pool closed")


# ============================================
# Health Check
# ============================================

async def check_database_health(pool, tables: Iterable[str] = ()) -> dict[str, Any]:
    """Report connectivity, pool usage and any missing ledger tables.

    The database is healthy when it answers and every table in tables
    exists.
    """
    if pool is None:
        return {"healthy": False, "error": "Pool not initialized"}

    tables = list(tables)
    try:
        async with database_connection(pool) as conn:
            alive = await conn.fetchval("SELECT 1") == 1
            missing = []
            if tables:
                rows = await conn.fetch(
                    "SELECT name FROM unnest($1::text[]) AS name WHERE to_regclass(name) IS NULL",
                    tables,
                )
                missing = sorted(row["name"] for row in rows)
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return {"healthy": False, "error": str(e)}

    pool_size = pool.get_size()
    pool_free = pool.get_idle_size()
    health = {
        "healthy": alive and not missing,
        "pool_size": pool_size,
        "pool_free": pool_free,
        "pool_used": pool_size - pool_free,
    }
    if missing:
        health["missing_tables"] = missing
    return health


__all__ = [
    "database_connection",
    "convert_db_exception",
    "create_pool",
    "close_pool",
    "check_database_health",
]
