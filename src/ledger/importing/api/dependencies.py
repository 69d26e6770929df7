"""FastAPI dependency injection for the ledger API.

This module provides dependency injection functions that create
and return adapter instances for use in API endpoints.

Lifecycle Management:
- Database pool: Initialized at startup, shared across requests
- Closed at application shutdown

This avoids creating new connections per request.
"""

import logging
import os
from typing import Optional

import asyncpg

from ...api.database import close_pool, create_pool
from ...api.exceptions import ConfigurationError
from ..adapters import OpenpyxlRowSource, PostgresLedgerStore
from ..domain.ports import ILedgerStore, IRowSource

logger = logging.getLogger(__name__)

# ========== Global State ==========

# Global connection pool (initialized on startup)
_db_pool: Optional[asyncpg.Pool] = None


async def init_db_pool():
    """Initialize the database connection pool.

    Should be called on application startup.

    Raises:
        ConfigurationError: If DATABASE_URL is not set
    """
    global _db_pool

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise ConfigurationError(
            "DATABASE_URL environment variable is required",
            missing_keys=["DATABASE_URL"],
        )

    _db_pool = await create_pool(
        database_url,
        min_size=int(os.getenv("DB_POOL_MIN_SIZE", "2")),
        max_size=int(os.getenv("DB_POOL_MAX_SIZE", "10")),
        command_timeout=float(os.getenv("DB_COMMAND_TIMEOUT", "60")),
    )


async def close_db_pool():
    """Close the database connection pool.

    Should be called on application shutdown.
    """
    global _db_pool
    if _db_pool:
        await close_pool(_db_pool)
        _db_pool = None


def get_db_pool() -> Optional[asyncpg.Pool]:
    """Get the database connection pool, or None before startup."""
    return _db_pool


# ========== Dependency Functions ==========


def get_row_source() -> IRowSource:
    """Get a spreadsheet row source instance."""
    return OpenpyxlRowSource()


def get_ledger_store() -> ILedgerStore:
    """Get a ledger store instance."""
    pool = get_db_pool()
    if pool is None:
        raise RuntimeError("Database pool not initialized. Call init_db_pool() first.")
    return PostgresLedgerStore(pool)
