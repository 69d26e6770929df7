"""Shared infrastructure for the device-lending ledger.

Exceptions:
    LedgerError: Base exception for all ledger errors
    ConfigurationError: Missing or invalid configuration
    ImportAbortedError: A whole import batch was rejected
    StructuralError: Sheet headers do not match the import contract
    BoundsError: Data found right of the last header
    DatabaseError: Database operation failures
    RecordNotFoundError: A ledger record does not exist
    HistoryWriteError: A usage-history row could not be written

Database:
    create_pool / close_pool: Connection pool lifecycle
    database_connection: Connection context manager
    check_database_health: Connectivity and schema check for /health
"""
from .database import (
    check_database_health,
    close_pool,
    convert_db_exception,
    create_pool,
    database_connection,
)
from .exceptions import (
    BoundsError,
    ConfigurationError,
    ConnectionPoolError,
    DatabaseError,
    HistoryWriteError,
    ImportAbortedError,
    IntegrityError,
    LedgerError,
    RecordNotFoundError,
    StructuralError,
    TransactionError,
)

__all__ = [
    # Exceptions
    "LedgerError",
    "ConfigurationError",
    "ImportAbortedError",
    "StructuralError",
    "BoundsError",
    "DatabaseError",
    "ConnectionPoolError",
    "TransactionError",
    "IntegrityError",
    "RecordNotFoundError",
    "HistoryWriteError",
    # Database
    "create_pool",
    "close_pool",
    "database_connection",
    "convert_db_exception",
    "check_database_health",
]
