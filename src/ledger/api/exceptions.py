#!/usr/bin/env python3
"""Exception Hierarchy for the Device-Lending Ledger.

This module provides a structured exception hierarchy for errors raised by
the import engine, the reassignment-history recorder and the persistence
adapters.

Design Principles:
    - All exceptions inherit from LedgerError base class
    - Exceptions preserve context (original error, timestamps, details)
    - Exceptions are categorized by recoverability
    - Row-level validation problems are NOT exceptions; they are collected
      as Violation values and reported once per batch

Exception Hierarchy:
    LedgerError (base)
    ├── ConfigurationError (unrecoverable - fix config)
    ├── ImportAbortedError (batch-level, zero rows processed)
    │   ├── StructuralError
    │   └── BoundsError
    └── DatabaseError (may be recoverable)
        ├── ConnectionPoolError
        ├── TransactionError
        ├── IntegrityError
        ├── RecordNotFoundError
        └── HistoryWriteError
"""
from datetime import datetime, timezone
from typing import Any, Optional

# ============================================
# Base Exception
# ============================================

class LedgerError(Exception):
    """Base exception for all ledger errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "STRUCTURAL_ERROR")
        details: Additional context as a dictionary
        timestamp: When the error occurred
        cause: The original exception that caused this error
        recoverable: Whether this error might be recoverable with retry
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        self.cause = cause
        self.recoverable = recoverable

        if cause:
            self.__cause__ = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.insert(0, f"[{self.code}]")
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================
# Configuration Errors (Unrecoverable)
# ============================================

class ConfigurationError(LedgerError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list[str]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


# ============================================
# Import Errors (batch-level aborts)
# ============================================

class ImportAbortedError(LedgerError):
    """Base class for errors that stop a whole import batch.

    Nothing has been written when one of these is raised.
    """

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", False)
        super().__init__(message, **kwargs)


class StructuralError(ImportAbortedError):
    """Raised when the sheet's headers do not satisfy the import contract."""

    def __init__(
        self,
        message: str,
        headers: Optional[list[str]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if headers:
            details["headers"] = headers
        self.headers = list(headers or [])
        super().__init__(
            message,
            code="STRUCTURAL_ERROR",
            details=details,
            **kwargs,
        )


class BoundsError(ImportAbortedError):
    """Raised when a row carries data outside the declared columns."""

    def __init__(
        self,
        message: str,
        row_number: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if row_number is not None:
            details["row_number"] = row_number
        self.row_number = row_number
        super().__init__(
            message,
            code="BOUNDS_ERROR",
            details=details,
            **kwargs,
        )


# ============================================
# Database Errors
# ============================================

class DatabaseError(LedgerError):
    """Base class for persistence errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class ConnectionPoolError(DatabaseError):
    """Raised when database connection pool is exhausted or unavailable."""

    def __init__(
        self,
        message: str = "Database connection pool error",
        **kwargs,
    ):
        super().__init__(message, code="CONNECTION_POOL_ERROR", **kwargs)


class TransactionError(DatabaseError):
    """Raised when database transaction fails."""

    def __init__(
        self,
        message: str = "Database transaction failed",
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        super().__init__(
            message,
            code="TRANSACTION_ERROR",
            details=details,
            **kwargs,
        )


class IntegrityError(DatabaseError):
    """Raised when database integrity constraint is violated."""

    def __init__(
        self,
        message: str = "Database integrity error",
        constraint: Optional[str] = None,
        constraint_name: Optional[str] = None,
        **kwargs,
    ):
        self.constraint = constraint
        self.constraint_name = constraint_name
        details = kwargs.pop("details", {})
        if constraint:
            details["constraint"] = constraint
        if constraint_name:
            details["constraint_name"] = constraint_name
        super().__init__(
            message,
            code="INTEGRITY_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


class RecordNotFoundError(DatabaseError):
    """Raised when a ledger record does not exist."""

    def __init__(
        self,
        kind: str,
        record_id: Any,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details.update({"kind": kind, "record_id": str(record_id)})
        super().__init__(
            f"{kind} record {record_id} not found",
            code="RECORD_NOT_FOUND",
            details=details,
            recoverable=False,
            **kwargs,
        )


class HistoryWriteError(DatabaseError):
    """Raised when a usage-history row could not be written.

    Callers log this and carry on with the primary update.
    """

    def __init__(
        self,
        message: str = "Failed to write usage history",
        device_id: Any = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if device_id is not None:
            details["device_id"] = str(device_id)
        super().__init__(
            message,
            code="HISTORY_WRITE_ERROR",
            details=details,
            **kwargs,
        )


__all__ = [
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
]
