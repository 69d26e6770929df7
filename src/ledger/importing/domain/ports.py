"""Port interfaces for the ledger import engine.

These are abstract interfaces (ports) that define how the domain
interacts with external systems. Concrete implementations (adapters)
are provided in the adapters module.

This follows the Hexagonal Architecture pattern.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from .entities import LedgerRecord, RecordKind, SheetData, UsageHistoryRecord


class IRowSource(ABC):
    """Port for turning an uploaded file into rows.

    Implementations decide the file format; the engine only ever sees
    SheetData.
    """

    @abstractmethod
    def read(self, content: bytes, header_row: int = 1) -> SheetData:
        """Read headers and data rows from file content.

        Args:
            content: Raw file bytes
            header_row: 1-based row number holding the headers

        Returns:
            SheetData with the headers and every row below them

        Raises:
            ValueError: If the file cannot be read
        """
        ...


class ILedgerStore(ABC):
    """Port for ledger persistence.

    Implementations might use PostgreSQL, in-memory storage, etc.
    Failures are raised as LedgerError subclasses.
    """

    @abstractmethod
    async def list_existing(self, kind: RecordKind) -> list[dict[str, Any]]:
        """List the key columns of every persisted record of a kind.

        This is a projection, not a record listing: an import only needs
        the keys to seed duplicate detection (and address codes for the
        reference check), so full rows are never loaded.

        Args:
            kind: Ledger kind

        Returns:
            One dict per record holding only the kind's KEY_FIELDS,
            keyed by field name
        """
        ...

    @abstractmethod
    async def insert(self, kind: RecordKind, record: LedgerRecord) -> LedgerRecord:
        """Persist a new record.

        Args:
            kind: Ledger kind
            record: Record to insert (id is ignored)

        Returns:
            The stored record, with its assigned id
        """
        ...

    @abstractmethod
    async def update(
        self,
        kind: RecordKind,
        record_id: UUID,
        patch: dict[str, Any],
    ) -> LedgerRecord:
        """Apply a partial update.

        Args:
            kind: Ledger kind
            record_id: Record to update
            patch: Field name to new value

        Returns:
            The updated record

        Raises:
            RecordNotFoundError: If no such record exists
        """
        ...

    @abstractmethod
    async def fetch_by_id(
        self,
        kind: RecordKind,
        record_id: UUID,
    ) -> Optional[LedgerRecord]:
        """Fetch one record.

        Returns:
            The record if found, None otherwise
        """
        ...

    @abstractmethod
    async def insert_history(
        self,
        kind: RecordKind,
        history: UsageHistoryRecord,
    ) -> UsageHistoryRecord:
        """Append a usage-history row for a device.

        Raises:
            HistoryWriteError: If the row could not be written
        """
        ...

    @abstractmethod
    async def list_history(
        self,
        kind: RecordKind,
        device_id: UUID,
    ) -> list[UsageHistoryRecord]:
        """List a device's usage history, latest end_date first."""
        ...
