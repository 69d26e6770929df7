"""PostgreSQL adapter for the ledger store.

This adapter implements ILedgerStore using asyncpg. Column and table
names come from field_mapper, never from user input; values are always
passed as query parameters.
"""

import logging
from typing import Any, Optional
from uuid import UUID

import asyncpg

from ...api.database import convert_db_exception, database_connection
from ...api.exceptions import HistoryWriteError, LedgerError, RecordNotFoundError
from ..domain.entities import LedgerRecord, RecordKind, UsageHistoryRecord
from ..domain.ports import ILedgerStore
from .field_mapper import (
    history_table,
    key_columns,
    patch_to_columns,
    record_to_row,
    row_to_history,
    row_to_keys,
    row_to_record,
    table_name,
)

logger = logging.getLogger(__name__)


class PostgresLedgerStore(ILedgerStore):
    """PostgreSQL implementation of ILedgerStore."""

    def __init__(self, pool: asyncpg.Pool):
        """Initialize with database connection pool.

        Args:
            pool: asyncpg connection pool
        """
        self.pool = pool

    async def list_existing(self, kind: RecordKind) -> list[dict[str, Any]]:
        """Fetch the key columns of every record of a kind."""
        columns = ", ".join(key_columns(kind))
        try:
            async with database_connection(self.pool) as conn:
                rows = await conn.fetch(f"SELECT {columns} FROM {table_name(kind)}")
        except LedgerError:
            raise
        except Exception as e:
            raise convert_db_exception(e)

        return [row_to_keys(kind, row) for row in rows]

    async def insert(self, kind: RecordKind, record: LedgerRecord) -> LedgerRecord:
        """Insert a record and return it with its new id."""
        data = record_to_row(record)
        columns = list(data)
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))

        query = (
            f"INSERT INTO {table_name(kind)} ({', '.join(columns)}) "
            f"VALUES ({placeholders}) RETURNING *"
        )

        try:
            async with database_connection(self.pool) as conn:
                row = await conn.fetchrow(query, *[data[c] for c in columns])
        except LedgerError:
            raise
        except Exception as e:
            raise convert_db_exception(e)

        return row_to_record(kind, row)

    async def update(
        self,
        kind: RecordKind,
        record_id: UUID,
        patch: dict[str, Any],
    ) -> LedgerRecord:
        """Apply a partial update and return the updated record."""
        data = patch_to_columns(kind, patch)
        if not data:
            current = await self.fetch_by_id(kind, record_id)
            if current is None:
                raise RecordNotFoundError(kind.value, record_id)
            return current

        columns = list(data)
        assignments = ", ".join(f"{c} = ${i}" for i, c in enumerate(columns, start=1))
        query = (
            f"UPDATE {table_name(kind)} SET {assignments} "
            f"WHERE id = ${len(columns) + 1} RETURNING *"
        )

        try:
            async with database_connection(self.pool) as conn:
                row = await conn.fetchrow(query, *[data[c] for c in columns], record_id)
        except LedgerError:
            raise
        except Exception as e:
            raise convert_db_exception(e)

        if row is None:
            raise RecordNotFoundError(kind.value, record_id)
        return row_to_record(kind, row)

    async def fetch_by_id(
        self,
        kind: RecordKind,
        record_id: UUID,
    ) -> Optional[LedgerRecord]:
        """Fetch one record by id."""
        try:
            async with database_connection(self.pool) as conn:
                row = await conn.fetchrow(
                    f"SELECT * FROM {table_name(kind)} WHERE id = $1",
                    record_id,
                )
        except LedgerError:
            raise
        except Exception as e:
            raise convert_db_exception(e)

        if row is None:
            return None
        return row_to_record(kind, row)

    async def insert_history(
        self,
        kind: RecordKind,
        history: UsageHistoryRecord,
    ) -> UsageHistoryRecord:
        """Append one usage-history row."""
        table, device_column = history_table(kind)
        query = f"""
            INSERT INTO {table} ({device_column}, employee_code, office_code, start_date, end_date)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING *
        """

        try:
            async with database_connection(self.pool) as conn:
                row = await conn.fetchrow(
                    query,
                    history.device_id,
                    history.employee_code,
                    history.address_code or None,
                    history.start_date or None,
                    history.end_date,
                )
        except Exception as e:
            raise HistoryWriteError(
                f"Failed to write usage history: {e}",
                device_id=history.device_id,
                cause=e,
            )

        return row_to_history(kind, row)

    async def list_history(
        self,
        kind: RecordKind,
        device_id: UUID,
    ) -> list[UsageHistoryRecord]:
        """List a device's usage history, latest end_date first."""
        table, device_column = history_table(kind)

        try:
            async with database_connection(self.pool) as conn:
                rows = await conn.fetch(
                    f"SELECT * FROM {table} WHERE {device_column} = $1 ORDER BY end_date DESC",
                    device_id,
                )
        except LedgerError:
            raise
        except Exception as e:
            raise convert_db_exception(e)

        return [row_to_history(kind, row) for row in rows]
