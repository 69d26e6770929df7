"""Infrastructure adapters for the ledger import engine.

These adapters implement the port interfaces defined in the domain layer,
connecting the application to PostgreSQL and to uploaded spreadsheet files.
"""

from .excel_row_source import OpenpyxlRowSource
from .postgres_ledger_store import PostgresLedgerStore

__all__ = [
    "OpenpyxlRowSource",
    "PostgresLedgerStore",
]
