"""Mapping between ledger records and database rows.

Record fields mostly share their names with table columns. The
exceptions, and the table that holds each kind, live here so the
PostgreSQL adapter stays free of per-kind branching.
"""

from datetime import date, datetime
from typing import Any, Mapping
from uuid import UUID

from ..domain.entities import LedgerRecord, RecordKind, UsageHistoryRecord, record_type

TABLES: dict[RecordKind, str] = {
    RecordKind.TABLETS: "tablets",
    RecordKind.IPHONES: "iphones",
    RecordKind.FEATURE_PHONES: "featurephones",
    RecordKind.ROUTERS: "routers",
    RecordKind.ADDRESSES: "addresses",
}

# (table, device foreign key column)
HISTORY_TABLES: dict[RecordKind, tuple[str, str]] = {
    RecordKind.TABLETS: ("tablet_usage_history", "tablet_id"),
    RecordKind.IPHONES: ("iphone_usage_history", "iphone_id"),
    RecordKind.FEATURE_PHONES: ("featurephone_usage_history", "featurephone_id"),
    RecordKind.ROUTERS: ("router_usage_history", "router_id"),
}

# field name -> column name, where they differ
COLUMN_RENAMES: dict[RecordKind, dict[str, str]] = {
    RecordKind.ROUTERS: {"cost_bearer": "payer"},
}


def table_name(kind: RecordKind) -> str:
    return TABLES[RecordKind(kind)]


def history_table(kind: RecordKind) -> tuple[str, str]:
    """Return (table, device column) of a kind's usage history.

    Raises:
        ValueError: If the kind has no usage history
    """
    kind = RecordKind(kind)
    if kind not in HISTORY_TABLES:
        raise ValueError(f"{kind.value} records have no usage history")
    return HISTORY_TABLES[kind]


def column_for(kind: RecordKind, field_name: str) -> str:
    return COLUMN_RENAMES.get(RecordKind(kind), {}).get(field_name, field_name)


def field_for(kind: RecordKind, column: str) -> str:
    for field_name, renamed in COLUMN_RENAMES.get(RecordKind(kind), {}).items():
        if renamed == column:
            return field_name
    return column


def key_columns(kind: RecordKind) -> list[str]:
    return [column_for(kind, name) for name in record_type(kind).KEY_FIELDS]


def patch_to_columns(kind: RecordKind, patch: Mapping[str, Any]) -> dict[str, Any]:
    return {column_for(kind, name): value for name, value in patch.items()}


def record_to_row(record: LedgerRecord) -> dict[str, Any]:
    """Column dict for an INSERT. The id is left to the database."""
    data = record.to_dict()
    data.pop("id", None)
    return patch_to_columns(record.KIND, data)


def _plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def row_to_record(kind: RecordKind, row: Mapping[str, Any]) -> LedgerRecord:
    """Build a record from a fetched row, ignoring columns it does not know."""
    data = {field_for(kind, column): _plain(value) for column, value in dict(row).items()}
    return record_type(kind).from_dict(data)


def row_to_keys(kind: RecordKind, row: Mapping[str, Any]) -> dict[str, Any]:
    return {field_for(kind, column): value for column, value in dict(row).items()}


def row_to_history(kind: RecordKind, row: Mapping[str, Any]) -> UsageHistoryRecord:
    _, device_column = history_table(kind)
    data = dict(row)
    device_id = data[device_column]
    record_id = data.get("id")
    return UsageHistoryRecord(
        device_id=device_id if isinstance(device_id, UUID) else UUID(str(device_id)),
        employee_code=data.get("employee_code") or "",
        address_code=data.get("office_code") or "",
        start_date=_plain(data.get("start_date")) or "",
        end_date=_plain(data.get("end_date")) or "",
        id=record_id if record_id is None or isinstance(record_id, UUID) else UUID(str(record_id)),
        created_at=data.get("created_at"),
    )


def ledger_tables() -> list[str]:
    """Every table the ledger reads or writes."""
    return list(TABLES.values()) + [table for table, _ in HISTORY_TABLES.values()]
