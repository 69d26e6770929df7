"""Domain entities for the ledger import engine.

These are pure domain objects with no infrastructure dependencies.
They represent the ledger records, the spreadsheet rows they are built
from, and the values reported back once a batch has been reconciled.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional, Union
from uuid import UUID


class RecordKind(str, Enum):
    """Ledger kinds. The value doubles as the table name."""

    TABLETS = "tablets"
    IPHONES = "iphones"
    FEATURE_PHONES = "feature_phones"
    ROUTERS = "routers"
    ADDRESSES = "addresses"

    @property
    def is_device(self) -> bool:
        return self is not RecordKind.ADDRESSES


class DeviceStatus(str, Enum):
    """Lifecycle status of a lendable device."""

    AVAILABLE = "available"
    IN_USE = "in-use"
    BROKEN = "broken"
    DISCARDED = "discarded"
    REPAIRING = "repairing"
    BACKUP = "backup"

    @classmethod
    def from_label(cls, label: str) -> "DeviceStatus":
        """Map a spreadsheet status label to a status.

        Unknown or empty labels map to AVAILABLE.
        """
        return STATUS_LABELS.get((label or "").strip(), cls.AVAILABLE)

    @classmethod
    def derive(cls, label: str, employee_code: str, address_code: str) -> "DeviceStatus":
        """Status of a freshly imported device.

        A device that already has a holder or a location is in use,
        whatever the sheet says.
        """
        if employee_code or address_code:
            return cls.IN_USE
        return cls.from_label(label)


STATUS_LABELS: dict[str, DeviceStatus] = {
    "使用中": DeviceStatus.IN_USE,
    "予備機": DeviceStatus.BACKUP,
    "在庫": DeviceStatus.AVAILABLE,
    "故障": DeviceStatus.BROKEN,
    "修理中": DeviceStatus.REPAIRING,
    "廃棄": DeviceStatus.DISCARDED,
}


class ViolationKind(str, Enum):
    """Category of a reported import problem."""

    REQUIRED = "required"
    CHARSET = "charset"
    FORMAT = "format"
    ENUMERATION = "enumeration"
    ALREADY_EXISTS = "already_exists"
    DUPLICATE_IN_FILE = "duplicate_in_file"
    UNKNOWN_REFERENCE = "unknown_reference"
    PERSISTENCE = "persistence"
    STRUCTURE = "structure"
    BOUNDS = "bounds"


# ============================================
# Ledger records
# ============================================

@dataclass
class LedgerRecord:
    """Base class for every persisted ledger row.

    Subclasses declare KIND and KEY_FIELDS. The key fields identify a
    record among all records of the same kind and never change once the
    record exists.
    """

    KIND: ClassVar[RecordKind]
    KEY_FIELDS: ClassVar[tuple[str, ...]] = ()

    id: Optional[UUID] = None
    notes: str = ""

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LedgerRecord":
        """Build a record from a column dict, ignoring unknown keys."""
        known = set(cls.field_names())
        values = {}
        for key, value in data.items():
            if key not in known:
                continue
            if key == "id":
                values[key] = value if value is None or isinstance(value, UUID) else UUID(str(value))
            elif value is None:
                values[key] = "" if key != "cost" else 0
            else:
                values[key] = value
        return cls(**values)

    def key_values(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.KEY_FIELDS}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, UUID):
                value = str(value)
            elif isinstance(value, Enum):
                value = value.value
            result[f.name] = value
        return result


@dataclass
class DeviceRecord(LedgerRecord):
    """A lendable device.

    employee_code (the holder), address_code (the location) and
    lend_date together form the assignment sub-state that usage history
    snapshots when the holder changes.
    """

    employee_code: str = ""
    address_code: str = ""
    lend_date: str = ""
    status: str = DeviceStatus.AVAILABLE.value
    contract_years: str = ""

    @property
    def has_holder(self) -> bool:
        return bool(self.employee_code)


@dataclass
class Tablet(DeviceRecord):
    KIND: ClassVar[RecordKind] = RecordKind.TABLETS
    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("terminal_code",)

    terminal_code: str = ""
    model_number: str = ""
    maker: str = ""
    cost_bearer: str = ""
    lend_history: str = ""


@dataclass
class IPhone(DeviceRecord):
    KIND: ClassVar[RecordKind] = RecordKind.IPHONES
    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("management_number", "phone_number")

    management_number: str = ""
    phone_number: str = ""
    model_name: str = ""
    carrier: str = ""
    cost_bearer: str = ""
    smart_address_id: str = ""
    smart_address_pw: str = ""
    receipt_date: str = ""
    return_date: str = ""


@dataclass
class FeaturePhone(DeviceRecord):
    KIND: ClassVar[RecordKind] = RecordKind.FEATURE_PHONES
    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("management_number", "phone_number")

    management_number: str = ""
    phone_number: str = ""
    model_name: str = ""
    carrier: str = ""
    cost_company: str = ""
    receipt_date: str = ""
    return_date: str = ""


@dataclass
class Router(DeviceRecord):
    KIND: ClassVar[RecordKind] = RecordKind.ROUTERS
    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("terminal_code", "sim_number")

    terminal_code: str = ""
    sim_number: str = ""
    no: str = ""
    contract_status: str = ""
    carrier: str = ""
    model_number: str = ""
    data_limit: str = ""
    actual_lender: str = ""
    actual_lender_name: str = ""
    company: str = ""
    ip_address: str = ""
    subnet_mask: str = ""
    start_ip: str = ""
    end_ip: str = ""
    biller: str = ""
    cost: int = 0
    cost_transfer: str = ""
    cost_bearer: str = ""
    lend_history: str = ""


@dataclass
class Address(LedgerRecord):
    """An office/location. Carries no assignment, so never records history."""

    KIND: ClassVar[RecordKind] = RecordKind.ADDRESSES
    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("address_code",)

    address_code: str = ""
    office_name: str = ""
    area_code: str = ""
    no: str = ""
    zip: str = ""
    address: str = ""
    tel: str = ""
    fax: str = ""
    department: str = ""
    accounting_code: str = ""
    supervisor: str = ""
    branch_no: str = ""
    category: str = ""
    label_name: str = ""
    label_zip: str = ""
    label_address: str = ""
    caution: str = ""


RECORD_TYPES: dict[RecordKind, type[LedgerRecord]] = {
    RecordKind.TABLETS: Tablet,
    RecordKind.IPHONES: IPhone,
    RecordKind.FEATURE_PHONES: FeaturePhone,
    RecordKind.ROUTERS: Router,
    RecordKind.ADDRESSES: Address,
}


def record_type(kind: RecordKind) -> type[LedgerRecord]:
    return RECORD_TYPES[RecordKind(kind)]


# ============================================
# Spreadsheet rows
# ============================================

def _is_empty(value: Any) -> bool:
    return value is None or str(value).strip() == ""


@dataclass
class ImportRow:
    """A positional spreadsheet row.

    index is the 0-based position among the data rows (after the header).
    """

    index: int
    values: list[Any] = field(default_factory=list)

    def cells(self, headers: list[str]) -> dict[str, Any]:
        """Map header labels to raw cell values.

        Cells beyond the header count are not included.
        """
        return {
            header: (self.values[i] if i < len(self.values) else None)
            for i, header in enumerate(headers)
        }

    def is_blank(self) -> bool:
        return all(_is_empty(v) for v in self.values)

    def extra_cells(self, column_count: int) -> list[Any]:
        """Non-empty cells past the declared column count."""
        return [v for v in self.values[column_count:] if not _is_empty(v)]


@dataclass
class SheetData:
    """Declared headers plus the data rows below them."""

    headers: list[str]
    rows: list[ImportRow] = field(default_factory=list)

    @classmethod
    def from_lists(cls, headers: list[str], rows: list[list[Any]]) -> "SheetData":
        return cls(
            headers=[str(h).strip() if h is not None else "" for h in headers],
            rows=[ImportRow(index=i, values=list(r)) for i, r in enumerate(rows)],
        )


# ============================================
# Outcomes and reports
# ============================================

@dataclass(frozen=True)
class Violation:
    """One problem found while importing a batch.

    row_number is the row number as the user sees it in the spreadsheet,
    or 0 for batch-level problems.
    """

    row_number: int
    field: str
    message: str
    kind: ViolationKind

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "field": self.field,
            "message": self.message,
            "kind": self.kind.value,
        }


@dataclass(frozen=True)
class Accepted:
    row_number: int
    record: LedgerRecord


@dataclass(frozen=True)
class Skipped:
    row_number: int
    violations: tuple[Violation, ...]


RowOutcome = Union[Accepted, Skipped]


@dataclass(frozen=True)
class ImportReport:
    """Summary of one import batch. Built once, never mutated."""

    kind: RecordKind
    success_count: int = 0
    error_count: int = 0
    violations: tuple[Violation, ...] = ()
    aborted: bool = False
    abort_reason: Optional[str] = None

    @property
    def messages(self) -> list[str]:
        return [v.message for v in self.violations]

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "violations": [v.to_dict() for v in self.violations],
            "aborted": self.aborted,
            "abort_reason": self.abort_reason,
        }


@dataclass(frozen=True)
class UsageHistoryRecord:
    """Snapshot of a device's previous assignment.

    Written once when a device changes hands, never updated afterwards.
    """

    device_id: UUID
    employee_code: str
    address_code: str
    start_date: str
    end_date: str
    id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id) if self.id else None,
            "device_id": str(self.device_id),
            "employee_code": self.employee_code,
            "address_code": self.address_code,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class UpdateFailure(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_PATCH = "invalid_patch"
    PERSISTENCE = "persistence"


@dataclass
class UpdateResult:
    """Result of an update that may have recorded usage history."""

    success: bool
    kind: RecordKind
    record_id: UUID
    record: Optional[LedgerRecord] = None
    history_recorded: bool = False
    error: Optional[str] = None
    failure: Optional[UpdateFailure] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "kind": self.kind.value,
            "record_id": str(self.record_id),
            "record": self.record.to_dict() if self.record else None,
            "history_recorded": self.history_recorded,
            "error": self.error,
            "failure": self.failure.value if self.failure else None,
        }
