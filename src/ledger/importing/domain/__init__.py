"""Domain layer for the ledger import engine.

Contains:
- Entities: Ledger records, rows, violations and reports
- Normalizers and rules: Pure per-cell transformations and checks
- Policies: Per-kind import configuration
- Ports: Interface definitions for infrastructure adapters
"""

from .duplicates import DuplicateTracker
from .entities import (
    Accepted,
    Address,
    DeviceRecord,
    DeviceStatus,
    FeaturePhone,
    ImportReport,
    ImportRow,
    IPhone,
    LedgerRecord,
    RecordKind,
    Router,
    RowOutcome,
    SheetData,
    Skipped,
    Tablet,
    UpdateFailure,
    UpdateResult,
    UsageHistoryRecord,
    Violation,
    ViolationKind,
    record_type,
)
from .policies import (
    BoundsPolicy,
    CommitMode,
    FieldSpec,
    HeaderPolicy,
    ImportPolicy,
    get_policy,
)
from .ports import ILedgerStore, IRowSource
from .rules import Charset, ValidationContext

__all__ = [
    # Entities
    "RecordKind",
    "DeviceStatus",
    "ViolationKind",
    "LedgerRecord",
    "DeviceRecord",
    "Tablet",
    "IPhone",
    "FeaturePhone",
    "Router",
    "Address",
    "record_type",
    "ImportRow",
    "SheetData",
    "Violation",
    "Accepted",
    "Skipped",
    "RowOutcome",
    "ImportReport",
    "UsageHistoryRecord",
    "UpdateFailure",
    "UpdateResult",
    # Rules and tracking
    "Charset",
    "ValidationContext",
    "DuplicateTracker",
    # Policies
    "HeaderPolicy",
    "BoundsPolicy",
    "CommitMode",
    "FieldSpec",
    "ImportPolicy",
    "get_policy",
    # Ports
    "ILedgerStore",
    "IRowSource",
]
