"""Per-kind import configuration.

An ImportPolicy is plain data: the header contract, how stray cells and
failures are treated, and a FieldSpec per column describing how the cell
is normalized and validated. Callers tweak a policy for one run with
dataclasses.replace.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping

from .entities import STATUS_LABELS, RecordKind
from .normalizers import (
    cell_text,
    excel_serial_to_iso_date,
    format_address_code,
    format_phone_number,
    format_zip_code,
    normalize_contract_year,
    normalize_phone,
    normalize_text,
    parse_cost,
)
from .rules import (
    DATE,
    DIGITS_HYPHEN,
    IPV4,
    LANDLINE,
    MOBILE_NUMBER,
    OFFICE_REFERENCE,
    PRINTABLE,
    SIM_NUMBER,
    ZIP_CODE,
    EnumerationRule,
    Rule,
    reference_key,
)


class HeaderPolicy(str, Enum):
    """How the sheet's headers are checked against the policy's columns.

    SUBSET: every sheet header must be a known column.
    SUPERSET: every known column must be present in the sheet.
    """

    SUBSET = "subset"
    SUPERSET = "superset"


class BoundsPolicy(str, Enum):
    """What to do with populated cells right of the last header."""

    ABORT = "abort"
    IGNORE = "ignore"


class CommitMode(str, Enum):
    """ROW_ISOLATED inserts each clean row; ALL_OR_NOTHING inserts only if every row is clean."""

    ROW_ISOLATED = "row_isolated"
    ALL_OR_NOTHING = "all_or_nothing"


CARRIERS = ("KDDI", "SoftBank", "Docomo", "Rakuten", "その他")
STATUSES = tuple(STATUS_LABELS)


# ============================================
# Cell normalizers
# ============================================

def text(raw: Any) -> str:
    return normalize_text(cell_text(raw))


def phone(raw: Any) -> str:
    return format_phone_number(text(raw))


def status(raw: Any) -> str:
    """Map a status label to its stored value; stored values pass through."""
    value = text(raw)
    if value in STATUS_LABELS:
        return STATUS_LABELS[value].value
    return value


def zip_code(raw: Any) -> str:
    return format_zip_code(cell_text(raw))


def address_code(raw: Any) -> str:
    return format_address_code(cell_text(raw))


@dataclass(frozen=True)
class FieldSpec:
    """Describes one spreadsheet column and the record field it fills.

    identity is the normalization used to compare keys of unique fields.
    """

    name: str
    label: str
    normalize: Callable[[Any], Any] = text
    rules: tuple[Rule, ...] = ()
    required: bool = False
    unique: bool = False
    identity: Callable[[str], str] = normalize_text


@dataclass(frozen=True)
class ImportPolicy:
    """Import configuration for one ledger kind. allow_lists is stored read-only."""

    kind: RecordKind
    fields: tuple[FieldSpec, ...]
    header_policy: HeaderPolicy = HeaderPolicy.SUPERSET
    bounds_policy: BoundsPolicy = BoundsPolicy.ABORT
    commit_mode: CommitMode = CommitMode.ROW_ISOLATED
    row_number_offset: int = 3
    header_row: int = 2
    extra_headers: tuple[str, ...] = ()
    allow_lists: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: {"carrier": CARRIERS, "status": STATUSES},
        hash=False,
    )
    check_references: bool = False

    def __post_init__(self):
        # Read-only copy; the default policies are shared module globals
        frozen = MappingProxyType({name: tuple(values) for name, values in self.allow_lists.items()})
        object.__setattr__(self, "allow_lists", frozen)

    @property
    def headers(self) -> tuple[str, ...]:
        return tuple(spec.label for spec in self.fields) + self.extra_headers

    @property
    def unique_fields(self) -> tuple[FieldSpec, ...]:
        return tuple(spec for spec in self.fields if spec.unique)

    @property
    def derives_status(self) -> bool:
        return self.kind.is_device

    def spec_for(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(name)

    def has_field(self, name: str) -> bool:
        return any(spec.name == name for spec in self.fields)


# ============================================
# Default policies
# ============================================

_EMPLOYEE = FieldSpec("employee_code", "社員コード", rules=(DIGITS_HYPHEN,))
_OFFICE = FieldSpec("address_code", "事業所コード", rules=(DIGITS_HYPHEN, OFFICE_REFERENCE))
_CONTRACT_YEARS = FieldSpec("contract_years", "契約年数", normalize=normalize_contract_year)
_STATUS = FieldSpec("status", "状況", normalize=status, rules=(EnumerationRule("status"),))
_CARRIER = FieldSpec("carrier", "キャリア", rules=(EnumerationRule("carrier"),))
_MANAGEMENT_NUMBER = FieldSpec(
    "management_number", "管理番号(必須)", rules=(PRINTABLE,), required=True, unique=True,
)
_PHONE_NUMBER = FieldSpec(
    "phone_number",
    "電話番号(必須)",
    normalize=phone,
    rules=(MOBILE_NUMBER,),
    required=True,
    unique=True,
    identity=normalize_phone,
)


def _date(name: str, label: str) -> FieldSpec:
    return FieldSpec(name, label, normalize=excel_serial_to_iso_date, rules=(DATE,))


TABLET_POLICY = ImportPolicy(
    kind=RecordKind.TABLETS,
    fields=(
        FieldSpec("terminal_code", "端末CD(必須)", rules=(PRINTABLE,), required=True, unique=True),
        FieldSpec("model_number", "型番(必須)", rules=(PRINTABLE,), required=True),
        FieldSpec("maker", "メーカー"),
        _CONTRACT_YEARS,
        _STATUS,
        _EMPLOYEE,
        _OFFICE,
        FieldSpec("cost_bearer", "負担先"),
        FieldSpec("lend_history", "過去貸与履歴"),
        FieldSpec("notes", "備考"),
    ),
)

IPHONE_POLICY = ImportPolicy(
    kind=RecordKind.IPHONES,
    fields=(
        _MANAGEMENT_NUMBER,
        _PHONE_NUMBER,
        FieldSpec("model_name", "機種名"),
        _CONTRACT_YEARS,
        _CARRIER,
        _STATUS,
        _EMPLOYEE,
        _OFFICE,
        FieldSpec("cost_bearer", "負担先"),
        FieldSpec("smart_address_id", "SMARTアドレス帳ID"),
        FieldSpec("smart_address_pw", "SMARTアドレス帳PW"),
        _date("receipt_date", "受領書提出日"),
        _date("lend_date", "貸与日"),
        _date("return_date", "返却日"),
        FieldSpec("notes", "備考"),
    ),
)

FEATURE_PHONE_POLICY = ImportPolicy(
    kind=RecordKind.FEATURE_PHONES,
    fields=(
        _MANAGEMENT_NUMBER,
        _PHONE_NUMBER,
        FieldSpec("model_name", "機種名"),
        _CONTRACT_YEARS,
        _CARRIER,
        _STATUS,
        _EMPLOYEE,
        _OFFICE,
        FieldSpec("cost_company", "負担先"),
        _date("receipt_date", "受領書提出日"),
        _date("lend_date", "貸与日"),
        _date("return_date", "返却日"),
        FieldSpec("notes", "備考"),
    ),
)

ROUTER_POLICY = ImportPolicy(
    kind=RecordKind.ROUTERS,
    header_policy=HeaderPolicy.SUBSET,
    row_number_offset=2,
    header_row=1,
    fields=(
        FieldSpec("no", "No."),
        FieldSpec("contract_status", "契約状況"),
        _CONTRACT_YEARS,
        FieldSpec("carrier", "通信キャリア"),
        FieldSpec("model_number", "機種型番", rules=(PRINTABLE,)),
        FieldSpec(
            "sim_number",
            "SIM電番",
            rules=(SIM_NUMBER,),
            unique=True,
            identity=normalize_phone,
        ),
        FieldSpec("data_limit", "通信容量"),
        FieldSpec("terminal_code", "端末CD", rules=(PRINTABLE,), required=True, unique=True),
        _EMPLOYEE,
        FieldSpec("address_code", "住所コード", rules=(DIGITS_HYPHEN, OFFICE_REFERENCE)),
        FieldSpec("actual_lender", "実貸与先"),
        FieldSpec("actual_lender_name", "実貸与先名"),
        FieldSpec("company", "会社"),
        FieldSpec("ip_address", "IPアドレス", rules=(IPV4,)),
        FieldSpec("subnet_mask", "サブネットマスク", rules=(IPV4,)),
        FieldSpec("start_ip", "開始IP", rules=(IPV4,)),
        FieldSpec("end_ip", "終了IP", rules=(IPV4,)),
        FieldSpec("biller", "請求元"),
        FieldSpec("cost", "費用", normalize=parse_cost),
        FieldSpec("cost_transfer", "費用振替"),
        FieldSpec("cost_bearer", "負担先"),
        FieldSpec("lend_history", "貸与履歴"),
        FieldSpec("notes", "備考(返却日)"),
    ),
)

ADDRESS_POLICY = ImportPolicy(
    kind=RecordKind.ADDRESSES,
    header_policy=HeaderPolicy.SUBSET,
    bounds_policy=BoundsPolicy.IGNORE,
    fields=(
        FieldSpec(
            "address_code",
            "事業所コード(必須)",
            normalize=address_code,
            rules=(DIGITS_HYPHEN,),
            required=True,
            unique=True,
            identity=reference_key,
        ),
        FieldSpec("office_name", "事業所名(必須)", required=True),
        FieldSpec("area_code", "エリアコード", rules=(DIGITS_HYPHEN,)),
        FieldSpec("no", "No."),
        FieldSpec("zip", "〒(必須)", normalize=zip_code, rules=(ZIP_CODE,), required=True),
        FieldSpec("address", "住所(必須)", required=True),
        FieldSpec("tel", "TEL", rules=(LANDLINE,)),
        FieldSpec("fax", "FAX", rules=(LANDLINE,)),
        FieldSpec("department", "事業部"),
        FieldSpec("accounting_code", "経理コード"),
        FieldSpec("supervisor", "主担当"),
        FieldSpec("branch_no", "枝番"),
        FieldSpec("category", "※"),
        FieldSpec("notes", "備考"),
        FieldSpec("label_name", "宛名ラベル用"),
        FieldSpec("label_zip", "宛名ラベル用〒", normalize=zip_code),
        FieldSpec("label_address", "宛名ラベル用住所"),
        FieldSpec("caution", "注意書き"),
    ),
    extra_headers=("エリアコード(確認用)",),
)

DEFAULT_POLICIES: dict[RecordKind, ImportPolicy] = {
    policy.kind: policy
    for policy in (
        TABLET_POLICY,
        IPHONE_POLICY,
        FEATURE_PHONE_POLICY,
        ROUTER_POLICY,
        ADDRESS_POLICY,
    )
}


def get_policy(kind: RecordKind) -> ImportPolicy:
    """Return the default policy for a ledger kind.

    Raises:
        ValueError: If kind is not a known ledger kind
    """
    return DEFAULT_POLICIES[RecordKind(kind)]
