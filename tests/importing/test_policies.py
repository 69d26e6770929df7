"""Tests for default import policies and ledger entities."""

import dataclasses
from uuid import uuid4

import pytest

from src.ledger.importing.domain.entities import (
    Address,
    DeviceStatus,
    ImportRow,
    IPhone,
    RecordKind,
    Router,
    SheetData,
    record_type,
)
from src.ledger.importing.domain.policies import (
    BoundsPolicy,
    CommitMode,
    HeaderPolicy,
    get_policy,
    status,
)
from src.ledger.importing.domain.rules import PRINTABLE


class TestDefaultPolicies:
    @pytest.mark.parametrize(
        "kind,header_policy,bounds,offset,header_row",
        [
            (RecordKind.TABLETS, HeaderPolicy.SUPERSET, BoundsPolicy.ABORT, 3, 2),
            (RecordKind.IPHONES, HeaderPolicy.SUPERSET, BoundsPolicy.ABORT, 3, 2),
            (RecordKind.FEATURE_PHONES, HeaderPolicy.SUPERSET, BoundsPolicy.ABORT, 3, 2),
            (RecordKind.ROUTERS, HeaderPolicy.SUBSET, BoundsPolicy.ABORT, 2, 1),
            (RecordKind.ADDRESSES, HeaderPolicy.SUBSET, BoundsPolicy.IGNORE, 3, 2),
        ],
    )
    def test_policy_settings(self, kind, header_policy, bounds, offset, header_row):
        policy = get_policy(kind)

        assert policy.kind == kind
        assert policy.header_policy == header_policy
        assert policy.bounds_policy == bounds
        assert policy.row_number_offset == offset
        assert policy.header_row == header_row
        assert policy.commit_mode == CommitMode.ROW_ISOLATED

    def test_lookup_by_value(self):
        assert get_policy("feature_phones").kind == RecordKind.FEATURE_PHONES

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            get_policy("laptops")

    @pytest.mark.parametrize("kind", list(RecordKind))
    def test_unique_fields_match_record_keys(self, kind):
        policy = get_policy(kind)
        unique = {spec.name for spec in policy.unique_fields}

        assert unique == set(record_type(kind).KEY_FIELDS)

    @pytest.mark.parametrize("kind", list(RecordKind))
    def test_every_field_exists_on_record(self, kind):
        names = set(record_type(kind).field_names())
        assert all(spec.name in names for spec in get_policy(kind).fields)

    def test_primary_key_is_required(self):
        assert get_policy(RecordKind.TABLETS).spec_for("terminal_code").required
        assert get_policy(RecordKind.IPHONES).spec_for("management_number").required
        assert get_policy(RecordKind.IPHONES).spec_for("phone_number").required
        assert not get_policy(RecordKind.ROUTERS).spec_for("sim_number").required

    def test_allow_lists(self):
        policy = get_policy(RecordKind.IPHONES)
        assert policy.allow_lists["carrier"] == ("KDDI", "SoftBank", "Docomo", "Rakuten", "その他")
        assert policy.allow_lists["status"] == ("使用中", "予備機", "在庫", "故障", "修理中", "廃棄")

    def test_allow_lists_are_read_only(self):
        policy = get_policy(RecordKind.IPHONES)

        with pytest.raises(TypeError):
            policy.allow_lists["carrier"] = ("AU",)

        assert get_policy(RecordKind.IPHONES).allow_lists["carrier"][0] == "KDDI"

    def test_allow_lists_copied_from_caller(self):
        carriers = {"carrier": ["AU"]}
        policy = dataclasses.replace(get_policy(RecordKind.IPHONES), allow_lists=carriers)
        carriers["carrier"].append("KDDI")

        assert policy.allow_lists == {"carrier": ("AU",)}

    def test_policies_are_hashable(self):
        policies = {get_policy(kind) for kind in RecordKind}

        assert len(policies) == len(RecordKind)

    @pytest.mark.parametrize("kind", [RecordKind.TABLETS, RecordKind.ROUTERS])
    def test_model_number_is_half_width(self, kind):
        assert PRINTABLE in get_policy(kind).spec_for("model_number").rules

    def test_address_headers_include_confirmation_column(self):
        assert "エリアコード(確認用)" in get_policy(RecordKind.ADDRESSES).headers

    def test_override_for_one_run(self):
        policy = get_policy(RecordKind.TABLETS)
        strict = dataclasses.replace(policy, commit_mode=CommitMode.ALL_OR_NOTHING)

        assert strict.commit_mode == CommitMode.ALL_OR_NOTHING
        assert get_policy(RecordKind.TABLETS).commit_mode == CommitMode.ROW_ISOLATED

    def test_status_normalizer(self):
        assert status("故障") == "broken"
        assert status("in-use") == "in-use"


class TestDeviceStatus:
    def test_from_label(self):
        assert DeviceStatus.from_label("使用中") == DeviceStatus.IN_USE
        assert DeviceStatus.from_label("予備機") == DeviceStatus.BACKUP
        assert DeviceStatus.from_label("") == DeviceStatus.AVAILABLE

    def test_holder_or_location_means_in_use(self):
        assert DeviceStatus.derive("故障", "1001", "") == DeviceStatus.IN_USE
        assert DeviceStatus.derive("", "", "1234-56") == DeviceStatus.IN_USE

    def test_label_used_without_assignment(self):
        assert DeviceStatus.derive("廃棄", "", "") == DeviceStatus.DISCARDED
        assert DeviceStatus.derive("", "", "") == DeviceStatus.AVAILABLE


class TestEntities:
    def test_key_fields(self):
        assert IPhone.KEY_FIELDS == ("management_number", "phone_number")
        assert Router.KEY_FIELDS == ("terminal_code", "sim_number")
        assert Address.KEY_FIELDS == ("address_code",)

    def test_from_dict_ignores_unknown_and_none(self):
        record_id = uuid4()
        router = Router.from_dict(
            {"id": str(record_id), "terminal_code": "R-1", "cost": None, "notes": None, "other": 1}
        )

        assert router.id == record_id
        assert router.cost == 0
        assert router.notes == ""

    def test_to_dict(self):
        record_id = uuid4()
        data = IPhone(id=record_id, management_number="M-1").to_dict()

        assert data["id"] == str(record_id)
        assert data["status"] == "available"
        assert data["management_number"] == "M-1"

    def test_import_row_cells(self):
        row = ImportRow(index=0, values=["a", None, "c", "extra"])

        assert row.cells(["A", "B", "C"]) == {"A": "a", "B": None, "C": "c"}
        assert row.extra_cells(3) == ["extra"]
        assert not row.is_blank()

    def test_blank_row(self):
        assert ImportRow(index=0, values=[None, " ", ""]).is_blank()
        assert ImportRow(index=0, values=[]).is_blank()

    def test_sheet_from_lists(self):
        sheet = SheetData.from_lists([" A ", None], [["1"], ["2"]])

        assert sheet.headers == ["A", ""]
        assert [r.index for r in sheet.rows] == [0, 1]
