"""Tests for UpdateWithHistoryUseCase and GetUsageHistoryUseCase."""

import dataclasses
from datetime import date
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.ledger.api.exceptions import DatabaseError, HistoryWriteError, RecordNotFoundError
from src.ledger.importing.domain.entities import (
    Address,
    IPhone,
    RecordKind,
    Tablet,
    UpdateFailure,
    UsageHistoryRecord,
)
from src.ledger.importing.use_cases import GetUsageHistoryUseCase, UpdateWithHistoryUseCase

TODAY = date(2024, 6, 30)


@pytest.fixture
def record_id():
    return uuid4()


@pytest.fixture
def tablet(record_id):
    return Tablet(
        id=record_id,
        terminal_code="T-001",
        model_number="iPad 9",
        employee_code="E001",
        address_code="1234-56",
        lend_date="2024-01-10",
        status="in-use",
    )


@pytest.fixture
def mock_store(tablet):
    store = AsyncMock()
    store.fetch_by_id.return_value = tablet

    async def update(kind, record_id, patch):
        return dataclasses.replace(tablet, **patch)

    store.update.side_effect = update
    store.insert_history.side_effect = lambda kind, history: history
    return store


@pytest.fixture
def use_case(mock_store):
    return UpdateWithHistoryUseCase(mock_store, clock=lambda: TODAY)


class TestHolderChange:
    """History is written only when a non-empty holder is replaced."""

    @pytest.mark.asyncio
    async def test_new_holder_records_history(self, use_case, mock_store, record_id):
        result = await use_case.execute(RecordKind.TABLETS, record_id, {"employee_code": "E002"})

        assert result.success is True
        assert result.history_recorded is True
        assert result.record.employee_code == "E002"

        mock_store.insert_history.assert_awaited_once()
        kind, history = mock_store.insert_history.call_args.args
        assert kind == RecordKind.TABLETS
        assert history == UsageHistoryRecord(
            device_id=record_id,
            employee_code="E001",
            address_code="1234-56",
            start_date="2024-01-10",
            end_date="2024-06-30",
        )

    @pytest.mark.asyncio
    async def test_history_written_before_update(self, use_case, mock_store, record_id):
        calls = []
        mock_store.insert_history.side_effect = lambda *args: calls.append("history")

        async def update(*args):
            calls.append("update")
            return None

        mock_store.update.side_effect = update

        await use_case.execute(RecordKind.TABLETS, record_id, {"employee_code": "E002"})

        assert calls == ["history", "update"]

    @pytest.mark.asyncio
    async def test_clearing_holder_records_history(self, use_case, mock_store, record_id):
        result = await use_case.execute(RecordKind.TABLETS, record_id, {"employee_code": ""})

        assert result.history_recorded is True
        mock_store.insert_history.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_first_holder_records_nothing(self, use_case, mock_store, tablet, record_id):
        mock_store.fetch_by_id.return_value = dataclasses.replace(tablet, employee_code="")

        result = await use_case.execute(RecordKind.TABLETS, record_id, {"employee_code": "E002"})

        assert result.success is True
        assert result.history_recorded is False
        mock_store.insert_history.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_same_holder_records_nothing(self, use_case, mock_store, record_id):
        result = await use_case.execute(RecordKind.TABLETS, record_id, {"employee_code": "E001"})

        assert result.history_recorded is False
        mock_store.insert_history.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_patch_without_holder_records_nothing(self, use_case, mock_store, record_id):
        result = await use_case.execute(RecordKind.TABLETS, record_id, {"notes": "screen cracked"})

        assert result.success is True
        assert result.history_recorded is False
        mock_store.insert_history.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_string_kind_and_id(self, use_case, mock_store, record_id):
        result = await use_case.execute("tablets", str(record_id), {"employee_code": "E002"})

        assert result.success is True
        assert result.record_id == record_id


class TestPatchCleaning:
    @pytest.mark.asyncio
    async def test_key_fields_are_dropped(self, use_case, mock_store, record_id):
        await use_case.execute(
            RecordKind.TABLETS,
            record_id,
            {"terminal_code": "T-999", "id": str(uuid4()), "maker": "Apple"},
        )

        _, _, patch = mock_store.update.call_args.args
        assert patch == {"maker": "Apple"}

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, use_case, mock_store, tablet, record_id):
        result = await use_case.execute(RecordKind.TABLETS, record_id, {"colour": "red"})

        assert result.success is False
        assert result.failure == UpdateFailure.INVALID_PATCH
        assert "colour" in result.error
        assert result.record == tablet
        mock_store.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_values_are_normalized(self, mock_store, record_id):
        mock_store.fetch_by_id.return_value = IPhone(
            id=record_id, management_number="M-1", phone_number="090-1111-2222"
        )
        use_case = UpdateWithHistoryUseCase(mock_store, clock=lambda: TODAY)

        await use_case.execute(
            RecordKind.IPHONES,
            record_id,
            {"contract_years": "３年", "status": "故障", "employee_code": None},
        )

        _, _, patch = mock_store.update.call_args.args
        assert patch == {"contract_years": "3年", "status": "broken", "employee_code": None}


class TestFailures:
    @pytest.mark.asyncio
    async def test_missing_record(self, use_case, mock_store, record_id):
        mock_store.fetch_by_id.return_value = None

        result = await use_case.execute(RecordKind.TABLETS, record_id, {"employee_code": "E002"})

        assert result.success is False
        assert result.failure == UpdateFailure.NOT_FOUND
        mock_store.update.assert_not_awaited()
        mock_store.insert_history.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_history_failure_does_not_block_update(self, use_case, mock_store, record_id):
        mock_store.insert_history.side_effect = HistoryWriteError(
            "Failed to write usage history", device_id=str(record_id)
        )

        result = await use_case.execute(RecordKind.TABLETS, record_id, {"employee_code": "E002"})

        assert result.success is True
        assert result.history_recorded is False
        mock_store.update.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_record_deleted_during_update(self, use_case, mock_store, record_id):
        mock_store.update.side_effect = RecordNotFoundError("tablets", str(record_id))

        result = await use_case.execute(RecordKind.TABLETS, record_id, {"maker": "Apple"})

        assert result.success is False
        assert result.failure == UpdateFailure.NOT_FOUND

    @pytest.mark.asyncio
    async def test_update_failure(self, use_case, mock_store, tablet, record_id):
        mock_store.update.side_effect = DatabaseError("connection reset")

        result = await use_case.execute(RecordKind.TABLETS, record_id, {"employee_code": "E002"})

        assert result.success is False
        assert result.failure == UpdateFailure.PERSISTENCE
        assert result.record == tablet
        assert result.history_recorded is True


class TestAddresses:
    @pytest.mark.asyncio
    async def test_address_update_never_records_history(self, mock_store, record_id):
        address = Address(id=record_id, address_code="1234-56", office_name="本社")
        mock_store.fetch_by_id.return_value = address
        mock_store.update.side_effect = None
        mock_store.update.return_value = dataclasses.replace(address, zip="100-0001")
        use_case = UpdateWithHistoryUseCase(mock_store)

        result = await use_case.execute(RecordKind.ADDRESSES, record_id, {"zip": "1000001"})

        assert result.success is True
        assert result.history_recorded is False
        mock_store.insert_history.assert_not_awaited()
        _, _, patch = mock_store.update.call_args.args
        assert patch == {"zip": "100-0001"}


class TestGetUsageHistory:
    @pytest.mark.asyncio
    async def test_sorted_latest_first(self, record_id):
        rows = [
            UsageHistoryRecord(record_id, "E001", "", "2023-01-01", "2023-06-30"),
            UsageHistoryRecord(record_id, "E003", "", "2024-01-01", "2024-06-30"),
            UsageHistoryRecord(record_id, "E002", "", "2023-07-01", "2023-12-31"),
        ]
        store = AsyncMock()
        store.list_history.return_value = rows

        history = await GetUsageHistoryUseCase(store).execute("iphones", str(record_id))

        assert [h.employee_code for h in history] == ["E003", "E002", "E001"]
        store.list_history.assert_awaited_once_with(RecordKind.IPHONES, record_id)

    @pytest.mark.asyncio
    async def test_addresses_have_no_history(self, record_id):
        store = AsyncMock()

        history = await GetUsageHistoryUseCase(store).execute(RecordKind.ADDRESSES, record_id)

        assert history == []
        store.list_history.assert_not_awaited()
