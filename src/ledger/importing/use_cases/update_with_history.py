"""Update with history use case.

Applies a partial update to a ledger record. When the update hands a
device to a different holder, the previous assignment is appended to the
device's usage history first.
"""

import logging
from datetime import date
from typing import Any, Callable, Union
from uuid import UUID

from ...api.exceptions import RecordNotFoundError
from ..domain.entities import (
    DeviceRecord,
    LedgerRecord,
    RecordKind,
    UpdateFailure,
    UpdateResult,
    UsageHistoryRecord,
    record_type,
)
from ..domain.policies import get_policy
from ..domain.ports import ILedgerStore

logger = logging.getLogger(__name__)


class UpdateWithHistoryUseCase:
    """Update a record, snapshotting the prior assignment on a holder change.

    History is written only when the patch carries employee_code, the new
    holder differs from the persisted one, and the persisted holder is
    not empty. A failed history write is logged and the update still
    goes ahead.
    """

    def __init__(
        self,
        store: ILedgerStore,
        clock: Callable[[], date] = date.today,
    ):
        """Initialize the use case.

        Args:
            store: Ledger persistence port
            clock: Returns today's date; the history end date
        """
        self.store = store
        self.clock = clock

    async def execute(
        self,
        kind: Union[RecordKind, str],
        record_id: Union[UUID, str],
        patch: dict[str, Any],
    ) -> UpdateResult:
        """Execute the use case.

        Args:
            kind: Ledger kind
            record_id: Record to update
            patch: Field name to new value

        Returns:
            UpdateResult describing what was written
        """
        kind = RecordKind(kind)
        record_id = record_id if isinstance(record_id, UUID) else UUID(str(record_id))

        current = await self.store.fetch_by_id(kind, record_id)
        if current is None:
            logger.warning(f"Update of missing {kind.value} record {record_id}")
            return UpdateResult(
                success=False,
                kind=kind,
                record_id=record_id,
                error=f"{kind.value} record {record_id} not found",
                failure=UpdateFailure.NOT_FOUND,
            )

        try:
            clean = self._clean_patch(kind, patch)
        except ValueError as e:
            return UpdateResult(
                success=False,
                kind=kind,
                record_id=record_id,
                record=current,
                error=str(e),
                failure=UpdateFailure.INVALID_PATCH,
            )

        history_recorded = False
        if self._holder_changed(current, clean):
            history_recorded = await self._record_history(kind, record_id, current)

        try:
            updated = await self.store.update(kind, record_id, clean)
        except RecordNotFoundError as e:
            return UpdateResult(
                success=False,
                kind=kind,
                record_id=record_id,
                history_recorded=history_recorded,
                error=e.message,
                failure=UpdateFailure.NOT_FOUND,
            )
        except Exception as e:
            logger.error(f"Failed to update {kind.value} record {record_id}: {e}")
            return UpdateResult(
                success=False,
                kind=kind,
                record_id=record_id,
                record=current,
                history_recorded=history_recorded,
                error=str(e),
                failure=UpdateFailure.PERSISTENCE,
            )

        logger.info(
            f"Updated {kind.value} record {record_id} "
            f"({len(clean)} fields, history={'yes' if history_recorded else 'no'})"
        )
        return UpdateResult(
            success=True,
            kind=kind,
            record_id=record_id,
            record=updated,
            history_recorded=history_recorded,
        )

    def _clean_patch(self, kind: RecordKind, patch: dict[str, Any]) -> dict[str, Any]:
        """Drop immutable fields, reject unknown ones and normalize the rest."""
        cls = record_type(kind)
        known = set(cls.field_names())
        immutable = set(cls.KEY_FIELDS) | {"id"}

        unknown = sorted(k for k in patch if k not in known)
        if unknown:
            raise ValueError(f"Unknown fields for {kind.value}: {', '.join(unknown)}")

        policy = get_policy(kind)
        clean = {}
        for name, value in patch.items():
            if name in immutable:
                continue
            if policy.has_field(name) and value is not None:
                value = policy.spec_for(name).normalize(value)
            clean[name] = value
        return clean

    def _holder_changed(self, current: LedgerRecord, patch: dict[str, Any]) -> bool:
        if not isinstance(current, DeviceRecord):
            return False
        if "employee_code" not in patch:
            return False
        previous = current.employee_code or ""
        new = patch["employee_code"] or ""
        return bool(previous) and new != previous

    async def _record_history(
        self,
        kind: RecordKind,
        record_id: UUID,
        current: DeviceRecord,
    ) -> bool:
        history = UsageHistoryRecord(
            device_id=record_id,
            employee_code=current.employee_code,
            address_code=current.address_code,
            start_date=current.lend_date,
            end_date=self.clock().isoformat(),
        )
        try:
            await self.store.insert_history(kind, history)
        except Exception as e:
            logger.error(f"Failed to record usage history for {kind.value} {record_id}: {e}")
            return False

        logger.info(
            f"Recorded usage history for {kind.value} {record_id}: "
            f"{current.employee_code} until {history.end_date}"
        )
        return True
