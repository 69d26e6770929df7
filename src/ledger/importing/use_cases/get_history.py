"""Get usage history use case."""

import logging
from typing import Union
from uuid import UUID

from ..domain.entities import RecordKind, UsageHistoryRecord
from ..domain.ports import ILedgerStore

logger = logging.getLogger(__name__)


class GetUsageHistoryUseCase:
    """List a device's previous assignments, most recent first."""

    def __init__(self, store: ILedgerStore):
        self.store = store

    async def execute(
        self,
        kind: Union[RecordKind, str],
        device_id: Union[UUID, str],
    ) -> list[UsageHistoryRecord]:
        kind = RecordKind(kind)
        if not kind.is_device:
            return []

        device_id = device_id if isinstance(device_id, UUID) else UUID(str(device_id))
        history = await self.store.list_history(kind, device_id)
        logger.debug(f"Found {len(history)} history rows for {kind.value} {device_id}")
        return sorted(history, key=lambda h: h.end_date or "", reverse=True)
