"""FastAPI router for ledger import and update endpoints."""

import dataclasses
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from ...api.exceptions import DatabaseError
from ..domain.entities import RecordKind, UpdateFailure
from ..domain.policies import CommitMode, get_policy
from ..domain.ports import ILedgerStore, IRowSource
from ..use_cases import GetUsageHistoryUseCase, RunImportUseCase, UpdateWithHistoryUseCase
from .dependencies import get_ledger_store, get_row_source
from .schemas import (
    ImportReportDTO,
    UpdateRequest,
    UpdateResponse,
    UsageHistoryDTO,
    ViolationDTO,
)

logger = logging.getLogger(__name__)

# File upload limits
MAX_UPLOAD_SIZE_MB = 10
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024  # 10 MB

router = APIRouter(prefix="/api/ledger", tags=["Ledger"])


@router.post("/{kind}/import", response_model=ImportReportDTO)
async def import_sheet(
    kind: RecordKind,
    file: UploadFile = File(...),
    commit_mode: Optional[CommitMode] = Query(None, description="Override the kind's commit mode"),
    row_source: IRowSource = Depends(get_row_source),
    store: ILedgerStore = Depends(get_ledger_store),
):
    """Import a ledger spreadsheet.

    Each row is validated and de-duplicated; clean rows are inserted and
    the rest are reported with their row numbers. A header mismatch or
    data outside the defined columns aborts the whole batch.

    Max file size: 10 MB
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    if not file.filename.endswith((".xlsx", ".csv")):
        raise HTTPException(
            status_code=400,
            detail="File must be an Excel (.xlsx) or CSV (.csv) file",
        )

    # Check content-length header if available (early rejection)
    if file.size and file.size > MAX_UPLOAD_SIZE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {MAX_UPLOAD_SIZE_MB} MB",
        )

    content = await file.read()
    if len(content) == 0:
        raise HTTPException(status_code=400, detail="File is empty")

    if len(content) > MAX_UPLOAD_SIZE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {MAX_UPLOAD_SIZE_MB} MB",
        )

    policy = get_policy(kind)
    if commit_mode is not None:
        policy = dataclasses.replace(policy, commit_mode=commit_mode)

    try:
        sheet = row_source.read(content, header_row=policy.header_row)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        report = await RunImportUseCase(store).execute(sheet, policy)
    except DatabaseError as e:
        logger.error(f"Import of {file.filename} failed: {e}")
        raise HTTPException(status_code=500, detail=e.message)

    return ImportReportDTO(
        kind=report.kind.value,
        success_count=report.success_count,
        error_count=report.error_count,
        violations=[ViolationDTO(**v.to_dict()) for v in report.violations],
        aborted=report.aborted,
        abort_reason=report.abort_reason,
    )


@router.patch("/{kind}/{record_id}", response_model=UpdateResponse)
async def update_record(
    kind: RecordKind,
    record_id: UUID,
    request: UpdateRequest,
    store: ILedgerStore = Depends(get_ledger_store),
):
    """Update a ledger record.

    When a device changes hands, its previous assignment is appended to
    the usage history before the update is applied.
    """
    try:
        result = await UpdateWithHistoryUseCase(store).execute(kind, record_id, request.fields)
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=e.message)

    if not result.success:
        if result.failure == UpdateFailure.NOT_FOUND:
            raise HTTPException(status_code=404, detail=result.error)
        if result.failure == UpdateFailure.INVALID_PATCH:
            raise HTTPException(status_code=400, detail=result.error)
        raise HTTPException(status_code=500, detail=result.error)

    return UpdateResponse(
        success=True,
        kind=result.kind.value,
        record_id=result.record_id,
        record=result.record.to_dict() if result.record else None,
        history_recorded=result.history_recorded,
    )


@router.get("/{kind}/{record_id}/history", response_model=list[UsageHistoryDTO])
async def get_history(
    kind: RecordKind,
    record_id: UUID,
    store: ILedgerStore = Depends(get_ledger_store),
):
    """List a device's previous assignments, most recent first."""
    try:
        history = await GetUsageHistoryUseCase(store).execute(kind, record_id)
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=e.message)

    return [UsageHistoryDTO(**h.to_dict()) for h in history]
