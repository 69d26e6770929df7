"""Pydantic schemas for API request/response validation."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ViolationDTO(BaseModel):
    """One problem found in an import batch."""

    row_number: int
    field: str = ""
    message: str
    kind: str


class ImportReportDTO(BaseModel):
    """Response for a spreadsheet import."""

    kind: str
    success_count: int = 0
    error_count: int = 0
    violations: list[ViolationDTO] = Field(default_factory=list)
    aborted: bool = False
    abort_reason: Optional[str] = None


class UpdateRequest(BaseModel):
    """Partial update of a ledger record.

    Key fields (terminal code, management number, etc.) are ignored.
    """

    fields: dict[str, Any] = Field(..., description="Field name to new value")


class UpdateResponse(BaseModel):
    """Response for a record update."""

    success: bool
    kind: str
    record_id: UUID
    record: Optional[dict[str, Any]] = None
    history_recorded: bool = False
    error: Optional[str] = None


class UsageHistoryDTO(BaseModel):
    """One previous assignment of a device."""

    id: Optional[UUID] = None
    device_id: UUID
    employee_code: str
    address_code: str = ""
    start_date: str = ""
    end_date: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HealthResponse(BaseModel):
    status: str
    database: dict[str, Any] = Field(default_factory=dict)
