"""API layer for the ledger import engine.

Provides FastAPI router and Pydantic schemas.
"""

from .router import router
from .schemas import (
    ImportReportDTO,
    UpdateRequest,
    UpdateResponse,
    UsageHistoryDTO,
    ViolationDTO,
)

__all__ = [
    "router",
    "ImportReportDTO",
    "ViolationDTO",
    "UpdateRequest",
    "UpdateResponse",
    "UsageHistoryDTO",
]
