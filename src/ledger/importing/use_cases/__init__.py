"""Use cases for the ledger import engine.

Each use case represents a single user action and orchestrates
domain logic without knowing about infrastructure details.
"""

from .get_history import GetUsageHistoryUseCase
from .run_import import RunImportUseCase
from .update_with_history import UpdateWithHistoryUseCase

__all__ = [
    "RunImportUseCase",
    "UpdateWithHistoryUseCase",
    "GetUsageHistoryUseCase",
]
