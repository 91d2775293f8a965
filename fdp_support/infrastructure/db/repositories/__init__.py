"""
Repositories Package
"""

from .approval_log_repository import ApprovalLogRepository
from .baseline_repository import BaselineRepository
from .ledger_repository import LedgerRepository
from .support_record_repository import SupportRecordRepository

__all__ = [
    "ApprovalLogRepository",
    "BaselineRepository",
    "LedgerRepository",
    "SupportRecordRepository",
]
