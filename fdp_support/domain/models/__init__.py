"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    ApprovalStatus,
    AreaType,
    PovertyLevel,
    SupportCategory,

    # Entities
    AllocationSnapshot,
    ApprovalLogEntry,
    Beneficiary,
    ContributionBreakdown,
    CostLineInput,
    CostLineResult,
    FamilyBaseline,
    LedgerReservation,
    PovertyAssessment,
    RecordRef,
    SupportRecord,
    SupportRequest,
)
from .policy import AreaPolicy, PovertyPolicy, StatusBand
from .categories import CATEGORIES, CategoryDescriptor, CostLineSpec, get_descriptor

__all__ = [
    # Enums
    "ApprovalStatus",
    "AreaType",
    "PovertyLevel",
    "SupportCategory",

    # Entities
    "AllocationSnapshot",
    "ApprovalLogEntry",
    "Beneficiary",
    "ContributionBreakdown",
    "CostLineInput",
    "CostLineResult",
    "FamilyBaseline",
    "LedgerReservation",
    "PovertyAssessment",
    "RecordRef",
    "SupportRecord",
    "SupportRequest",

    # Policy
    "AreaPolicy",
    "PovertyPolicy",
    "StatusBand",

    # Categories
    "CATEGORIES",
    "CategoryDescriptor",
    "CostLineSpec",
    "get_descriptor",
]
