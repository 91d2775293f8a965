"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple


ZERO = Decimal("0")


class AreaType(str, Enum):
    """Area classification of a family's residence"""
    RURAL = "Rural"
    URBAN = "Urban"
    PERI_URBAN = "Peri-Urban"

    @classmethod
    def parse(cls, value: Optional[str]) -> "AreaType":
        """Lenient parse; unrecognized or empty values fall back to Rural."""
        if not value:
            return cls.RURAL
        key = value.strip().lower().replace("_", "-").replace(" ", "-")
        if key in ("peri-urban", "periurban"):
            return cls.PERI_URBAN
        if key == "urban":
            return cls.URBAN
        return cls.RURAL


class PovertyLevel(str, Enum):
    """Poverty bands, lowest first"""
    LEVEL_MINUS_4 = "Level -4"
    LEVEL_MINUS_3 = "Level -3"
    LEVEL_MINUS_2 = "Level -2"
    LEVEL_MINUS_1 = "Level -1"
    LEVEL_0 = "Level 0"
    LEVEL_PLUS_1 = "Level +1"


class SupportCategory(str, Enum):
    """Social support intervention categories"""
    EDUCATION = "education"
    HEALTH = "health"
    HOUSING = "housing"
    FOOD = "food"


class ApprovalStatus(str, Enum):
    """Persisted lifecycle states of a support record"""
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not ApprovalStatus.PENDING


@dataclass(frozen=True)
class FamilyBaseline:
    """Baseline household data captured at intake - read only here"""
    family_id: str
    head_name: Optional[str]
    household_income: Decimal
    member_count: int
    area_type: AreaType

    @property
    def per_capita_income(self) -> Decimal:
        """Household income per member (0 for an empty household)"""
        if self.member_count <= 0:
            return ZERO
        return Decimal(self.household_income) / Decimal(self.member_count)


@dataclass(frozen=True)
class PovertyAssessment:
    """Everything derived from a baseline for display and capping"""
    family_id: str
    area_type: AreaType
    per_capita_income: Decimal
    self_sufficiency_income: Decimal
    self_sufficiency_ratio: Decimal
    self_sufficiency_status: str
    poverty_level: PovertyLevel
    support_cap: Decimal
    policy_version: str


@dataclass(frozen=True)
class CostLineInput:
    """Raw caseworker input for one cost line"""
    total_cost: Decimal = ZERO
    family_contribution: Decimal = ZERO
    months: Optional[int] = None


@dataclass(frozen=True)
class CostLineResult:
    """Computed breakdown of one cost line"""
    name: str
    recurring: bool
    total_cost: Decimal
    family_contribution: Decimal
    pe_contribution: Decimal
    months: Optional[int]
    line_total_cost: Decimal
    line_total_family_contribution: Decimal
    line_total_pe_contribution: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "recurring": self.recurring,
            "total_cost": str(self.total_cost),
            "family_contribution": str(self.family_contribution),
            "pe_contribution": str(self.pe_contribution),
            "months": self.months,
            "line_total_cost": str(self.line_total_cost),
            "line_total_family_contribution": str(self.line_total_family_contribution),
            "line_total_pe_contribution": str(self.line_total_pe_contribution),
        }


@dataclass(frozen=True)
class ContributionBreakdown:
    """Category-level totals from the contribution calculator"""
    category: SupportCategory
    lines: Tuple[CostLineResult, ...]
    total_cost: Decimal
    total_family_contribution: Decimal
    total_pe_contribution: Decimal


@dataclass(frozen=True)
class AllocationSnapshot:
    """Ephemeral view of a family's social support budget"""
    family_id: str
    poverty_level: PovertyLevel
    cap: Decimal
    already_used: Decimal

    @property
    def available(self) -> Decimal:
        return max(self.cap - self.already_used, ZERO)


@dataclass(frozen=True)
class RecordRef:
    """Identifies one record across all category tables"""
    category: SupportCategory
    record_id: int


@dataclass(frozen=True)
class Beneficiary:
    """Family member receiving the intervention"""
    beneficiary_id: Optional[str] = None
    name: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None


@dataclass(frozen=True)
class SupportRecord:
    """Persisted intervention contribution - one row in a category store"""
    id: int
    category: SupportCategory
    family_id: str
    head_name: Optional[str]
    area_type: Optional[str]
    beneficiary: Beneficiary
    poverty_level: Optional[str]
    max_social_support: Decimal
    cost_lines: Tuple[Dict[str, Any], ...]
    details: Dict[str, Any]
    total_cost: Decimal
    total_family_contribution: Decimal
    total_pe_contribution: Decimal
    approval_status: ApprovalStatus
    remarks: Optional[str]
    is_active: bool
    version: int
    duration_months: Optional[int] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class LedgerReservation:
    """Outcome of an atomic reserve attempt against the family ledger"""
    accepted: bool
    committed_total: Decimal


@dataclass(frozen=True)
class ApprovalLogEntry:
    """One approval action taken on a support record"""
    id: int
    category: SupportCategory
    record_id: int
    family_id: str
    from_status: ApprovalStatus
    to_status: ApprovalStatus
    remarks: Optional[str]
    action_by: Optional[str]
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class SupportRequest:
    """A validated-to-be submit/update payload, independent of transport"""
    cost_lines: Dict[str, CostLineInput]
    duration_months: Optional[int] = None
    beneficiary: Beneficiary = field(default_factory=Beneficiary)
    details: Dict[str, Any] = field(default_factory=dict)
    remarks: Optional[str] = None
    actor: Optional[str] = None
