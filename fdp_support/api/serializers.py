"""
Response serializers
Domain entities → JSON-ready dicts (amounts as floats, timestamps in the service timezone)
"""

from typing import Any, Dict, Optional

from fdp_support.domain.models import (
    AllocationSnapshot,
    ApprovalLogEntry,
    ContributionBreakdown,
    PovertyAssessment,
    SupportRecord,
)
from fdp_support.utils.time import to_local_iso


def _iso(value) -> Optional[str]:
    return to_local_iso(value) if value else None


def snapshot_to_dict(snapshot: AllocationSnapshot) -> Dict[str, Any]:
    return {
        "family_id": snapshot.family_id,
        "poverty_level": snapshot.poverty_level.value,
        "cap": float(snapshot.cap),
        "already_used": float(snapshot.already_used),
        "available": float(snapshot.available),
    }


def assessment_to_dict(assessment: PovertyAssessment) -> Dict[str, Any]:
    return {
        "family_id": assessment.family_id,
        "area_type": assessment.area_type.value,
        "per_capita_income": float(round(assessment.per_capita_income, 2)),
        "self_sufficiency_income": float(assessment.self_sufficiency_income),
        "self_sufficiency_ratio": float(round(assessment.self_sufficiency_ratio, 4)),
        "self_sufficiency_status": assessment.self_sufficiency_status,
        "poverty_level": assessment.poverty_level.value,
        "support_cap": float(assessment.support_cap),
        "policy_version": assessment.policy_version,
    }


def breakdown_to_dict(breakdown: ContributionBreakdown) -> Dict[str, Any]:
    return {
        "category": breakdown.category.value,
        "lines": [line.to_dict() for line in breakdown.lines],
        "total_cost": float(breakdown.total_cost),
        "total_family_contribution": float(breakdown.total_family_contribution),
        "total_pe_contribution": float(breakdown.total_pe_contribution),
    }


def record_to_dict(record: SupportRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "category": record.category.value,
        "family_id": record.family_id,
        "head_name": record.head_name,
        "area_type": record.area_type,
        "beneficiary_id": record.beneficiary.beneficiary_id,
        "beneficiary_name": record.beneficiary.name,
        "beneficiary_age": record.beneficiary.age,
        "beneficiary_gender": record.beneficiary.gender,
        "poverty_level": record.poverty_level,
        "max_social_support": float(record.max_social_support),
        "cost_lines": list(record.cost_lines),
        "details": record.details,
        "duration_months": record.duration_months,
        "total_cost": float(record.total_cost),
        "total_family_contribution": float(record.total_family_contribution),
        "total_pe_contribution": float(record.total_pe_contribution),
        "approval_status": record.approval_status.value,
        "remarks": record.remarks,
        "is_active": record.is_active,
        "version": record.version,
        "created_by": record.created_by,
        "created_at": _iso(record.created_at),
        "updated_by": record.updated_by,
        "updated_at": _iso(record.updated_at),
    }


def log_entry_to_dict(entry: ApprovalLogEntry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "category": entry.category.value,
        "record_id": entry.record_id,
        "family_id": entry.family_id,
        "from_status": entry.from_status.value,
        "to_status": entry.to_status.value,
        "remarks": entry.remarks,
        "action_by": entry.action_by,
        "created_at": _iso(entry.created_at),
    }
