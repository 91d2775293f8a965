"""
Family API Routes
Baseline, poverty level, support cap and allocation snapshot
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from fdp_support.api.deps import commit_write, get_allocation_engine
from fdp_support.api.serializers import assessment_to_dict, snapshot_to_dict
from fdp_support.domain.errors import ValidationError
from fdp_support.domain.models import RecordRef, get_descriptor
from fdp_support.domain.services.allocation_engine import AllocationEngine
from fdp_support.infrastructure.db.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


class BaselineResponse(BaseModel):
    family_id: str
    head_name: Optional[str] = None
    household_income: float
    member_count: int
    area_type: str
    per_capita_income: float


class SupportCapResponse(BaseModel):
    family_id: str
    poverty_level: str
    support_cap: float
    policy_version: str


@router.get("/{family_id}/baseline", response_model=BaselineResponse)
async def get_family_baseline(family_id: str, engine: AllocationEngine = Depends(get_allocation_engine)):
    """Household baseline captured at intake"""
    baseline = await engine.get_baseline(family_id)
    return BaselineResponse(
        family_id=baseline.family_id,
        head_name=baseline.head_name,
        household_income=float(baseline.household_income),
        member_count=baseline.member_count,
        area_type=baseline.area_type.value,
        per_capita_income=float(round(baseline.per_capita_income, 2)),
    )


@router.get("/{family_id}/poverty-level")
async def get_poverty_level(family_id: str, engine: AllocationEngine = Depends(get_allocation_engine)):
    """Poverty level with per-capita income and self-sufficiency status"""
    assessment = await engine.assess(family_id)
    return assessment_to_dict(assessment)


@router.get("/{family_id}/support-cap", response_model=SupportCapResponse)
async def get_support_cap(family_id: str, engine: AllocationEngine = Depends(get_allocation_engine)):
    """Lifetime social support cap for the family's poverty level"""
    assessment = await engine.assess(family_id)
    return SupportCapResponse(
        family_id=family_id,
        poverty_level=assessment.poverty_level.value,
        support_cap=float(assessment.support_cap),
        policy_version=assessment.policy_version,
    )


@router.get("/{family_id}/allocation")
async def get_allocation_snapshot(
    family_id: str,
    exclude_category: Optional[str] = Query(None, description="Category of the record being edited"),
    exclude_record_id: Optional[int] = Query(None, description="Id of the record being edited"),
    engine: AllocationEngine = Depends(get_allocation_engine),
):
    """
    Already used / cap / available.

    Pass the record being edited to leave it out of "already used".
    """
    if (exclude_category is None) != (exclude_record_id is None):
        raise ValidationError(
            "exclude_category and exclude_record_id must be given together",
            field="exclude_record_id",
        )

    exclude = None
    if exclude_category is not None:
        exclude = RecordRef(get_descriptor(exclude_category).category, exclude_record_id)

    snapshot = await engine.get_snapshot(family_id, exclude)
    return snapshot_to_dict(snapshot)


@router.get("/{family_id}/ledger")
async def check_ledger(
    family_id: str,
    engine: AllocationEngine = Depends(get_allocation_engine),
):
    """Compare the budget ledger with the family's records"""
    snapshot, ledger_total, issues = await engine.check_ledger(family_id)
    return {
        "valid": not issues,
        "ledger_total": float(ledger_total) if ledger_total is not None else None,
        "issues": issues,
        "snapshot": snapshot_to_dict(snapshot),
    }


@router.post("/{family_id}/ledger/rebuild")
async def rebuild_ledger(
    family_id: str,
    engine: AllocationEngine = Depends(get_allocation_engine),
    db: AsyncSession = Depends(get_db),
):
    """Reset the family's budget ledger from its records"""
    snapshot = await engine.rebuild_ledger(family_id)
    await commit_write(db)
    logger.info("Rebuilt ledger for family %s at %s", family_id, snapshot.already_used)
    return {"rebuilt": True, "snapshot": snapshot_to_dict(snapshot)}
