"""
Social Support API Routes
Submit, edit, preview and list category contributions

One router serves all four categories; the category path segment picks
the cost lines and form rules:
- education: admission (one-time), tuition, hostel, transport
- health: health
- housing: habitat
- food: food
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from fdp_support.api.deps import commit_write, get_allocation_engine
from fdp_support.api.serializers import breakdown_to_dict, record_to_dict, snapshot_to_dict
from fdp_support.domain.errors import format_pkr
from fdp_support.domain.models import Beneficiary, CostLineInput, SupportRequest, get_descriptor
from fdp_support.domain.services.allocation_engine import AllocationEngine
from fdp_support.infrastructure.db.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


# -------------------------------------------------------------------
# Request models
# -------------------------------------------------------------------

class CostLinePayload(BaseModel):
    """One cost line as typed into the form"""
    total_cost: Optional[Decimal] = Field(None, description="Cost per period in PKR")
    family_contribution: Optional[Decimal] = Field(None, description="Family share per period in PKR")
    months: Optional[int] = Field(None, description="Months for a recurring line (defaults to duration_months)")


class ContributionPayload(BaseModel):
    """Fields shared by submit, update and preview"""
    beneficiary_id: Optional[str] = None
    beneficiary_name: Optional[str] = None
    beneficiary_age: Optional[int] = None
    beneficiary_gender: Optional[str] = None
    cost_lines: Dict[str, CostLinePayload] = Field(default_factory=dict)
    duration_months: Optional[int] = Field(None, description="Default months for recurring lines")
    details: Dict[str, Any] = Field(default_factory=dict, description="Category-specific form fields")
    remarks: Optional[str] = None

    def to_request(self, actor: Optional[str] = None) -> SupportRequest:
        return SupportRequest(
            cost_lines={
                name: CostLineInput(
                    total_cost=line.total_cost,
                    family_contribution=line.family_contribution,
                    months=line.months,
                )
                for name, line in self.cost_lines.items()
            },
            duration_months=self.duration_months,
            beneficiary=Beneficiary(
                beneficiary_id=self.beneficiary_id,
                name=self.beneficiary_name,
                age=self.beneficiary_age,
                gender=self.beneficiary_gender,
            ),
            details=dict(self.details),
            remarks=self.remarks,
            actor=actor,
        )


class SubmitContributionRequest(ContributionPayload):
    family_id: str = Field(..., min_length=1, description="Family / form number")
    created_by: Optional[str] = None


class UpdateContributionRequest(ContributionPayload):
    expected_version: Optional[int] = Field(None, description="Version the caseworker loaded")
    updated_by: Optional[str] = None


class PreviewContributionRequest(ContributionPayload):
    family_id: str = Field(..., min_length=1)
    exclude_record_id: Optional[int] = Field(None, description="Record being edited, if any")


# -------------------------------------------------------------------
# Routes
# -------------------------------------------------------------------

@router.post("/{category}/preview")
async def preview_contribution(
    category: str,
    payload: PreviewContributionRequest,
    engine: AllocationEngine = Depends(get_allocation_engine),
):
    """
    Live form computation.

    Nothing is validated strictly or saved; negative inputs count as zero.
    """
    breakdown, snapshot = await engine.preview(
        category, payload.family_id, payload.to_request(), payload.exclude_record_id
    )
    fits, reason = engine.guard.can_allocate(
        breakdown.total_pe_contribution, snapshot.already_used, snapshot.cap
    )
    excess = breakdown.total_pe_contribution + snapshot.already_used - snapshot.cap
    return {
        "breakdown": breakdown_to_dict(breakdown),
        "snapshot": snapshot_to_dict(snapshot),
        "fits": fits,
        "message": reason if not fits else f"Within budget ({format_pkr(snapshot.available)} available)",
        "exceeds_by": float(excess) if excess > 0 else 0.0,
    }


@router.post("/{category}", status_code=201)
async def submit_contribution(
    category: str,
    payload: SubmitContributionRequest,
    engine: AllocationEngine = Depends(get_allocation_engine),
    db: AsyncSession = Depends(get_db),
):
    """Save a new contribution as Pending if it fits under the family's cap"""
    record, snapshot = await engine.submit(
        category, payload.family_id, payload.to_request(actor=payload.created_by)
    )
    await commit_write(db)
    return {"accepted": True, "record": record_to_dict(record), "snapshot": snapshot_to_dict(snapshot)}


@router.put("/{category}/{record_id}")
async def update_contribution(
    category: str,
    record_id: int,
    payload: UpdateContributionRequest,
    engine: AllocationEngine = Depends(get_allocation_engine),
    db: AsyncSession = Depends(get_db),
):
    """Edit a Pending contribution; the record's old amount does not count against it"""
    record, snapshot = await engine.update(
        category,
        record_id,
        payload.to_request(actor=payload.updated_by),
        expected_version=payload.expected_version,
    )
    await commit_write(db)
    return {"accepted": True, "record": record_to_dict(record), "snapshot": snapshot_to_dict(snapshot)}


@router.get("/{category}/{record_id}")
async def get_contribution(
    category: str,
    record_id: int,
    engine: AllocationEngine = Depends(get_allocation_engine),
):
    record = await engine.get_record(category, record_id)
    return record_to_dict(record)


@router.get("/{category}")
async def list_contributions(
    category: str,
    family_id: str = Query(..., min_length=1),
    include_inactive: bool = Query(False),
    engine: AllocationEngine = Depends(get_allocation_engine),
):
    """All records of one category for a family"""
    descriptor = get_descriptor(category)
    records = await engine.record_repo.list_for_family(descriptor.category, family_id, include_inactive)
    return {
        "category": descriptor.category.value,
        "family_id": family_id,
        "count": len(records),
        "records": [record_to_dict(r) for r in records],
    }


@router.delete("/{category}/{record_id}")
async def deactivate_contribution(
    category: str,
    record_id: int,
    deleted_by: Optional[str] = Query(None),
    engine: AllocationEngine = Depends(get_allocation_engine),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete a Pending contribution and free its budget"""
    record = await engine.deactivate(category, record_id, actor=deleted_by)
    snapshot = await engine.get_snapshot(record.family_id)
    await commit_write(db)
    return {"accepted": True, "record": record_to_dict(record), "snapshot": snapshot_to_dict(snapshot)}
