"""
Approval API Routes
Approve or reject Pending contributions, and read the approval log
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from fdp_support.api.deps import commit_write, get_allocation_engine
from fdp_support.api.serializers import log_entry_to_dict, record_to_dict, snapshot_to_dict
from fdp_support.domain.models import ApprovalStatus
from fdp_support.domain.services.allocation_engine import AllocationEngine
from fdp_support.infrastructure.db.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


class ApprovalRequest(BaseModel):
    """Approval decision"""
    status: ApprovalStatus = Field(..., description="Approved or Rejected")
    remarks: Optional[str] = None
    action_by: Optional[str] = None


@router.get("/log")
async def get_approval_log(
    family_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    engine: AllocationEngine = Depends(get_allocation_engine),
):
    """Approval actions, most recent first"""
    entries = await engine.approval_log_repo.list_entries(family_id=family_id, limit=limit)
    return {"count": len(entries), "entries": [log_entry_to_dict(e) for e in entries]}


@router.put("/{category}/{record_id}")
async def set_approval_status(
    category: str,
    record_id: int,
    payload: ApprovalRequest,
    engine: AllocationEngine = Depends(get_allocation_engine),
    db: AsyncSession = Depends(get_db),
):
    """
    Pending → Approved keeps the budget reserved at submission.
    Pending → Rejected gives it back.
    """
    record = await engine.set_approval(
        category, record_id, payload.status, remarks=payload.remarks, actor=payload.action_by
    )
    snapshot = await engine.get_snapshot(record.family_id)
    await commit_write(db)
    return {"accepted": True, "record": record_to_dict(record), "snapshot": snapshot_to_dict(snapshot)}
