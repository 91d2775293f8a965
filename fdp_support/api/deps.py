"""
Route dependencies
Wire the allocation engine to a request-scoped database session
"""

import logging

from fastapi import Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fdp_support.config import settings
from fdp_support.domain.errors import TransientStoreError
from fdp_support.domain.services.allocation_engine import AllocationEngine
from fdp_support.domain.services.contribution_calculator import ContributionCalculator
from fdp_support.domain.services.policy_config_engine import PolicyConfigEngine
from fdp_support.infrastructure.db.database import get_db
from fdp_support.infrastructure.db.repositories import (
    ApprovalLogRepository,
    BaselineRepository,
    LedgerRepository,
    SupportRecordRepository,
)

logger = logging.getLogger(__name__)


def get_policy_engine() -> PolicyConfigEngine:
    from fdp_support.main import policy_engine

    if policy_engine is None:
        raise HTTPException(status_code=500, detail="Poverty policy not loaded")
    return policy_engine


def get_allocation_engine(
    db: AsyncSession = Depends(get_db),
    policy_engine: PolicyConfigEngine = Depends(get_policy_engine),
) -> AllocationEngine:
    return AllocationEngine(
        policy=policy_engine.policy,
        calculator=ContributionCalculator(
            max_duration_months=settings.MAX_DURATION_MONTHS,
            max_line_amount=settings.MAX_LINE_AMOUNT,
        ),
        baseline_repo=BaselineRepository(db),
        record_repo=SupportRecordRepository(db),
        ledger_repo=LedgerRepository(db),
        approval_log_repo=ApprovalLogRepository(db),
    )


async def commit_write(db: AsyncSession) -> None:
    """
    Commit the request's writes.

    Raises:
        TransientStoreError: commit failed; the write may or may not have landed
    """
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        logger.error("❌ Commit failed, write outcome unknown: %s", exc)
        await db.rollback()
        raise TransientStoreError(
            "Could not confirm the save; reload the allocation before submitting again",
            write_outcome_unknown=True,
        ) from exc
