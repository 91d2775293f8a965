"""
Approval Log Repository
Insert-only record of approval actions
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fdp_support.domain.models import ApprovalLogEntry, ApprovalStatus, SupportCategory, SupportRecord
from fdp_support.infrastructure.db.models import ApprovalLogModel


class ApprovalLogRepository:
    """Repository for approval log entries"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(
        self,
        record: SupportRecord,
        from_status: ApprovalStatus,
        to_status: ApprovalStatus,
        remarks: Optional[str],
        action_by: Optional[str],
    ) -> int:
        """
        Log one approval action

        Returns:
            Log entry id
        """
        model = ApprovalLogModel(
            category=record.category,
            record_id=record.id,
            family_id=record.family_id,
            from_status=from_status,
            to_status=to_status,
            remarks=remarks,
            action_by=action_by,
        )
        self.session.add(model)
        await self.session.flush()
        return model.id

    async def list_entries(self, family_id: Optional[str] = None, limit: int = 100) -> List[ApprovalLogEntry]:
        """Most recent actions first"""
        stmt = select(ApprovalLogModel)
        if family_id:
            stmt = stmt.where(ApprovalLogModel.family_id == family_id)
        stmt = stmt.order_by(ApprovalLogModel.id.desc()).limit(limit)

        result = await self.session.execute(stmt)
        return [self._to_domain(m) for m in result.scalars().all()]

    @staticmethod
    def _to_domain(model: ApprovalLogModel) -> ApprovalLogEntry:
        return ApprovalLogEntry(
            id=model.id,
            category=SupportCategory(model.category),
            record_id=model.record_id,
            family_id=model.family_id,
            from_status=ApprovalStatus(model.from_status),
            to_status=ApprovalStatus(model.to_status),
            remarks=model.remarks,
            action_by=model.action_by,
            created_at=model.created_at,
        )
