"""
Family Baseline Repository
Read-only access to intake baselines
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fdp_support.domain.models import AreaType, FamilyBaseline
from fdp_support.infrastructure.db.models import FamilyBaselineModel


class BaselineRepository:
    """Repository for FamilyBaseline data access"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def get(self, family_id: str) -> Optional[FamilyBaseline]:
        """
        Get the baseline for a family

        Args:
            family_id: Family / form number

        Returns:
            FamilyBaseline or None
        """
        result = await self.session.execute(
            select(FamilyBaselineModel).where(FamilyBaselineModel.family_id == family_id)
        )
        model = result.scalar_one_or_none()

        return self._to_domain(model) if model else None

    @staticmethod
    def _to_domain(model: FamilyBaselineModel) -> FamilyBaseline:
        """Convert database model to domain entity"""
        return FamilyBaseline(
            family_id=model.family_id,
            head_name=model.head_name,
            household_income=Decimal(str(model.household_income or 0)),
            member_count=int(model.member_count or 0),
            area_type=AreaType.parse(model.area_type),
        )
