"""
Support Record Repository

One repository for all four category stores. The table is picked from the
category; the column layout is shared.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from fdp_support.domain.errors import NotFoundError, StaleRecordError
from fdp_support.domain.models import (
    ApprovalStatus,
    Beneficiary,
    ContributionBreakdown,
    FamilyBaseline,
    PovertyAssessment,
    RecordRef,
    SupportCategory,
    SupportRecord,
    SupportRequest,
)
from fdp_support.infrastructure.db.models import MODEL_BY_CATEGORY
from fdp_support.utils.time import now_local_naive


class SupportRecordRepository:
    """Repository for category support records"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def get(
        self, category: SupportCategory, record_id: int, for_update: bool = False
    ) -> Optional[SupportRecord]:
        """Read one record; ``for_update`` takes a row lock until the transaction ends"""
        model = await self._load(category, record_id, for_update)
        return self._to_domain(category, model) if model else None

    async def list_for_family(
        self,
        category: SupportCategory,
        family_id: str,
        include_inactive: bool = False,
    ) -> List[SupportRecord]:
        """
        Records of one category for a family, oldest first

        Args:
            category: Support category
            family_id: Family / form number
            include_inactive: Include soft-deleted rows

        Returns:
            List of SupportRecord
        """
        model_cls = MODEL_BY_CATEGORY[category]
        stmt = select(model_cls).where(model_cls.family_id == family_id)
        if not include_inactive:
            stmt = stmt.where(model_cls.is_active.is_(True))
        result = await self.session.execute(stmt.order_by(model_cls.id))
        return [self._to_domain(category, m) for m in result.scalars().all()]

    async def sum_pe_contribution(self, family_id: str, exclude: Optional[RecordRef] = None) -> Decimal:
        """
        Committed PE contribution across every category store.

        Counts active records that are Pending or Approved. ``exclude``
        leaves out one record (the one being edited).
        """
        total = Decimal("0")
        for category, model_cls in MODEL_BY_CATEGORY.items():
            conditions = [
                model_cls.family_id == family_id,
                model_cls.is_active.is_(True),
                model_cls.approval_status != ApprovalStatus.REJECTED,
            ]
            if exclude is not None and exclude.category == category:
                conditions.append(model_cls.id != exclude.record_id)

            result = await self.session.execute(
                select(func.coalesce(func.sum(model_cls.total_pe_contribution), 0))
                .where(and_(*conditions))
            )
            total += Decimal(str(result.scalar() or 0))

        return total

    async def create(
        self,
        category: SupportCategory,
        family_id: str,
        assessment: PovertyAssessment,
        baseline: FamilyBaseline,
        breakdown: ContributionBreakdown,
        request: SupportRequest,
    ) -> SupportRecord:
        """Insert a new Pending record"""
        model_cls = MODEL_BY_CATEGORY[category]
        model = model_cls(
            family_id=family_id,
            head_name=baseline.head_name,
            area_type=baseline.area_type.value,
            approval_status=ApprovalStatus.PENDING,
            is_active=True,
            created_by=request.actor,
        )
        self._apply(model, assessment, breakdown, request)

        self.session.add(model)
        await self.session.flush()

        return self._to_domain(category, model)

    async def update(
        self,
        category: SupportCategory,
        record_id: int,
        assessment: PovertyAssessment,
        breakdown: ContributionBreakdown,
        request: SupportRequest,
        expected_version: int,
    ) -> SupportRecord:
        """Overwrite a record's inputs and totals. Raises StaleRecordError if it moved past ``expected_version``"""
        model = await self._require(category, record_id, expected_version)
        self._apply(model, assessment, breakdown, request)
        model.updated_by = request.actor
        model.updated_at = now_local_naive()
        await self._flush(category, model)
        return self._to_domain(category, model)

    async def set_status(
        self,
        category: SupportCategory,
        record_id: int,
        status: ApprovalStatus,
        remarks: Optional[str],
        actor: Optional[str],
        expected_version: int,
    ) -> SupportRecord:
        model = await self._require(category, record_id, expected_version)
        model.approval_status = status
        if remarks is not None:
            model.remarks = remarks
        model.updated_by = actor
        model.updated_at = now_local_naive()
        await self._flush(category, model)
        return self._to_domain(category, model)

    async def deactivate(
        self, category: SupportCategory, record_id: int, actor: Optional[str], expected_version: int
    ) -> SupportRecord:
        """Soft delete"""
        model = await self._require(category, record_id, expected_version)
        model.is_active = False
        model.updated_by = actor
        model.updated_at = now_local_naive()
        await self._flush(category, model)
        return self._to_domain(category, model)

    # ------------------------------------------------------------------

    async def _load(self, category: SupportCategory, record_id: int, for_update: bool = False):
        model_cls = MODEL_BY_CATEGORY[category]
        # Always refresh from the row; an identity-map copy may predate another session's commit
        stmt = (
            select(model_cls)
            .where(model_cls.id == record_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _require(self, category: SupportCategory, record_id: int, expected_version: int):
        model = await self._load(category, record_id, for_update=True)
        if model is None:
            raise NotFoundError(f"{category.value} record", record_id)
        if model.version != expected_version:
            raise StaleRecordError(category.value, record_id, expected_version, model.version)
        return model

    async def _flush(self, category: SupportCategory, model) -> None:
        try:
            await self.session.flush()
        except StaleDataError:
            raise StaleRecordError(category.value, model.id, expected_version=model.version)

    @staticmethod
    def _apply(model, assessment: PovertyAssessment, breakdown: ContributionBreakdown, request: SupportRequest) -> None:
        beneficiary = request.beneficiary
        model.beneficiary_id = beneficiary.beneficiary_id
        model.beneficiary_name = beneficiary.name
        model.beneficiary_age = beneficiary.age
        model.beneficiary_gender = beneficiary.gender

        model.poverty_level = assessment.poverty_level.value
        model.max_social_support = assessment.support_cap

        model.cost_lines = [line.to_dict() for line in breakdown.lines]
        model.details = dict(request.details or {})
        model.duration_months = request.duration_months

        model.total_cost = breakdown.total_cost
        model.total_family_contribution = breakdown.total_family_contribution
        model.total_pe_contribution = breakdown.total_pe_contribution
        if request.remarks is not None:
            model.remarks = request.remarks

    @staticmethod
    def _to_domain(category: SupportCategory, model) -> SupportRecord:
        """Convert database model to domain entity"""
        return SupportRecord(
            id=model.id,
            category=category,
            family_id=model.family_id,
            head_name=model.head_name,
            area_type=model.area_type,
            beneficiary=Beneficiary(
                beneficiary_id=model.beneficiary_id,
                name=model.beneficiary_name,
                age=model.beneficiary_age,
                gender=model.beneficiary_gender,
            ),
            poverty_level=model.poverty_level,
            max_social_support=Decimal(str(model.max_social_support or 0)),
            cost_lines=tuple(model.cost_lines or ()),
            details=dict(model.details or {}),
            total_cost=Decimal(str(model.total_cost or 0)),
            total_family_contribution=Decimal(str(model.total_family_contribution or 0)),
            total_pe_contribution=Decimal(str(model.total_pe_contribution or 0)),
            approval_status=ApprovalStatus(model.approval_status),
            remarks=model.remarks,
            is_active=bool(model.is_active),
            version=model.version,
            duration_months=model.duration_months,
            created_by=model.created_by,
            created_at=model.created_at,
            updated_by=model.updated_by,
            updated_at=model.updated_at,
        )
