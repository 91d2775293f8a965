"""
Database Models (SQLAlchemy ORM)
Category stores are soft-delete only - NO DELETES
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime,
    Boolean, Text, Enum as SQLEnum, Index, JSON, UniqueConstraint
)
from sqlalchemy.orm import declared_attr

from fdp_support.domain.models import ApprovalStatus, SupportCategory
from fdp_support.infrastructure.db.database import Base
from fdp_support.utils.time import now_local_naive


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


def approval_status_type():
    return SQLEnum(
        ApprovalStatus, name="approval_status", native_enum=False, length=20, values_callable=_enum_values
    )


def support_category_type():
    return SQLEnum(
        SupportCategory, name="support_category", native_enum=False, length=20, values_callable=_enum_values
    )


# Tables

class FamilyBaselineModel(Base):
    """Household baseline captured at intake (owned by the intake module)"""
    __tablename__ = "family_baseline"

    id = Column(Integer, primary_key=True, autoincrement=True)
    family_id = Column(String(50), nullable=False, unique=True, index=True)
    head_name = Column(String(200), nullable=True)
    household_income = Column(Numeric(14, 2), nullable=False, default=0)
    member_count = Column(Integer, nullable=False, default=0)
    area_type = Column(String(30), nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_local_naive)


class SupportRecordMixin:
    """Column layout shared by the four category stores"""

    id = Column(Integer, primary_key=True, autoincrement=True)
    family_id = Column(String(50), nullable=False, index=True)

    head_name = Column(String(200), nullable=True)
    area_type = Column(String(30), nullable=True)

    beneficiary_id = Column(String(50), nullable=True)
    beneficiary_name = Column(String(200), nullable=True)
    beneficiary_age = Column(Integer, nullable=True)
    beneficiary_gender = Column(String(20), nullable=True)

    # Policy snapshot at write time
    poverty_level = Column(String(20), nullable=True)
    max_social_support = Column(Numeric(14, 2), nullable=False, default=0)

    cost_lines = Column(JSON, nullable=False, default=list)
    details = Column(JSON, nullable=False, default=dict)
    duration_months = Column(Integer, nullable=True)

    total_cost = Column(Numeric(14, 2), nullable=False, default=0)
    total_family_contribution = Column(Numeric(14, 2), nullable=False, default=0)
    total_pe_contribution = Column(Numeric(14, 2), nullable=False, default=0)

    approval_status = Column(approval_status_type(), nullable=False, default=ApprovalStatus.PENDING)
    remarks = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_local_naive)
    updated_by = Column(String(100), nullable=True)
    updated_at = Column(DateTime, nullable=True, onupdate=now_local_naive)

    version = Column(Integer, nullable=False)

    @declared_attr.directive
    def __mapper_args__(cls):
        return {"version_id_col": cls.version}

    @declared_attr.directive
    def __table_args__(cls):
        return (
            Index(f"idx_{cls.__tablename__}_family_active", "family_id", "is_active", "approval_status"),
        )


class EducationSupportModel(SupportRecordMixin, Base):
    """Education interventions (admission, tuition, hostel, transport)"""
    __tablename__ = "fdp_education_support"


class HealthSupportModel(SupportRecordMixin, Base):
    """Health interventions"""
    __tablename__ = "fdp_health_support"


class HousingSupportModel(SupportRecordMixin, Base):
    """Housing (habitat) interventions"""
    __tablename__ = "fdp_housing_support"


class FoodSupportModel(SupportRecordMixin, Base):
    """Food interventions"""
    __tablename__ = "fdp_food_support"


MODEL_BY_CATEGORY = {
    SupportCategory.EDUCATION: EducationSupportModel,
    SupportCategory.HEALTH: HealthSupportModel,
    SupportCategory.HOUSING: HousingSupportModel,
    SupportCategory.FOOD: FoodSupportModel,
}


class FamilySupportLedgerModel(Base):
    """Per-family running total of committed PE contributions"""
    __tablename__ = "family_support_ledger"

    id = Column(Integer, primary_key=True, autoincrement=True)
    family_id = Column(String(50), nullable=False)
    committed_total = Column(Numeric(14, 2), nullable=False, default=0)
    support_cap = Column(Numeric(14, 2), nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime, nullable=False, default=now_local_naive, onupdate=now_local_naive)

    __table_args__ = (
        UniqueConstraint("family_id", name="uq_family_support_ledger_family"),
    )


class ApprovalLogModel(Base):
    """Insert-only log of approval actions"""
    __tablename__ = "fdp_approval_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category = Column(support_category_type(), nullable=False)
    record_id = Column(Integer, nullable=False)
    family_id = Column(String(50), nullable=False, index=True)
    from_status = Column(approval_status_type(), nullable=False)
    to_status = Column(approval_status_type(), nullable=False)
    remarks = Column(Text, nullable=True)
    action_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_local_naive)

    __table_args__ = (
        Index("idx_approval_log_record", "category", "record_id"),
    )
