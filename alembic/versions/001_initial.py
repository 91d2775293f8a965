# alembic/versions/001_initial.py

"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

SUPPORT_TABLES = (
    'fdp_education_support',
    'fdp_health_support',
    'fdp_housing_support',
    'fdp_food_support',
)


def _support_columns():
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('family_id', sa.String(length=50), nullable=False),
        sa.Column('head_name', sa.String(length=200), nullable=True),
        sa.Column('area_type', sa.String(length=30), nullable=True),
        sa.Column('beneficiary_id', sa.String(length=50), nullable=True),
        sa.Column('beneficiary_name', sa.String(length=200), nullable=True),
        sa.Column('beneficiary_age', sa.Integer(), nullable=True),
        sa.Column('beneficiary_gender', sa.String(length=20), nullable=True),
        sa.Column('poverty_level', sa.String(length=20), nullable=True),
        sa.Column('max_social_support', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('cost_lines', sa.JSON(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column('duration_months', sa.Integer(), nullable=True),
        sa.Column('total_cost', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('total_family_contribution', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('total_pe_contribution', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('approval_status', sa.String(length=20), nullable=False, server_default='Pending'),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_by', sa.String(length=100), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
    ]


def upgrade() -> None:
    # Baseline is written by the intake module; created here for standalone deployments
    op.create_table('family_baseline',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('family_id', sa.String(length=50), nullable=False),
        sa.Column('head_name', sa.String(length=200), nullable=True),
        sa.Column('household_income', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('member_count', sa.Integer(), nullable=False),
        sa.Column('area_type', sa.String(length=30), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_family_baseline_family_id'), 'family_baseline', ['family_id'], unique=True)

    for table in SUPPORT_TABLES:
        op.create_table(table, *_support_columns())
        op.create_index(op.f(f'ix_{table}_family_id'), table, ['family_id'], unique=False)
        op.create_index(f'idx_{table}_family_active', table, ['family_id', 'is_active', 'approval_status'], unique=False)

    op.create_table('family_support_ledger',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('family_id', sa.String(length=50), nullable=False),
        sa.Column('committed_total', sa.Numeric(precision=14, scale=2), nullable=False, server_default='0'),
        sa.Column('support_cap', sa.Numeric(precision=14, scale=2), nullable=False, server_default='0'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('family_id', name='uq_family_support_ledger_family'),
    )

    op.create_table('fdp_approval_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('record_id', sa.Integer(), nullable=False),
        sa.Column('family_id', sa.String(length=50), nullable=False),
        sa.Column('from_status', sa.String(length=20), nullable=False),
        sa.Column('to_status', sa.String(length=20), nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('action_by', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_fdp_approval_log_family_id'), 'fdp_approval_log', ['family_id'], unique=False)
    op.create_index('idx_approval_log_record', 'fdp_approval_log', ['category', 'record_id'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_approval_log_record', table_name='fdp_approval_log')
    op.drop_index(op.f('ix_fdp_approval_log_family_id'), table_name='fdp_approval_log')
    op.drop_table('fdp_approval_log')
    op.drop_table('family_support_ledger')
    for table in reversed(SUPPORT_TABLES):
        op.drop_index(f'idx_{table}_family_active', table_name=table)
        op.drop_index(op.f(f'ix_{table}_family_id'), table_name=table)
        op.drop_table(table)
    op.drop_index(op.f('ix_family_baseline_family_id'), table_name='family_baseline')
    op.drop_table('family_baseline')
