"""Create referral engine schema

Revision ID: 20261019_000001
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Binary tree members
    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referral_code', sa.String(20), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('position', sa.String(8), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ['parent_id'], ['members.id'],
            name='fk_members_parent_id_members', ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_members'),
        sa.UniqueConstraint('parent_id', 'position', name='uq_members_parent_position'),
        sa.CheckConstraint(
            "(parent_id IS NULL AND position IS NULL) OR "
            "(parent_id IS NOT NULL AND position IS NOT NULL)",
            name='ck_members_parent_position_together',
        ),
        sa.CheckConstraint(
            'parent_id IS NULL OR parent_id <> id',
            name='ck_members_not_own_parent',
        ),
    )
    op.create_index('ix_members_referral_code', 'members', ['referral_code'], unique=True)
    op.create_index('ix_members_parent_id', 'members', ['parent_id'])

    # Versioned payout rules, one active at a time
    op.create_table(
        'distribution_rules',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('base_percentage', sa.DECIMAL(10, 8), nullable=False),
        sa.Column('decay_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_distribution_rules'),
        sa.UniqueConstraint('version', name='uq_distribution_rules_version'),
        sa.CheckConstraint(
            'base_percentage >= 0 AND base_percentage <= 1',
            name='ck_distribution_rules_base_percentage_fraction',
        ),
    )
    op.create_index(
        'uq_distribution_rules_single_active',
        'distribution_rules',
        ['is_active'],
        unique=True,
        postgresql_where=sa.text('is_active'),
        sqlite_where=sa.text('is_active = 1'),
    )

    op.create_table(
        'purchases',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('buyer_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(64), nullable=False),
        sa.Column('bv', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('distributed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ['buyer_id'], ['members.id'],
            name='fk_purchases_buyer_id_members', ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_purchases'),
        sa.CheckConstraint('bv >= 0', name='ck_purchases_bv_non_negative'),
    )
    op.create_index('ix_purchases_buyer_id', 'purchases', ['buyer_id'])
    op.create_index('idx_purchases_buyer_created', 'purchases', ['buyer_id', 'created_at'])

    # Immutable income ledger
    op.create_table(
        'incomes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('to_member_id', sa.Integer(), nullable=False),
        sa.Column('from_member_id', sa.Integer(), nullable=False),
        sa.Column('purchase_id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('bv', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('rate', sa.DECIMAL(10, 8), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ['to_member_id'], ['members.id'],
            name='fk_incomes_to_member_id_members', ondelete='RESTRICT',
        ),
        sa.ForeignKeyConstraint(
            ['from_member_id'], ['members.id'],
            name='fk_incomes_from_member_id_members', ondelete='RESTRICT',
        ),
        sa.ForeignKeyConstraint(
            ['purchase_id'], ['purchases.id'],
            name='fk_incomes_purchase_id_purchases', ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_incomes'),
        sa.UniqueConstraint('purchase_id', 'to_member_id', name='uq_incomes_purchase_beneficiary'),
        sa.CheckConstraint('level >= 1', name='ck_incomes_level_positive'),
        sa.CheckConstraint('amount >= 0', name='ck_incomes_amount_non_negative'),
    )
    op.create_index('ix_incomes_purchase_id', 'incomes', ['purchase_id'])
    op.create_index('idx_incomes_to_member_created', 'incomes', ['to_member_id', 'created_at'])

    op.create_table(
        'income_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('purchase_id', sa.Integer(), nullable=False),
        sa.Column('buyer_id', sa.Integer(), nullable=False),
        sa.Column('rule_id', sa.Integer(), nullable=True),
        sa.Column('bv', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('income_amount', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('levels_paid', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ['purchase_id'], ['purchases.id'],
            name='fk_income_logs_purchase_id_purchases', ondelete='RESTRICT',
        ),
        sa.ForeignKeyConstraint(
            ['buyer_id'], ['members.id'],
            name='fk_income_logs_buyer_id_members', ondelete='RESTRICT',
        ),
        sa.ForeignKeyConstraint(
            ['rule_id'], ['distribution_rules.id'],
            name='fk_income_logs_rule_id_distribution_rules', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_income_logs'),
        sa.UniqueConstraint('purchase_id', name='uq_income_logs_purchase_id'),
    )
    op.create_index('ix_income_logs_buyer_id', 'income_logs', ['buyer_id'])


def downgrade() -> None:
    op.drop_index('ix_income_logs_buyer_id', 'income_logs')
    op.drop_table('income_logs')

    op.drop_index('idx_incomes_to_member_created', 'incomes')
    op.drop_index('ix_incomes_purchase_id', 'incomes')
    op.drop_table('incomes')

    op.drop_index('idx_purchases_buyer_created', 'purchases')
    op.drop_index('ix_purchases_buyer_id', 'purchases')
    op.drop_table('purchases')

    op.drop_index('uq_distribution_rules_single_active', 'distribution_rules')
    op.drop_table('distribution_rules')

    op.drop_index('ix_members_parent_id', 'members')
    op.drop_index('ix_members_referral_code', 'members')
    op.drop_table('members')
