"""metering_tables

Revision ID: 7c3e91a4d2b5
Revises:
Create Date: 2026-02-02 10:14:27.512904

Production-safe migration: Only creates tables that do not exist yet.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '7c3e91a4d2b5'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LIVE_PREDICATE = sa.text("status IN ('active', 'trial')")


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]


def upgrade() -> None:
    # Identity facts read by the policy rules
    if not table_exists('users'):
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('full_name', sa.String(), nullable=False),
            sa.Column('email', sa.String(), nullable=True),
            sa.Column('phone', sa.String(), nullable=True),
            sa.Column('role', sa.String(), nullable=False),
            sa.Column('verification_status', sa.String(), nullable=False),
            sa.Column('parent_user_id', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
            sa.ForeignKeyConstraint(['parent_user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
        op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
        op.create_index(op.f('ix_users_parent_user_id'), 'users', ['parent_user_id'], unique=False)

    if not table_exists('verification_documents'):
        op.create_table('verification_documents',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('document_type', sa.String(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('idx_verification_user_status', 'verification_documents', ['user_id', 'status'], unique=False)
        op.create_index(op.f('ix_verification_documents_id'), 'verification_documents', ['id'], unique=False)
        op.create_index(op.f('ix_verification_documents_user_id'), 'verification_documents', ['user_id'], unique=False)

    if not table_exists('companies'):
        op.create_table('companies',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('created_by_id', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_companies_id'), 'companies', ['id'], unique=False)
        op.create_index(op.f('ix_companies_name'), 'companies', ['name'], unique=False)
        op.create_index(op.f('ix_companies_created_by_id'), 'companies', ['created_by_id'], unique=False)

    if not table_exists('job_postings'):
        op.create_table('job_postings',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('posted_by_id', sa.Integer(), nullable=False),
            sa.Column('company_id', sa.Integer(), nullable=True),
            sa.Column('title', sa.String(), nullable=False),
            sa.Column('description', sa.Text(), nullable=False),
            sa.Column('location', sa.String(), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('has_placement_fee', sa.Boolean(), nullable=False),
            sa.Column('is_placement', sa.Boolean(), nullable=False),
            sa.Column('is_featured', sa.Boolean(), nullable=False),
            sa.Column('shortlink_code', sa.String(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
            sa.ForeignKeyConstraint(['posted_by_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('shortlink_code')
        )
        op.create_index('idx_job_poster_status', 'job_postings', ['posted_by_id', 'status'], unique=False)
        op.create_index(op.f('ix_job_postings_id'), 'job_postings', ['id'], unique=False)
        op.create_index(op.f('ix_job_postings_title'), 'job_postings', ['title'], unique=False)
        op.create_index(op.f('ix_job_postings_posted_by_id'), 'job_postings', ['posted_by_id'], unique=False)
        op.create_index(op.f('ix_job_postings_company_id'), 'job_postings', ['company_id'], unique=False)
        op.create_index(op.f('ix_job_postings_created_at'), 'job_postings', ['created_at'], unique=False)

    # Plan catalog
    if not table_exists('subscription_plans'):
        op.create_table('subscription_plans',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('description', sa.String(), nullable=True),
            sa.Column('plan_type', sa.String(), nullable=False),
            sa.Column('price_monthly', sa.Numeric(10, 2), nullable=False),
            sa.Column('price_yearly', sa.Numeric(10, 2), nullable=False),
            sa.Column('max_job_postings', sa.Integer(), nullable=False),
            sa.Column('max_featured_jobs', sa.Integer(), nullable=False),
            sa.Column('max_resume_views', sa.Integer(), nullable=False),
            sa.Column('max_direct_applications', sa.Integer(), nullable=False),
            sa.Column('max_ai_credits', sa.Integer(), nullable=False),
            sa.Column('max_ai_job_matches', sa.Integer(), nullable=False),
            sa.Column('features', sa.JSON(), nullable=False),
            sa.Column('priority_support', sa.Boolean(), nullable=False),
            sa.Column('advanced_analytics', sa.Boolean(), nullable=False),
            sa.Column('custom_branding', sa.Boolean(), nullable=False),
            sa.Column('trial_days', sa.Integer(), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('version', sa.Integer(), nullable=False),
            *_timestamps(),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_subscription_plans_id'), 'subscription_plans', ['id'], unique=False)
        op.create_index(op.f('ix_subscription_plans_plan_type'), 'subscription_plans', ['plan_type'], unique=True)

    if not table_exists('credit_packages'):
        op.create_table('credit_packages',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('description', sa.String(), nullable=True),
            sa.Column('credit_type', sa.String(), nullable=False),
            sa.Column('credit_amount', sa.Integer(), nullable=False),
            sa.Column('bonus_credits', sa.Integer(), nullable=False),
            sa.Column('price', sa.Numeric(10, 2), nullable=False),
            sa.Column('validity_days', sa.Integer(), nullable=True),
            sa.Column('bundle_config', sa.JSON(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('name')
        )
        op.create_index(op.f('ix_credit_packages_id'), 'credit_packages', ['id'], unique=False)
        op.create_index(op.f('ix_credit_packages_credit_type'), 'credit_packages', ['credit_type'], unique=False)

    # Subscriptions with limits snapshotted at activation
    if not table_exists('user_subscriptions'):
        op.create_table('user_subscriptions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('plan_id', sa.Integer(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('billing_cycle', sa.String(), nullable=False),
            sa.Column('period_days', sa.Integer(), nullable=False),
            sa.Column('current_period_start', sa.DateTime(), nullable=False),
            sa.Column('current_period_end', sa.DateTime(), nullable=False),
            sa.Column('canceled_at', sa.DateTime(), nullable=True),
            sa.Column('limit_job_postings', sa.Integer(), nullable=False),
            sa.Column('limit_featured_jobs', sa.Integer(), nullable=False),
            sa.Column('limit_resume_views', sa.Integer(), nullable=False),
            sa.Column('limit_direct_applications', sa.Integer(), nullable=False),
            sa.Column('limit_ai_credits', sa.Integer(), nullable=False),
            sa.Column('limit_ai_job_matches', sa.Integer(), nullable=False),
            *_timestamps(),
            sa.ForeignKeyConstraint(['plan_id'], ['subscription_plans.id'], ),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_user_subscriptions_id'), 'user_subscriptions', ['id'], unique=False)
        op.create_index(op.f('ix_user_subscriptions_user_id'), 'user_subscriptions', ['user_id'], unique=False)
        op.create_index(op.f('ix_user_subscriptions_plan_id'), 'user_subscriptions', ['plan_id'], unique=False)
        # One live subscription per user
        op.create_index(
            'uq_user_live_subscription', 'user_subscriptions', ['user_id'],
            unique=True,
            sqlite_where=LIVE_PREDICATE,
            postgresql_where=LIVE_PREDICATE,
        )

    # Usage ledger
    if not table_exists('usage_counters'):
        op.create_table('usage_counters',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('subscription_id', sa.Integer(), nullable=False),
            sa.Column('resource_type', sa.String(), nullable=False),
            sa.Column('period_start', sa.DateTime(), nullable=False),
            sa.Column('used', sa.Integer(), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.CheckConstraint('used >= 0', name='ck_usage_used_non_negative'),
            sa.ForeignKeyConstraint(['subscription_id'], ['user_subscriptions.id'], ),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('subscription_id', 'resource_type', 'period_start', name='uq_usage_sub_resource_period')
        )
        op.create_index('idx_usage_user_resource', 'usage_counters', ['user_id', 'resource_type'], unique=False)
        op.create_index(op.f('ix_usage_counters_id'), 'usage_counters', ['id'], unique=False)
        op.create_index(op.f('ix_usage_counters_user_id'), 'usage_counters', ['user_id'], unique=False)
        op.create_index(op.f('ix_usage_counters_subscription_id'), 'usage_counters', ['subscription_id'], unique=False)
        op.create_index(op.f('ix_usage_counters_resource_type'), 'usage_counters', ['resource_type'], unique=False)

    if not table_exists('user_credits'):
        op.create_table('user_credits',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('credit_type', sa.String(), nullable=False),
            sa.Column('balance', sa.Integer(), nullable=False),
            sa.Column('total_purchased', sa.Integer(), nullable=False),
            sa.Column('used_credits', sa.Integer(), nullable=False),
            sa.Column('expires_at', sa.DateTime(), nullable=True),
            sa.Column('last_used_at', sa.DateTime(), nullable=True),
            *_timestamps(),
            sa.CheckConstraint('balance >= 0', name='ck_credit_balance_non_negative'),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'credit_type', name='uq_user_credit_type')
        )
        op.create_index(op.f('ix_user_credits_id'), 'user_credits', ['id'], unique=False)
        op.create_index(op.f('ix_user_credits_user_id'), 'user_credits', ['user_id'], unique=False)

    if not table_exists('credit_purchases'):
        op.create_table('credit_purchases',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('package_id', sa.Integer(), nullable=False),
            sa.Column('credit_type', sa.String(), nullable=False),
            sa.Column('amount', sa.Integer(), nullable=False),
            sa.Column('expires_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.ForeignKeyConstraint(['package_id'], ['credit_packages.id'], ),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_credit_purchases_id'), 'credit_purchases', ['id'], unique=False)
        op.create_index(op.f('ix_credit_purchases_user_id'), 'credit_purchases', ['user_id'], unique=False)
        op.create_index(op.f('ix_credit_purchases_package_id'), 'credit_purchases', ['package_id'], unique=False)
        op.create_index(op.f('ix_credit_purchases_created_at'), 'credit_purchases', ['created_at'], unique=False)

    if not table_exists('resume_contact_reveals'):
        op.create_table('resume_contact_reveals',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('revealed_by', sa.Integer(), nullable=False),
            sa.Column('requested_by', sa.Integer(), nullable=False),
            sa.Column('target_user_id', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.ForeignKeyConstraint(['requested_by'], ['users.id'], ),
            sa.ForeignKeyConstraint(['revealed_by'], ['users.id'], ),
            sa.ForeignKeyConstraint(['target_user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('revealed_by', 'target_user_id', name='uq_reveal_owner_target')
        )
        op.create_index(op.f('ix_resume_contact_reveals_id'), 'resume_contact_reveals', ['id'], unique=False)
        op.create_index(op.f('ix_resume_contact_reveals_revealed_by'), 'resume_contact_reveals', ['revealed_by'], unique=False)
        op.create_index(op.f('ix_resume_contact_reveals_target_user_id'), 'resume_contact_reveals', ['target_user_id'], unique=False)


def downgrade() -> None:
    for table_name in (
        'resume_contact_reveals',
        'credit_purchases',
        'user_credits',
        'usage_counters',
        'user_subscriptions',
        'credit_packages',
        'subscription_plans',
        'job_postings',
        'companies',
        'verification_documents',
        'users',
    ):
        if table_exists(table_name):
            op.drop_table(table_name)
