"""Create lifecycle tables

This migration creates:
1. users (read-only mirror of the auth collaborator's accounts)
2. campaigns (with the active-requires-paid check)
3. settlements
4. applications (one per campaign/influencer pair)
5. contents
6. payments (unique order id)
7. settlement_items
8. revenue_entries (append-only ledger, unique per source/entry type)
9. notifications

Revision ID: lifecycle_tables_001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = 'lifecycle_tables_001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # 1. Users
    op.create_table('users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255)),
        sa.Column('user_type', sa.Enum('business', 'influencer', 'admin', name='usertype'), nullable=False, server_default='business'),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # 2. Campaigns
    op.create_table('campaigns',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('business_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('budget', sa.Integer, nullable=False),
        sa.Column('platform_fee_rate', sa.Numeric(5, 4), nullable=False),
        sa.Column('platform_fee', sa.Integer),
        sa.Column('status', sa.Enum('draft', 'pending', 'approved', 'active', 'paused', 'completed', 'cancelled', name='campaignstatus'), nullable=False, server_default='draft'),
        sa.Column('is_paid', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('start_date', sa.DateTime, nullable=False),
        sa.Column('end_date', sa.DateTime, nullable=False),
        sa.Column('review_feedback', sa.Text),
        sa.Column('reviewed_at', sa.DateTime),
        sa.Column('reviewed_by', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('activated_at', sa.DateTime),
        sa.Column('completed_at', sa.DateTime),
        sa.Column('cancelled_at', sa.DateTime),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
        sa.CheckConstraint("status <> 'active' OR is_paid = true", name='ck_campaign_active_requires_paid'),
        sa.CheckConstraint('budget > 0', name='ck_campaign_budget_positive'),
        sa.CheckConstraint('platform_fee_rate >= 0 AND platform_fee_rate <= 1', name='ck_campaign_fee_rate_range'),
    )
    op.create_index('ix_campaigns_business_id', 'campaigns', ['business_id'])

    # 3. Settlements
    op.create_table('settlements',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('influencer_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('total_amount', sa.Integer, nullable=False, server_default='0'),
        sa.Column('status', sa.Enum('requested', 'approved', 'paid', 'rejected', name='settlementstatus'), nullable=False, server_default='requested'),
        sa.Column('bank_account', sa.JSON),
        sa.Column('admin_notes', sa.Text),
        sa.Column('processed_by', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('processed_at', sa.DateTime),
        sa.Column('paid_at', sa.DateTime),
        sa.Column('payout_reference', sa.String(200)),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_settlements_influencer_id', 'settlements', ['influencer_id'])

    # 4. Applications
    op.create_table('applications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id'), nullable=False),
        sa.Column('influencer_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('message', sa.Text),
        sa.Column('proposed_price', sa.Integer),
        sa.Column('status', sa.Enum('pending', 'approved', 'rejected', 'completed', 'withdrawn', name='applicationstatus'), nullable=False, server_default='pending'),
        sa.Column('decision_reason', sa.Text),
        sa.Column('decided_at', sa.DateTime),
        sa.Column('decided_by', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('completed_at', sa.DateTime),
        sa.Column('withdrawn_at', sa.DateTime),
        sa.Column('settlement_id', sa.String(36), sa.ForeignKey('settlements.id'), nullable=True),
        sa.Column('settled_at', sa.DateTime),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint('campaign_id', 'influencer_id', name='uq_application_campaign_influencer'),
    )
    op.create_index('ix_applications_campaign_id', 'applications', ['campaign_id'])
    op.create_index('ix_applications_influencer_id', 'applications', ['influencer_id'])
    op.create_index('ix_applications_settlement_id', 'applications', ['settlement_id'])

    # 5. Contents
    op.create_table('contents',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('application_id', sa.String(36), sa.ForeignKey('applications.id'), unique=True, nullable=False),
        sa.Column('media_urls', sa.JSON, nullable=False),
        sa.Column('caption', sa.Text),
        sa.Column('review_status', sa.Enum('submitted', 'approved', 'rejected', name='contentreviewstatus'), nullable=False, server_default='submitted'),
        sa.Column('feedback', sa.Text),
        sa.Column('revision_count', sa.Integer, server_default='0'),
        sa.Column('submitted_at', sa.DateTime),
        sa.Column('reviewed_at', sa.DateTime),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )

    # 6. Payments
    op.create_table('payments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('order_id', sa.String(100), nullable=False),
        sa.Column('type', sa.Enum('campaign', 'superchat', 'settlement', name='paymenttype'), nullable=False),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id'), nullable=True),
        sa.Column('payer_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('recipient_id', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('settlement_id', sa.String(36), sa.ForeignKey('settlements.id'), nullable=True),
        sa.Column('amount', sa.Integer, nullable=False),
        sa.Column('method', sa.Enum('card', 'bank_transfer', 'offline', name='paymentmethod'), nullable=False, server_default='card'),
        sa.Column('status', sa.Enum('pending', 'approved', 'failed', 'cancelled', name='paymentstatus'), nullable=False, server_default='pending'),
        sa.Column('payment_key', sa.String(200)),
        sa.Column('message', sa.Text),
        sa.Column('approved_at', sa.DateTime),
        sa.Column('failed_at', sa.DateTime),
        sa.Column('fail_reason', sa.Text),
        sa.Column('cancelled_at', sa.DateTime),
        sa.Column('cancel_reason', sa.Text),
        sa.Column('metadata_json', sa.JSON),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
        sa.CheckConstraint('amount > 0', name='ck_payment_amount_positive'),
    )
    op.create_index('ix_payments_order_id', 'payments', ['order_id'], unique=True)
    op.create_index('ix_payments_campaign_id', 'payments', ['campaign_id'])
    op.create_index('ix_payments_payer_id', 'payments', ['payer_id'])

    # 7. Settlement items
    op.create_table('settlement_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('settlement_id', sa.String(36), sa.ForeignKey('settlements.id', ondelete='CASCADE'), nullable=False),
        sa.Column('application_id', sa.String(36), sa.ForeignKey('applications.id'), nullable=False),
        sa.Column('campaign_title', sa.String(255)),
        sa.Column('gross_amount', sa.Integer, nullable=False),
        sa.Column('fee', sa.Integer, nullable=False, server_default='0'),
        sa.Column('amount', sa.Integer, nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_settlement_items_settlement_id', 'settlement_items', ['settlement_id'])
    op.create_index('ix_settlement_items_application_id', 'settlement_items', ['application_id'])

    # 8. Revenue ledger
    op.create_table('revenue_entries',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('revenue_type', sa.Enum('platform_fee', 'creator_earning', name='revenuetype'), nullable=False),
        sa.Column('entry_type', sa.Enum('original', 'reversal', name='revenueentrytype'), nullable=False, server_default='original'),
        sa.Column('source_type', sa.Enum('campaign_payment', 'superchat', name='revenuesource'), nullable=False),
        sa.Column('source_id', sa.String(36), nullable=False),
        sa.Column('beneficiary_id', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('gross_amount', sa.Integer, nullable=False),
        sa.Column('fee_rate', sa.Numeric(5, 4), nullable=False),
        sa.Column('fee', sa.Integer, nullable=False),
        sa.Column('net_amount', sa.Integer, nullable=False),
        sa.Column('year', sa.Integer, nullable=False),
        sa.Column('month', sa.Integer, nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint('source_type', 'source_id', 'entry_type', name='uq_revenue_source_entry'),
    )
    op.create_index('ix_revenue_entries_source_id', 'revenue_entries', ['source_id'])
    op.create_index('ix_revenue_entries_beneficiary_id', 'revenue_entries', ['beneficiary_id'])

    # 9. Notifications
    op.create_table('notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text),
        sa.Column('data', sa.JSON),
        sa.Column('read', sa.Boolean, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade():
    op.drop_table('notifications')
    op.drop_table('revenue_entries')
    op.drop_table('settlement_items')
    op.drop_table('payments')
    op.drop_table('contents')
    op.drop_table('applications')
    op.drop_table('settlements')
    op.drop_table('campaigns')
    op.drop_table('users')

    for enum_name in (
        'revenuesource', 'revenueentrytype', 'revenuetype', 'paymentstatus', 'paymentmethod',
        'paymenttype', 'contentreviewstatus', 'applicationstatus', 'settlementstatus',
        'campaignstatus', 'usertype',
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
