"""
Call Signaling Schema - Create all tables for call requests and settlement

This migration creates:
1. users - Customers and hosts
2. call_requests - Customer → host call solicitations
3. call_sessions - Calls started from accepted requests
4. transactions - Append-only host ledger
5. host_earnings - Per-host settlement counters

Revision ID: 20261019_call_signaling_schema
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261019_call_signaling_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================
    # CREATE USERS TABLE
    # ============================================
    op.create_table(
        'users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='customer'),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("role IN ('customer', 'host')", name='ck_user_role'),
    )
    op.create_index(op.f('ix_users_phone'), 'users', ['phone'], unique=True)

    # ============================================
    # CREATE CALL_REQUESTS TABLE
    # ============================================
    op.create_table(
        'call_requests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('customer_id', sa.String(length=64), nullable=False),
        sa.Column('host_id', sa.String(length=64), nullable=False),
        sa.Column('call_type', sa.String(length=10), nullable=False),
        sa.Column('price_per_minute', sa.Numeric(8, 2), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('channel_name', sa.String(length=255), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('rejected_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_call_requests_customer_id'), 'call_requests', ['customer_id'])
    op.create_index(op.f('ix_call_requests_host_id'), 'call_requests', ['host_id'])
    op.create_index('idx_call_requests_host_status', 'call_requests', ['host_id', 'status'])
    # At most one pending request per customer/host pair
    op.create_index(
        'uq_call_requests_pending_pair',
        'call_requests',
        ['customer_id', 'host_id'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )

    # ============================================
    # CREATE CALL_SESSIONS TABLE
    # ============================================
    op.create_table(
        'call_sessions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('request_id', sa.String(length=36), nullable=True),
        sa.Column('host_id', sa.String(length=64), nullable=False),
        sa.Column('customer_id', sa.String(length=64), nullable=False),
        sa.Column('channel_name', sa.String(length=255), nullable=False),
        sa.Column('call_type', sa.String(length=10), nullable=False),
        sa.Column('price_per_minute', sa.Numeric(8, 2), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['request_id'], ['call_requests.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('request_id'),
        sa.CheckConstraint("rating IS NULL OR (rating BETWEEN 1 AND 5)", name='ck_call_session_rating'),
    )
    op.create_index(op.f('ix_call_sessions_host_id'), 'call_sessions', ['host_id'])
    op.create_index(op.f('ix_call_sessions_customer_id'), 'call_sessions', ['customer_id'])
    op.create_index(op.f('ix_call_sessions_status'), 'call_sessions', ['status'])

    # ============================================
    # CREATE TRANSACTIONS TABLE
    # ============================================
    op.create_table(
        'transactions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('host_id', sa.String(length=64), nullable=False),
        sa.Column('customer_id', sa.String(length=64), nullable=True),
        sa.Column('transaction_type', sa.String(length=50), nullable=False),
        sa.Column('reference_id', sa.String(length=36), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='completed'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_type', 'reference_id', name='uq_transaction_reference'),
    )
    op.create_index(op.f('ix_transactions_host_id'), 'transactions', ['host_id'])
    op.create_index(op.f('ix_transactions_created_at'), 'transactions', ['created_at'])

    # ============================================
    # CREATE HOST_EARNINGS TABLE
    # ============================================
    op.create_table(
        'host_earnings',
        sa.Column('host_id', sa.String(length=64), nullable=False),
        sa.Column('total_earnings', sa.Numeric(12, 2), nullable=False, server_default='0.00'),
        sa.Column('total_calls', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('host_id'),
    )


def downgrade():
    op.drop_table('host_earnings')
    op.drop_index(op.f('ix_transactions_created_at'), table_name='transactions')
    op.drop_index(op.f('ix_transactions_host_id'), table_name='transactions')
    op.drop_table('transactions')
    op.drop_index(op.f('ix_call_sessions_status'), table_name='call_sessions')
    op.drop_index(op.f('ix_call_sessions_customer_id'), table_name='call_sessions')
    op.drop_index(op.f('ix_call_sessions_host_id'), table_name='call_sessions')
    op.drop_table('call_sessions')
    op.drop_index('uq_call_requests_pending_pair', table_name='call_requests')
    op.drop_index('idx_call_requests_host_status', table_name='call_requests')
    op.drop_index(op.f('ix_call_requests_host_id'), table_name='call_requests')
    op.drop_index(op.f('ix_call_requests_customer_id'), table_name='call_requests')
    op.drop_table('call_requests')
    op.drop_index(op.f('ix_users_phone'), table_name='users')
    op.drop_table('users')
