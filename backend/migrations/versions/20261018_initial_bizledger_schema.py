"""initial bizledger schema

Revision ID: bl0001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the complete schema:
- users / session_tokens: partner accounts and login sessions
- counters: per-domain sequence numbers (products, vendas)
- products / sales: inventory and point-of-sale records
- time_sessions / investments: tracked work and partner contributions
- debts / cash_movements / entries / unplanned_expenses: the books
- monthly_summaries: closed-month snapshots
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'bl0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _now():
    return sa.text('CURRENT_TIMESTAMP')


def upgrade():
    # ============================================================================
    # users: partner accounts (is_admin is the only authorization flag)
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=128), nullable=True),
        sa.Column('last_name', sa.String(length=128), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='partner'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # counters: one row per domain, incremented in the numbering transaction
    # ============================================================================
    op.create_table(
        'counters',
        sa.Column('domain', sa.String(length=32), nullable=False),
        sa.Column('last_seq', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.PrimaryKeyConstraint('domain')
    )

    # ============================================================================
    # products / sales
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('cost_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('profit_margin', sa.Float(), nullable=False, server_default='0'),
        sa.Column('sale_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_by_user_id', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('seq', name='uq_products_seq'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_description', 'products', ['description'])

    # product_id is not a foreign key: products may be deleted while sales remain
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('unit_price', sa.Float(), nullable=False),
        sa.Column('discount_percent', sa.Float(), nullable=False, server_default='0'),
        sa.Column('final_unit_price', sa.Float(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('total_price', sa.Float(), nullable=False),
        sa.Column('sold_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sold_by_user_id', sa.Integer(), nullable=True),
        sa.Column('canceled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(['sold_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('seq', name='uq_sales_seq'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_product_id', 'sales', ['product_id'])
    op.create_index('ix_sales_sold_at', 'sales', ['sold_at'])
    op.create_index('ix_sales_sold_by_user_id', 'sales', ['sold_by_user_id'])

    # ============================================================================
    # time_sessions / investments
    # ============================================================================
    op.create_table(
        'time_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paused_ms', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('paused_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('hourly_rate', sa.Float(), nullable=False),
        sa.Column('is_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_time_sessions_user_id', 'time_sessions', ['user_id'])
    op.create_index('ix_time_sessions_user_completed', 'time_sessions', ['user_id', 'is_completed'])

    op.create_table(
        'investments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('user_name', sa.String(length=128), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_time_investment', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('session_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['session_id'], ['time_sessions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', name='uq_investments_session'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_investments_user_id', 'investments', ['user_id'])
    op.create_index('ix_investments_user_date', 'investments', ['user_id', 'date'])

    # ============================================================================
    # debts / cash_movements / entries / unplanned_expenses
    # ============================================================================
    op.create_table(
        'debts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('debt_type', sa.String(length=16), nullable=False, server_default='SINGLE'),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('duration_months', sa.Integer(), nullable=True),
        sa.Column('paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('user_name', sa.String(length=128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.CheckConstraint("debt_type IN ('SINGLE', 'FIXED')", name='ck_debts_type'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_debts_due_date', 'debts', ['due_date'])
    op.create_index('ix_debts_user_id', 'debts', ['user_id'])

    op.create_table(
        'cash_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('movement_type', sa.String(length=16), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('user_name', sa.String(length=128), nullable=True),
        sa.Column('source', sa.String(length=32), nullable=False, server_default='manual'),
        sa.CheckConstraint("movement_type IN ('entrada', 'saida')", name='ck_cash_movements_type'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_cash_movements_date', 'cash_movements', ['date'])
    op.create_index('ix_cash_movements_user_id', 'cash_movements', ['user_id'])

    for table in ('entries', 'unplanned_expenses'):
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('description', sa.String(length=255), nullable=False),
            sa.Column('amount', sa.Float(), nullable=False),
            sa.Column('date', sa.DateTime(timezone=True), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=True),
            sa.Column('user_name', sa.String(length=128), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(f'ix_{table}_date', table, ['date'])
        op.create_index(f'ix_{table}_user_id', table, ['user_id'])

    # ============================================================================
    # monthly_summaries: closed months
    # ============================================================================
    op.create_table(
        'monthly_summaries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('total_sales', sa.Float(), nullable=False, server_default='0'),
        sa.Column('sales_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_entries', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_investments', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_cash_in', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_cash_out', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_debts_paid', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_unplanned_expenses', sa.Float(), nullable=False, server_default='0'),
        sa.Column('balance', sa.Float(), nullable=False, server_default='0'),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('generated_by_user_id', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('year', 'month', name='uq_monthly_summaries_period'),
        sqlite_autoincrement=True
    )


def downgrade():
    op.drop_table('monthly_summaries')
    op.drop_table('unplanned_expenses')
    op.drop_table('entries')
    op.drop_table('cash_movements')
    op.drop_table('debts')
    op.drop_table('investments')
    op.drop_table('time_sessions')
    op.drop_table('sales')
    op.drop_table('products')
    op.drop_table('counters')
    op.drop_table('session_tokens')
    op.drop_table('users')
