"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the Eno Livraison schema:
- partners, products, stock_movements, deliveries
- transactions, standard_orders, partner_delivery_fees, salaries, bank_deposits
- profiles, user_permissions, session_tokens, invitations
- activity_log, documents

Partners use their generated code (PAT001, ...) as primary key; every
other table uses a UUID string.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column('id', sa.String(length=36), nullable=False)


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # partners / stock
    # ============================================================================
    op.create_table(
        'partners',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('partner_code', sa.String(length=32), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('contact_person', sa.String(length=255), nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_partners_partner_code', 'partners', ['partner_code'], unique=True)

    op.create_table(
        'products',
        _id(),
        sa.Column('partner_id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('alert_threshold', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('price', sa.Float(), nullable=False, server_default='0'),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_products_partner_id', 'products', ['partner_id'])
    op.create_index('ix_products_partner_name', 'products', ['partner_id', 'name'])

    # Append-only: the only writer of products.stock
    op.create_table(
        'stock_movements',
        _id(),
        sa.Column('product_id', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('previous_stock', sa.Integer(), nullable=False),
        sa.Column('new_stock', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_type', 'stock_movements', ['type'])
    op.create_index('ix_stock_movements_created_at', 'stock_movements', ['created_at'])
    op.create_index('ix_stock_movements_product_created', 'stock_movements', ['product_id', 'created_at'])

    op.create_table(
        'deliveries',
        _id(),
        sa.Column('partner_id', sa.String(length=32), nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('amount', sa.Float(), nullable=False, server_default='0'),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_deliveries_partner_id', 'deliveries', ['partner_id'])
    op.create_index('ix_deliveries_status', 'deliveries', ['status'])

    # ============================================================================
    # accounts
    # ============================================================================
    op.create_table(
        'profiles',
        _id(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('partner_id', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)
    op.create_index('ix_profiles_role', 'profiles', ['role'])
    op.create_index('ix_profiles_partner_id', 'profiles', ['partner_id'])

    op.create_table(
        'user_permissions',
        _id(),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('permission', sa.String(length=64), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'permission', name='uq_user_permissions'),
    )
    op.create_index('ix_user_permissions_user_id', 'user_permissions', ['user_id'])

    op.create_table(
        'session_tokens',
        _id(),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        _created_at(),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    op.create_table(
        'invitations',
        _id(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('partner_id', sa.String(length=32), nullable=True),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('invited_by', sa.String(length=36), nullable=True),
        _created_at(),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_invitations_email', 'invitations', ['email'])
    op.create_index('ix_invitations_token_hash', 'invitations', ['token_hash'], unique=True)

    # ============================================================================
    # accounting
    # ============================================================================
    op.create_table(
        'transactions',
        _id(),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('operation_date', sa.Date(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_type', 'transactions', ['type'])
    op.create_index('ix_transactions_category', 'transactions', ['category'])
    op.create_index('ix_transactions_operation_date', 'transactions', ['operation_date'])

    op.create_table(
        'standard_orders',
        _id(),
        sa.Column('pickup_location', sa.String(length=255), nullable=True),
        sa.Column('delivery_location', sa.String(length=255), nullable=True),
        sa.Column('delivery_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('operation_date', sa.Date(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_standard_orders_operation_date', 'standard_orders', ['operation_date'])

    op.create_table(
        'partner_delivery_fees',
        _id(),
        sa.Column('partner_id', sa.String(length=32), nullable=False),
        sa.Column('turnover', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_delivery_fee', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_packages_delivered', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('operation_date', sa.Date(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_partner_delivery_fees_operation_date', 'partner_delivery_fees', ['operation_date'])
    op.create_index('ix_partner_fees_partner_date', 'partner_delivery_fees', ['partner_id', 'operation_date'])

    op.create_table(
        'salaries',
        _id(),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('beneficiary_name', sa.String(length=255), nullable=True),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_salaries_user_id', 'salaries', ['user_id'])
    op.create_index('ix_salaries_payment_date', 'salaries', ['payment_date'])

    op.create_table(
        'bank_deposits',
        _id(),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('reference', sa.String(length=128), nullable=True),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('receipt_photo_url', sa.String(length=1024), nullable=True),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_bank_deposits_date', 'bank_deposits', ['date'])

    # ============================================================================
    # journal / documents
    # ============================================================================
    op.create_table(
        'activity_log',
        _id(),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('user_full_name', sa.String(length=255), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_activity_log_user_id', 'activity_log', ['user_id'])
    op.create_index('ix_activity_log_action', 'activity_log', ['action'])
    op.create_index('ix_activity_log_created_at', 'activity_log', ['created_at'])

    op.create_table(
        'documents',
        _id(),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('file_url', sa.String(length=1024), nullable=True),
        sa.Column('file_type', sa.String(length=64), nullable=True),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade():
    for table in (
        'documents', 'activity_log', 'bank_deposits', 'salaries', 'partner_delivery_fees',
        'standard_orders', 'transactions', 'invitations', 'session_tokens', 'user_permissions',
        'profiles', 'deliveries', 'stock_movements', 'products', 'partners',
    ):
        op.drop_table(table)
