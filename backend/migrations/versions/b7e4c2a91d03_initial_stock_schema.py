"""initial stock schema

Revision ID: b7e4c2a91d03
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the stockroom schema from scratch:
- users: sign-in accounts (Admin / Staff)
- categories: grouping for stock items
- stock_items: quantity-of-record per item, never negative
- activity_logs: append-only audit trail with plain (non-FK) references
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7e4c2a91d03'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # categories
    # ============================================================================
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=200), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id', name='pk_categories'),
        sa.UniqueConstraint('name', name='uq_categories_name'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # stock_items: quantity is mutated only by the stock service
    # ============================================================================
    op.create_table(
        'stock_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('purchase_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('supplier', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('location', sa.String(length=100), nullable=True),
        sa.Column('sku', sa.String(length=50), nullable=True),
        sa.Column('minimum_quantity', sa.Integer(), nullable=True),
        sa.Column('reorder_point', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('quantity >= 0', name='ck_stock_items_quantity_non_negative'),
        sa.CheckConstraint('price_cents >= 0', name='ck_stock_items_price_non_negative'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'],
                                name='fk_stock_items_category_id_categories', ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'],
                                name='fk_stock_items_created_by_users'),
        sa.ForeignKeyConstraint(['updated_by'], ['users.id'],
                                name='fk_stock_items_updated_by_users'),
        sa.PrimaryKeyConstraint('id', name='pk_stock_items'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_items_name', 'stock_items', ['name'])
    op.create_index('ix_stock_items_category_id', 'stock_items', ['category_id'])
    op.create_index('ix_stock_items_created_by', 'stock_items', ['created_by'])
    op.create_index('ix_stock_items_category_name', 'stock_items', ['category_id', 'name'])

    # ============================================================================
    # activity_logs: append-only, user_id / entity_id are plain integers
    # ============================================================================
    op.create_table(
        'activity_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('user_name', sa.String(length=100), nullable=True),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('entity_type', sa.String(length=100), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_activity_logs'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_activity_logs_action', 'activity_logs', ['action'])
    op.create_index('ix_activity_logs_timestamp', 'activity_logs', ['timestamp'])
    op.create_index('ix_activity_logs_user_timestamp', 'activity_logs', ['user_id', 'timestamp'])
    op.create_index('ix_activity_logs_entity', 'activity_logs', ['entity_type', 'entity_id'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('activity_logs')
    op.drop_table('stock_items')
    op.drop_table('categories')
    op.drop_table('users')
