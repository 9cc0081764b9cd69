"""create coupon tables

Revision ID: 001
Revises:
Create Date: 2026-01-12 10:00:00.000000+09:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """마이그레이션 적용 (업그레이드)"""
    # Users 테이블 (인증 서비스와 동기화되는 최소 정보)
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid, primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('role', sa.String(50), nullable=False, server_default='customer'),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('NOW()')),
        sa.CheckConstraint("role IN ('customer', 'admin')", name='check_user_role'),
        sa.CheckConstraint("status IN ('active', 'suspended', 'deleted')", name='check_user_status'),
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_status', 'users', ['status'])

    # Orders 테이블
    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid, primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('order_number', sa.String(20), nullable=False, unique=True),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('total_amount', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('discount_amount', sa.DECIMAL(10, 2), nullable=False, server_default='0'),
        sa.Column('coupon_code', sa.String(50), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('total_amount > 0', name='check_total_amount_positive'),
        sa.CheckConstraint('discount_amount >= 0', name='check_discount_amount_non_negative'),
        sa.CheckConstraint(
            "status IN ('pending', 'paid', 'preparing', 'shipped', 'delivered', 'cancelled', 'refunded')",
            name='check_order_status',
        ),
    )
    op.create_index('idx_orders_user_status', 'orders', ['user_id', 'status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    # Coupons 테이블
    op.create_table(
        'coupons',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('discount_type', sa.String(20), nullable=False),
        sa.Column('discount_value', sa.DECIMAL(10, 2), nullable=False, server_default='0'),
        sa.Column('minimum_amount', sa.DECIMAL(10, 2), nullable=True),
        sa.Column('usage_limit', sa.Integer(), nullable=True),
        sa.Column('usage_limit_per_user', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('valid_from', sa.DateTime(), nullable=True),
        sa.Column('valid_to', sa.DateTime(), nullable=True),
        sa.Column('applicable_products', postgresql.JSONB(), nullable=True),
        sa.Column('applicable_categories', postgresql.JSONB(), nullable=True),
        sa.Column('excluded_products', postgresql.JSONB(), nullable=True),
        sa.Column('excluded_categories', postgresql.JSONB(), nullable=True),
        sa.Column('first_time_customers_only', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('metadata', postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('created_by', sa.Uuid, nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('NOW()')),
        sa.CheckConstraint('discount_value >= 0', name='check_discount_value_non_negative'),
        sa.CheckConstraint(
            "discount_type <> 'percentage' OR discount_value <= 100",
            name='check_percentage_range',
        ),
        sa.CheckConstraint('used_count >= 0', name='check_used_count_non_negative'),
        sa.CheckConstraint(
            'valid_from IS NULL OR valid_to IS NULL OR valid_to >= valid_from',
            name='check_valid_date_range',
        ),
        sa.CheckConstraint(
            "discount_type IN ('percentage', 'fixed_amount', 'free_shipping')",
            name='check_discount_type',
        ),
    )
    op.create_index('ix_coupons_code', 'coupons', ['code'])
    op.create_index('ix_coupons_is_active', 'coupons', ['is_active'])
    op.create_index('idx_coupons_valid_dates', 'coupons', ['valid_from', 'valid_to'])

    # Coupon Usage 테이블 (사용 이력 원장)
    op.create_table(
        'coupon_usage',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('coupon_id', sa.Integer(), sa.ForeignKey('coupons.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('order_id', sa.Uuid, sa.ForeignKey('orders.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('discount_amount', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('order_total', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('NOW()')),
        sa.CheckConstraint('discount_amount >= 0', name='check_usage_discount_non_negative'),
        sa.CheckConstraint('order_total >= 0', name='check_usage_order_total_non_negative'),
    )
    op.create_index('idx_coupon_usage_coupon_user', 'coupon_usage', ['coupon_id', 'user_id'])
    op.create_index('idx_coupon_usage_order', 'coupon_usage', ['order_id'])

    # Admin Activity Logs 테이블 (감사 로그)
    op.create_table(
        'admin_activity_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('admin_id', sa.Uuid, nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('entity', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('old_values', postgresql.JSONB(), nullable=True),
        sa.Column('new_values', postgresql.JSONB(), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_admin_activity_logs_admin_id', 'admin_activity_logs', ['admin_id'])
    op.create_index('idx_admin_activity_entity', 'admin_activity_logs', ['entity', 'entity_id'])


def downgrade() -> None:
    """마이그레이션 되돌리기 (다운그레이드)"""
    op.drop_index('idx_admin_activity_entity', table_name='admin_activity_logs')
    op.drop_index('ix_admin_activity_logs_admin_id', table_name='admin_activity_logs')
    op.drop_table('admin_activity_logs')

    op.drop_index('idx_coupon_usage_order', table_name='coupon_usage')
    op.drop_index('idx_coupon_usage_coupon_user', table_name='coupon_usage')
    op.drop_table('coupon_usage')

    op.drop_index('idx_coupons_valid_dates', table_name='coupons')
    op.drop_index('ix_coupons_is_active', table_name='coupons')
    op.drop_index('ix_coupons_code', table_name='coupons')
    op.drop_table('coupons')

    op.drop_index('ix_orders_created_at', table_name='orders')
    op.drop_index('idx_orders_user_status', table_name='orders')
    op.drop_table('orders')

    op.drop_index('ix_users_status', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
