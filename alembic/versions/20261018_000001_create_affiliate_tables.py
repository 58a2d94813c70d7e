"""Create affiliate engine tables

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18 00:00:01.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261018_000001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade():
    # Tables owned by other modules, created here only if missing
    bind = op.get_bind()
    existing = set(sa.inspect(bind).get_table_names())

    if 'users' not in existing:
        op.create_table('users',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('email', sa.String(length=255), nullable=True),
            sa.Column('name', sa.String(length=255), nullable=True),
            sa.Column('user_type', sa.String(length=20), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            *_timestamps(),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_users_email', 'users', ['email'], unique=True)
        op.create_index('ix_users_user_type', 'users', ['user_type'])
        op.create_index('ix_users_created_at', 'users', ['created_at'])

    if 'products' not in existing:
        op.create_table('products',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('affiliate_commission', sa.DECIMAL(precision=5, scale=2), nullable=False),
            *_timestamps(),
            sa.CheckConstraint(
                'affiliate_commission >= 0 AND affiliate_commission <= 100',
                name='check_product_affiliate_commission_range',
            ),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_products_created_at', 'products', ['created_at'])

    if 'orders' not in existing:
        op.create_table('orders',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('order_number', sa.String(length=50), nullable=False),
            sa.Column('customer_id', sa.Integer(), nullable=True),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('referral_code', sa.String(length=50), nullable=True),
            sa.Column('affiliate_id', sa.Integer(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(['customer_id'], ['users.id'], ondelete='SET NULL'),
            sa.ForeignKeyConstraint(['affiliate_id'], ['users.id'], ondelete='SET NULL'),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
        op.create_index('ix_orders_referral_code', 'orders', ['referral_code'])
        op.create_index('ix_orders_affiliate_id', 'orders', ['affiliate_id'])
        op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    if 'order_items' not in existing:
        op.create_table('order_items',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('order_id', sa.Integer(), nullable=False),
            sa.Column('product_id', sa.Integer(), nullable=True),
            sa.Column('price', sa.DECIMAL(precision=18, scale=2), nullable=False),
            sa.Column('quantity', sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    # Platform settings (singleton row created by scripts/init_db.py)
    op.create_table('platform_settings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('key', sa.String(length=50), nullable=False),
        sa.Column('affiliate_min_withdrawal_threshold', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('one_withdrawal_per_month', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
    )
    op.create_index('ix_platform_settings_created_at', 'platform_settings', ['created_at'])

    # Referral codes
    op.create_table('affiliate_referrals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('affiliate_id', sa.Integer(), nullable=False),
        sa.Column('referral_code', sa.String(length=50), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('total_clicks', sa.Integer(), nullable=False),
        sa.Column('total_orders', sa.Integer(), nullable=False),
        sa.Column('total_earnings', sa.DECIMAL(precision=18, scale=8), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['affiliate_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referral_code'),
    )
    op.create_index('ix_affiliate_referrals_affiliate_id', 'affiliate_referrals', ['affiliate_id'])
    op.create_index('ix_affiliate_referrals_created_at', 'affiliate_referrals', ['created_at'])
    op.create_index(
        'uq_affiliate_referral_active_affiliate',
        'affiliate_referrals',
        ['affiliate_id'],
        unique=True,
        postgresql_where=sa.text('is_active'),
    )

    op.create_table('affiliate_referral_clicks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('affiliate_id', sa.Integer(), nullable=False),
        sa.Column('referral_code', sa.String(length=50), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['affiliate_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_referral_click_affiliate_product',
        'affiliate_referral_clicks',
        ['affiliate_id', 'product_id'],
    )

    # Commission ledger
    op.create_table('affiliate_commissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('affiliate_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('order_item_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('order_item_amount', sa.DECIMAL(precision=18, scale=8), nullable=False),
        sa.Column('commission_percent', sa.DECIMAL(precision=5, scale=2), nullable=False),
        sa.Column('commission_amount', sa.DECIMAL(precision=18, scale=8), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['affiliate_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['order_item_id'], ['order_items.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'order_item_id', name='uq_commission_order_item'),
    )
    op.create_index('ix_affiliate_commissions_affiliate_id', 'affiliate_commissions', ['affiliate_id'])
    op.create_index('ix_affiliate_commissions_order_id', 'affiliate_commissions', ['order_id'])
    op.create_index('ix_affiliate_commissions_status', 'affiliate_commissions', ['status'])
    op.create_index('ix_affiliate_commissions_created_at', 'affiliate_commissions', ['created_at'])
    op.create_index('idx_commission_affiliate_status', 'affiliate_commissions', ['affiliate_id', 'status'])
    op.create_index('idx_commission_affiliate_created', 'affiliate_commissions', ['affiliate_id', 'created_at'])

    # One accrual marker per attributed order
    op.create_table('affiliate_order_accruals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('affiliate_id', sa.Integer(), nullable=False),
        sa.Column('commission_count', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['affiliate_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id'),
    )
    op.create_index('ix_affiliate_order_accruals_affiliate_id', 'affiliate_order_accruals', ['affiliate_id'])
    op.create_index('ix_affiliate_order_accruals_created_at', 'affiliate_order_accruals', ['created_at'])

    # Withdrawals
    op.create_table('affiliate_withdrawals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('affiliate_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.DECIMAL(precision=18, scale=8), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('payment_method', sa.String(length=50), nullable=True),
        sa.Column('payment_details', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('amount > 0', name='check_withdrawal_amount_positive'),
        sa.ForeignKeyConstraint(['affiliate_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_affiliate_withdrawals_affiliate_id', 'affiliate_withdrawals', ['affiliate_id'])
    op.create_index('ix_affiliate_withdrawals_status', 'affiliate_withdrawals', ['status'])
    op.create_index('ix_affiliate_withdrawals_created_at', 'affiliate_withdrawals', ['created_at'])
    op.create_index('idx_withdrawal_affiliate_status', 'affiliate_withdrawals', ['affiliate_id', 'status'])

    # Payout profiles and OTP challenges
    op.create_table('affiliate_payment_methods',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('affiliate_id', sa.Integer(), nullable=False),
        sa.Column('bank_name', sa.String(length=255), nullable=False),
        sa.Column('account_number', sa.String(length=100), nullable=False),
        sa.Column('account_holder_name', sa.String(length=255), nullable=False),
        sa.Column('iban', sa.String(length=50), nullable=True),
        sa.Column('swift_code', sa.String(length=20), nullable=True),
        sa.Column('bank_address', sa.Text(), nullable=True),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('verification_notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['affiliate_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('affiliate_id'),
    )
    op.create_index('ix_affiliate_payment_methods_verified', 'affiliate_payment_methods', ['verified'])
    op.create_index('ix_affiliate_payment_methods_created_at', 'affiliate_payment_methods', ['created_at'])

    op.create_table('payment_method_otps',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('affiliate_id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=6), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('failed_attempts', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['affiliate_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payment_method_otps_affiliate_id', 'payment_method_otps', ['affiliate_id'])
    op.create_index(
        'idx_payment_method_otp_affiliate_verified',
        'payment_method_otps',
        ['affiliate_id', 'verified'],
    )

    # Undelivered notifications
    op.create_table('failed_notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('recipient', sa.String(length=255), nullable=False),
        sa.Column('notification_type', sa.String(length=100), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('notification_metadata', sa.JSON(), nullable=True),
        sa.Column('attempt_count', sa.Integer(), nullable=False),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('resolved', sa.Boolean(), nullable=False),
        sa.Column('critical', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_attempt_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_failed_notifications_user_id', 'failed_notifications', ['user_id'])
    op.create_index('ix_failed_notifications_notification_type', 'failed_notifications', ['notification_type'])
    op.create_index('ix_failed_notifications_resolved', 'failed_notifications', ['resolved'])
    op.create_index('ix_failed_notifications_critical', 'failed_notifications', ['critical'])
    op.create_index(
        'idx_failed_notification_resolved_critical',
        'failed_notifications',
        ['resolved', 'critical'],
    )


def downgrade():
    op.drop_table('failed_notifications')
    op.drop_table('payment_method_otps')
    op.drop_table('affiliate_payment_methods')
    op.drop_table('affiliate_withdrawals')
    op.drop_table('affiliate_order_accruals')
    op.drop_table('affiliate_commissions')
    op.drop_table('affiliate_referral_clicks')
    op.drop_table('affiliate_referrals')
    op.drop_table('platform_settings')
