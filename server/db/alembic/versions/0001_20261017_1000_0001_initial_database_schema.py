"""Initial database schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Create users table
    op.create_table('users',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('registration_source', sa.String(length=32), nullable=False),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint("role IN ('customer', 'staff', 'manager', 'admin')", name='ck_user_role_valid'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_phone'), 'users', ['phone'], unique=True)

    # Create packages table
    op.create_table('packages',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('features', sa.JSON(), nullable=False),
        sa.Column('max_children', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('price >= 0', name='ck_package_price_non_negative'),
        sa.CheckConstraint('duration > 0', name='ck_package_duration_positive'),
        sa.CheckConstraint('max_children > 0', name='ck_package_max_children_positive'),
        sa.CheckConstraint("type IN ('walk_in', 'weekend', 'monthly', 'birthday')", name='ck_package_type_valid'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_packages_type'), 'packages', ['type'], unique=False)

    # Create time_slots table
    op.create_table('time_slots',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('max_capacity', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('max_capacity >= 0', name='ck_time_slot_capacity_non_negative'),
        sa.CheckConstraint('end_time > start_time', name='ck_time_slot_end_after_start'),
        sa.PrimaryKeyConstraint('id')
    )

    # Create holiday_calendar table
    op.create_table('holiday_calendar',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint("type IN ('holiday', 'private', 'maintenance')", name='ck_holiday_type_valid'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_holiday_calendar_date'), 'holiday_calendar', ['date'], unique=True)

    # Create discount_vouchers table
    op.create_table('discount_vouchers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('discount_type', sa.String(length=20), nullable=False),
        sa.Column('discount_value', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('min_amount', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('max_discount', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('valid_from', sa.Date(), nullable=False),
        sa.Column('valid_till', sa.Date(), nullable=False),
        sa.Column('usage_limit', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('applicable_packages', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint("discount_type IN ('percentage', 'fixed')", name='ck_voucher_discount_type_valid'),
        sa.CheckConstraint('discount_value > 0', name='ck_voucher_discount_value_positive'),
        sa.CheckConstraint('used_count >= 0', name='ck_voucher_used_count_non_negative'),
        sa.CheckConstraint('usage_limit IS NULL OR used_count <= usage_limit', name='ck_voucher_used_count_within_limit'),
        sa.CheckConstraint('valid_till >= valid_from', name='ck_voucher_window_ordered'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_discount_vouchers_code'), 'discount_vouchers', ['code'], unique=True)

    # Create bookings table
    op.create_table('bookings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('package_id', sa.Integer(), nullable=False),
        sa.Column('time_slot_id', sa.Integer(), nullable=False),
        sa.Column('booking_date', sa.Date(), nullable=False),
        sa.Column('number_of_children', sa.Integer(), nullable=False),
        sa.Column('order_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('voucher_code', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('payment_id', sa.String(length=128), nullable=True),
        sa.Column('payment_status', sa.String(length=20), nullable=True),
        sa.Column('parent_name', sa.String(length=255), nullable=False),
        sa.Column('parent_phone', sa.String(length=20), nullable=False),
        sa.Column('parent_email', sa.String(length=255), nullable=False),
        sa.Column('children_ages', sa.JSON(), nullable=True),
        sa.Column('special_requests', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('number_of_children > 0', name='ck_booking_children_positive'),
        sa.CheckConstraint('total_amount >= 0', name='ck_booking_total_non_negative'),
        sa.CheckConstraint('discount_amount >= 0', name='ck_booking_discount_non_negative'),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled')",
            name='ck_booking_status_valid'
        ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['package_id'], ['packages.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['time_slot_id'], ['time_slots.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bookings_user_id'), 'bookings', ['user_id'], unique=False)
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)
    op.create_index('ix_bookings_slot_occupancy', 'bookings', ['booking_date', 'time_slot_id', 'status'], unique=False)

    # Create birthday_parties table
    op.create_table('birthday_parties',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('child_name', sa.String(length=255), nullable=False),
        sa.Column('child_age', sa.Integer(), nullable=False),
        sa.Column('number_of_guests', sa.Integer(), nullable=False),
        sa.Column('theme', sa.String(length=100), nullable=True),
        sa.Column('cake_preference', sa.String(length=255), nullable=True),
        sa.Column('decoration_preference', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('child_age >= 0 AND child_age <= 17', name='ck_party_child_age_range'),
        sa.CheckConstraint('number_of_guests > 0', name='ck_party_guests_positive'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('booking_id')
    )

    # Create voucher_redemptions table
    op.create_table('voucher_redemptions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('voucher_id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('order_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['voucher_id'], ['discount_vouchers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_voucher_redemptions_voucher_id'), 'voucher_redemptions', ['voucher_id'], unique=False)
    op.create_index(op.f('ix_voucher_redemptions_booking_id'), 'voucher_redemptions', ['booking_id'], unique=False)
    op.create_index(op.f('ix_voucher_redemptions_user_id'), 'voucher_redemptions', ['user_id'], unique=False)

    # Create otp_verifications table
    op.create_table('otp_verifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=False),
        sa.Column('code_hash', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('is_used', sa.Boolean(), nullable=False),
        sa.Column('failed_attempts', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_otp_verifications_phone'), 'otp_verifications', ['phone'], unique=False)
    op.create_index(op.f('ix_otp_verifications_expires_at'), 'otp_verifications', ['expires_at'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('otp_verifications')
    op.drop_table('voucher_redemptions')
    op.drop_table('birthday_parties')
    op.drop_table('bookings')
    op.drop_table('discount_vouchers')
    op.drop_table('holiday_calendar')
    op.drop_table('time_slots')
    op.drop_table('packages')
    op.drop_table('users')
