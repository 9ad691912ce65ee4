"""Initial schema with profiles, merchants, offers, reservations, favorites

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create initial database schema."""
    # Create enum types
    op.execute("CREATE TYPE reservationstatus AS ENUM ('PENDING', 'CONFIRMED', 'CANCELLED', 'COMPLETED')")

    # Create profiles table
    op.create_table(
        'profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, primary_key=True),
        sa.Column('auth_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('halal', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('vegan', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('eco_friendly', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('has_location', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('push_token', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('latitude IS NULL OR (latitude >= -90 AND latitude <= 90)', name='check_profile_latitude'),
        sa.CheckConstraint('longitude IS NULL OR (longitude >= -180 AND longitude <= 180)', name='check_profile_longitude'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('auth_id')
    )

    # Create merchants table
    op.create_table(
        'merchants',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, primary_key=True),
        sa.Column('auth_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('company_name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('street', sa.String(length=200), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('postal_code', sa.String(length=20), nullable=True),
        sa.Column('country', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('logo_url', sa.String(length=500), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='Europe/Istanbul'),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('rating', sa.Float(), nullable=False, server_default='0'),
        sa.Column('review_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('push_token', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('auth_id')
    )
    op.create_index('ix_merchants_company_name', 'merchants', ['company_name'])
    op.create_index('ix_merchants_location', 'merchants', ['latitude', 'longitude'])

    # Create offers table
    op.create_table(
        'offers',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, primary_key=True),
        sa.Column('merchant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('original_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('discounted_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('quantity_total', sa.Integer(), nullable=False),
        sa.Column('quantity_available', sa.Integer(), nullable=False),
        sa.Column('pickup_start', sa.DateTime(), nullable=False),
        sa.Column('pickup_end', sa.DateTime(), nullable=False),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('pickup_start < pickup_end', name='check_pickup_window'),
        sa.CheckConstraint('original_price > 0', name='check_positive_original_price'),
        sa.CheckConstraint('discounted_price < original_price', name='check_discount_below_original'),
        sa.CheckConstraint('quantity_total > 0', name='check_positive_total_quantity'),
        sa.CheckConstraint('quantity_available >= 0', name='check_nonnegative_available'),
        sa.CheckConstraint('quantity_available <= quantity_total', name='check_available_le_total'),
        sa.ForeignKeyConstraint(['merchant_id'], ['merchants.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_offers_merchant_id', 'offers', ['merchant_id'])
    op.create_index('ix_offers_expires_at', 'offers', ['expires_at'])
    op.create_index('ix_offers_created_at', 'offers', ['created_at'])
    op.create_index('ix_offers_active_expires', 'offers', ['is_active', 'expires_at'])
    op.create_index('ix_offers_merchant_created', 'offers', ['merchant_id', sa.text('created_at DESC')])

    # Create reservations table
    op.create_table(
        'reservations',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, primary_key=True),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('merchant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('offer_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('status', postgresql.ENUM('PENDING', 'CONFIRMED', 'CANCELLED', 'COMPLETED', name='reservationstatus', create_type=False), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='check_positive_quantity'),
        sa.ForeignKeyConstraint(['client_id'], ['profiles.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['merchant_id'], ['merchants.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['offer_id'], ['offers.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_reservations_client_id', 'reservations', ['client_id'])
    op.create_index('ix_reservations_merchant_id', 'reservations', ['merchant_id'])
    op.create_index('ix_reservations_offer_id', 'reservations', ['offer_id'])
    op.create_index('ix_reservations_status', 'reservations', ['status'])
    op.create_index('ix_reservations_created_at', 'reservations', ['created_at'])
    op.create_index('ix_reservations_client_created', 'reservations', ['client_id', sa.text('created_at DESC')])
    op.create_index('ix_reservations_merchant_created', 'reservations', ['merchant_id', sa.text('created_at DESC')])

    # Create favorites table
    op.create_table(
        'favorites',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, primary_key=True),
        sa.Column('profile_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('merchant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['merchant_id'], ['merchants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('profile_id', 'merchant_id', name='uq_favorites_profile_merchant')
    )
    op.create_index('ix_favorites_profile_id', 'favorites', ['profile_id'])
    op.create_index('ix_favorites_merchant_id', 'favorites', ['merchant_id'])


def downgrade() -> None:
    """Drop all tables and types."""
    op.drop_table('favorites')
    op.drop_table('reservations')
    op.drop_table('offers')
    op.drop_table('merchants')
    op.drop_table('profiles')

    op.execute('DROP TYPE reservationstatus')
