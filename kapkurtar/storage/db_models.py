"""SQLAlchemy database models.

Maps domain models to relational tables.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, relationship

from kapkurtar.models.reservation import ReservationStatus


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class ProfileTable(Base):
    """Client profile table."""

    __tablename__ = "profiles"

    id = Column(Uuid, primary_key=True, default=uuid4)
    auth_id = Column(Uuid, nullable=False, unique=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    halal = Column(Boolean, nullable=False, default=False)
    vegan = Column(Boolean, nullable=False, default=False)
    eco_friendly = Column(Boolean, nullable=False, default=False)
    has_location = Column(Boolean, nullable=False, default=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    push_token = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    reservations = relationship("ReservationTable", back_populates="client")

    __table_args__ = (
        CheckConstraint("latitude IS NULL OR (latitude >= -90 AND latitude <= 90)", name="check_profile_latitude"),
        CheckConstraint("longitude IS NULL OR (longitude >= -180 AND longitude <= 180)", name="check_profile_longitude"),
    )


class MerchantTable(Base):
    """Merchant (business account) table."""

    __tablename__ = "merchants"

    id = Column(Uuid, primary_key=True, default=uuid4)
    auth_id = Column(Uuid, nullable=False, unique=True)
    company_name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    street = Column(String(200), nullable=True)
    city = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    phone = Column(String(30), nullable=True)
    logo_url = Column(String(500), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    timezone = Column(String(64), nullable=False, default="Europe/Istanbul")
    is_verified = Column(Boolean, nullable=False, default=False)
    rating = Column(Float, nullable=False, default=0.0)
    review_count = Column(Integer, nullable=False, default=0)
    push_token = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    offers = relationship("OfferTable", back_populates="merchant")

    __table_args__ = (
        Index("ix_merchants_location", latitude, longitude),
    )


class OfferTable(Base):
    """Offer entity table."""

    __tablename__ = "offers"

    id = Column(Uuid, primary_key=True, default=uuid4)
    merchant_id = Column(Uuid, ForeignKey("merchants.id", ondelete="RESTRICT"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    original_price = Column(Numeric(10, 2), nullable=False)
    discounted_price = Column(Numeric(10, 2), nullable=False)
    quantity_total = Column(Integer, nullable=False)
    quantity_available = Column(Integer, nullable=False)
    pickup_start = Column(DateTime, nullable=False)
    pickup_end = Column(DateTime, nullable=False)
    image_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    merchant = relationship("MerchantTable", back_populates="offers")
    reservations = relationship("ReservationTable", back_populates="offer")

    __table_args__ = (
        CheckConstraint("pickup_start < pickup_end", name="check_pickup_window"),
        CheckConstraint("original_price > 0", name="check_positive_original_price"),
        CheckConstraint("discounted_price < original_price", name="check_discount_below_original"),
        CheckConstraint("quantity_total > 0", name="check_positive_total_quantity"),
        CheckConstraint("quantity_available >= 0", name="check_nonnegative_available"),
        CheckConstraint("quantity_available <= quantity_total", name="check_available_le_total"),
        Index("ix_offers_active_expires", is_active, expires_at),
        Index("ix_offers_merchant_created", merchant_id, created_at.desc()),
    )


class ReservationTable(Base):
    """Reservation entity table."""

    __tablename__ = "reservations"

    id = Column(Uuid, primary_key=True, default=uuid4)
    client_id = Column(Uuid, ForeignKey("profiles.id", ondelete="RESTRICT"), nullable=False, index=True)
    merchant_id = Column(Uuid, ForeignKey("merchants.id", ondelete="RESTRICT"), nullable=False, index=True)
    offer_id = Column(Uuid, ForeignKey("offers.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    status = Column(
        Enum(ReservationStatus, native_enum=True),
        nullable=False,
        default=ReservationStatus.PENDING,
        index=True,
    )
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    offer = relationship("OfferTable", back_populates="reservations")
    client = relationship("ProfileTable", back_populates="reservations")
    merchant = relationship("MerchantTable")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_positive_quantity"),
        Index("ix_reservations_client_created", client_id, created_at.desc()),
        Index("ix_reservations_merchant_created", merchant_id, created_at.desc()),
    )


class FavoriteTable(Base):
    """Client favorite merchants."""

    __tablename__ = "favorites"

    id = Column(Uuid, primary_key=True, default=uuid4)
    profile_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    merchant_id = Column(Uuid, ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("profile_id", "merchant_id", name="uq_favorites_profile_merchant"),
    )


class NotificationTable(Base):
    """Delivered notifications, one row per recipient."""

    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid4)
    principal_id = Column(Uuid, nullable=False)
    type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_notifications_principal_created", principal_id, created_at.desc()),
    )
