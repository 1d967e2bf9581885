# SQLAlchemy ORM models for core domain tables (identities, users, properties, bookings, notifications, favorites).
# Keep business logic out of models; favor transactional logic in route handlers and helper modules.
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_mixin

from .db import Base


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _empty_list() -> list:
    return []


def _empty_dict() -> dict:
    return {}


@declarative_mixin
class TimestampMixin:
    """Common UTC-aware timestamps.

    - created_at: set on insert
    - updated_at: set on insert and updated on each modification

    Set application-side (not server_default) so rows created within the same
    second still order correctly on SQLite.
    """
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class Identity(Base):
    """Login credentials issued by the identity provider. Never exposed over HTTP."""
    __tablename__ = "identities"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class User(Base, TimestampMixin):
    """Application profile for an identity.

    Roles:
    - customer: can favorite and book approved listings
    - owner: can list and manage properties, confirm/cancel bookings on them
    - admin: reviews listings and sees all profiles
    """
    __tablename__ = "users"

    id = Column(String(36), ForeignKey("identities.id"), primary_key=True)
    email = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False, default="")
    role = Column(String(20), nullable=False, index=True)  # "customer", "owner" or "admin"
    is_active = Column(Boolean, nullable=False, default=True)


class Property(Base, TimestampMixin):
    """Marketplace listing created by an owner.

    Status transitions:
    pending -> approved -> sold
       └──── rejected

    'version' is bumped on every write and compared on update (optimistic concurrency).
    """
    __tablename__ = "properties"

    id = Column(String(36), primary_key=True, default=new_id)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    owner_name = Column(String(255), nullable=False, default="")
    owner_email = Column(String(255), nullable=False, default="")
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    location = Column(String(255), nullable=False, default="")
    price = Column(Float, nullable=False, default=0.0)
    type = Column(String(50), nullable=False, default="house")
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    area = Column(Float, nullable=True)
    images = Column(JSON, nullable=False, default=_empty_list)
    # Identity evidence supplied by the owner when listing: {phone, idNumber, idType, idImageUrl}
    owner_verification = Column(JSON, nullable=True)
    # Optional witness to the listing: {name, phone, relationship, address}
    third_party_witness = Column(JSON, nullable=True)
    status = Column(String(20), nullable=False, default="pending")
    expiry_date = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String(36), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(String(36), nullable=True)
    rejection_reason = Column(String(500), nullable=True)
    version = Column(Integer, nullable=False, default=1)

    # Public browsing filters and the newest-first listing order
    __table_args__ = (
        Index("ix_properties_status", "status"),
        Index("ix_properties_type", "type"),
        Index("ix_properties_created_at", "created_at"),
    )


class Booking(Base, TimestampMixin):
    """Purchase/rent request by a customer against an approved listing.

    Status transitions:
    pending -> confirmed
       └──── cancelled

    property_id is a plain reference: bookings outlive a deleted listing.
    owner_id is copied from the property at creation time.
    """
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=new_id)
    property_id = Column(String(36), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    customer_name = Column(String(255), nullable=False, default="")
    customer_email = Column(String(255), nullable=False, default="")
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    booking_type = Column(String(20), nullable=False)  # "purchase" or "rent"
    payment_method = Column(String(30), nullable=False)
    amount = Column(Float, nullable=False)
    contact_info = Column(JSON, nullable=False, default=_empty_dict)
    status = Column(String(20), nullable=False, default="pending")
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index("ix_bookings_status", "status"),
    )


class Notification(Base):
    """Inbox entry for one recipient; carries enough context to render without a join."""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    recipient_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(40), nullable=False)
    property_id = Column(String(36), nullable=True)
    property_title = Column(String(255), nullable=True)
    owner_name = Column(String(255), nullable=True)
    message = Column(String(1000), nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Inbox reads are always per recipient, newest first
    __table_args__ = (
        Index("ix_notifications_recipient_created_at", "recipient_id", "created_at"),
    )


class Favorite(Base):
    """Customer <-> property join; the pair is unique."""
    __tablename__ = "favorites"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    property_id = Column(String(36), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "property_id", name="uq_favorites_user_property"),
    )
