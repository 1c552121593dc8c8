"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``            -- customers, runners and admins (runner profile inline)
* ``errands``          -- errand requests, priced once at creation
* ``errand_tracking``  -- append-only location/status trail per errand

Indexes
-------
* **B-Tree** on ``h3_cell`` / ``pickup_h3`` for the "within R km" prefilter
  (see ``getitdone.domain.spatial``).
* **B-Tree** on ``status``, ``customer_id``, ``runner_id`` for the list
  endpoints.

Concurrency
-----------
``errands.version`` is the mapper's ``version_id_col``: every ORM flush of
an errand checks and bumps it, so a stale concurrent write fails instead
of silently overwriting.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .database import Base
from getitdone.domain.enums import (
    ErrandStatus,
    ErrandType,
    PaymentMethod,
    PaymentStatus,
    Priority,
    UserRole,
    VehicleType,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    """Store enum *values* ("in_progress"), not member names."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(80), nullable=False)
    last_name = Column(String(80), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(32), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(_enum(UserRole, "userrole"), default=UserRole.CUSTOMER, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Runner profile
    runner_is_approved = Column(Boolean, default=False, nullable=False)
    vehicle_type = Column(_enum(VehicleType, "vehicletype"), nullable=True)
    rating = Column(Float, default=0.0, nullable=False)
    total_ratings = Column(Integer, default=0, nullable=False)
    earnings = Column(Float, default=0.0, nullable=False)
    completed_tasks = Column(Integer, default=0, nullable=False)

    # Customer profile
    wallet_balance = Column(Float, default=0.0, nullable=False)

    # Last known position
    current_lng = Column(Float, nullable=True)
    current_lat = Column(Float, nullable=True)
    h3_cell = Column(String(20), nullable=True)

    last_login = Column(DateTime(timezone=True), nullable=True)
    password_changed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_users_role", "role"),
        Index("idx_users_h3_cell", "h3_cell"),
    )


class ErrandModel(Base):
    __tablename__ = "errands"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    runner_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    type = Column(_enum(ErrandType, "errandtype"), nullable=False)
    status = Column(
        _enum(ErrandStatus, "errandstatus"), default=ErrandStatus.PENDING, nullable=False
    )
    priority = Column(_enum(Priority, "errandpriority"), default=Priority.NORMAL, nullable=False)

    # Location documents: {address, city, state, country, coordinates: [lng, lat]}
    pickup_location = Column(JSON, nullable=False)
    dropoff_location = Column(JSON, nullable=False)
    pickup_h3 = Column(String(20), nullable=False)

    items = Column(JSON, default=list, nullable=False)
    special_instructions = Column(Text, nullable=True)
    scheduled_for = Column(DateTime(timezone=True), nullable=True)

    estimated_distance = Column(Float, nullable=False)  # km
    estimated_duration = Column(Integer, nullable=False)  # minutes
    base_price = Column(Float, nullable=False)
    priority_fee = Column(Float, default=0.0, nullable=False)
    service_fee = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)

    payment_status = Column(
        _enum(PaymentStatus, "paymentstatus"), default=PaymentStatus.PENDING, nullable=False
    )
    payment_method = Column(_enum(PaymentMethod, "paymentmethod"), nullable=True)
    payment_reference = Column(String(120), nullable=True)

    rating_stars = Column(Integer, nullable=True)
    rating_comment = Column(Text, nullable=True)
    rated_at = Column(DateTime(timezone=True), nullable=True)

    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancellation_by = Column(_enum(UserRole, "cancellationby"), nullable=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    tracking = relationship(
        "TrackingModel",
        lazy="selectin",
        order_by="TrackingModel.id",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_errands_status", "status"),
        Index("idx_errands_customer", "customer_id"),
        Index("idx_errands_runner", "runner_id"),
        Index("idx_errands_pickup_h3", "pickup_h3"),
    )


class TrackingModel(Base):
    __tablename__ = "errand_tracking"

    id = Column(Integer, primary_key=True, autoincrement=True)
    errand_id = Column(Integer, ForeignKey("errands.id", ondelete="CASCADE"), nullable=False)
    longitude = Column(Float, nullable=False)
    latitude = Column(Float, nullable=False)
    status = Column(_enum(ErrandStatus, "trackingstatus"), nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (Index("idx_tracking_errand", "errand_id"),)
