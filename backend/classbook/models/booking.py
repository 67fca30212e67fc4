# backend/classbook/models/booking.py
"""
Booking model.

A booking row exists only once payment has been verified and capacity has
been reserved. Amounts are snapshotted at confirmation time and kept for the
audit trail; rows are never hard-deleted, cancellation flips ``status``.
"""

from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class BookingStatus(str, Enum):
    """Booking lifecycle statuses (one-way: CONFIRMED -> CANCELLED)."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentType(str, Enum):
    """How much of the total is collected when the booking is made."""

    FULL = "full"
    PARTIAL = "partial"


class Booking(Base):
    """Confirmed reservation of participant spots against a class."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    # Nullable so cancelled history survives deletion of its class.
    class_id = Column(
        String(26), ForeignKey("classes.id", ondelete="SET NULL"), nullable=True, index=True
    )
    class_title = Column(JSON, nullable=False, default=dict)

    customer_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=False, default="")
    participants = Column(Integer, nullable=False)

    payment_type = Column(String(20), nullable=False, default=PaymentType.FULL.value)
    total_price = Column(Numeric(10, 2), nullable=False)
    paid_amount = Column(Numeric(10, 2), nullable=False)
    remaining_amount = Column(Numeric(10, 2), nullable=False, default=0)

    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value, index=True)

    payment_intent_id = Column(String(255), nullable=False, unique=True, comment="Stripe PI")
    refund_id = Column(String(255), nullable=True)
    refund_status = Column(String(50), nullable=True)
    needs_capacity_reconciliation = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    group_class = relationship("GroupClass", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("participants > 0", name="ck_bookings_participants_positive"),
        CheckConstraint("paid_amount >= 0", name="ck_bookings_paid_non_negative"),
        CheckConstraint("remaining_amount >= 0", name="ck_bookings_remaining_non_negative"),
        # Tolerance of one minor unit; SQLite stores NUMERIC as floating point.
        CheckConstraint(
            "abs(paid_amount + remaining_amount - total_price) < 0.01",
            name="ck_bookings_amounts_balance",
        ),
        CheckConstraint(
            "status IN ('confirmed', 'cancelled')", name="ck_bookings_status_valid"
        ),
        CheckConstraint(
            "payment_type IN ('full', 'partial')", name="ck_bookings_payment_type_valid"
        ),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED.value

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id} class={self.class_id} participants={self.participants} "
            f"status={self.status}>"
        )
