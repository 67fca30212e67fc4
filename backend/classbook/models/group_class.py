# backend/classbook/models/group_class.py
"""
Group class model.

A class is a scheduled offering with a finite number of participant spots.
The ``booked`` counter is owned by the capacity ledger: it is only ever
changed through conditional UPDATE statements in ClassRepository so that
concurrent reservations can never push it past ``capacity``.
"""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.constants import DEFAULT_AUDIENCE_TYPE
from ..database import Base


class GroupClass(Base):
    """A scheduled group class with capacity and a per-participant price."""

    __tablename__ = "classes"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    # Localized text: {"ru": "...", "lv": "..."}
    title = Column(JSON, nullable=False, default=dict)
    description = Column(JSON, nullable=False, default=dict)
    instructor = Column(JSON, nullable=False, default=dict)
    languages = Column(JSON, nullable=False, default=list)

    # Schedule (wall-clock in the school timezone)
    class_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    duration = Column(String(100), nullable=False, default="")

    price = Column(Numeric(10, 2), nullable=False)
    capacity = Column(Integer, nullable=False)
    booked = Column(Integer, nullable=False, default=0, server_default="0")
    audience_type = Column(String(20), nullable=False, default=DEFAULT_AUDIENCE_TYPE)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    bookings = relationship("Booking", back_populates="group_class", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_classes_capacity_positive"),
        CheckConstraint("booked >= 0", name="ck_classes_booked_non_negative"),
        CheckConstraint("booked <= capacity", name="ck_classes_booked_within_capacity"),
        CheckConstraint("price >= 0", name="ck_classes_price_non_negative"),
    )

    @property
    def available_spots(self) -> int:
        return int(self.capacity or 0) - int(self.booked or 0)

    def __repr__(self) -> str:
        return (
            f"<GroupClass {self.id} {self.class_date} {self.start_time} "
            f"booked={self.booked}/{self.capacity}>"
        )
