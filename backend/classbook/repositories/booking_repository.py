# backend/classbook/repositories/booking_repository.py
"""
Booking Repository

Implements data access operations for bookings:
- Booking creation (integrity errors are surfaced for idempotent confirms)
- Lookups by payment intent and email
- Confirmed participant totals used for capacity reconciliation
"""

from datetime import datetime
import logging
from typing import Any, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def create(self, **kwargs: Any) -> Booking:
        """Create a booking, exposing integrity errors for conflict handling."""
        try:
            return super().create(**kwargs)
        except RepositoryException as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise exc.__cause__
            raise

    def get_by_payment_intent(self, payment_intent_id: str) -> Optional[Booking]:
        return self.find_one_by(payment_intent_id=payment_intent_id)

    def list_recent(self) -> List[Booking]:
        """All bookings, newest first."""
        query = self._build_query().order_by(Booking.created_at.desc(), Booking.id.desc())
        return self._execute_query(query)

    def list_by_email(self, email: str) -> List[Booking]:
        """Bookings for a normalized (lower-cased) email, newest first."""
        query = (
            self._build_query()
            .filter(Booking.email == email)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        return self._execute_query(query)

    def mark_cancelled(
        self,
        booking_id: str,
        *,
        cancelled_at: datetime,
        refund_id: Optional[str],
        refund_status: Optional[str],
    ) -> bool:
        """
        Flip a booking from confirmed to cancelled.

        Conditional on the current status, so of two concurrent cancellations
        only one sees True and goes on to release capacity.
        """
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == BookingStatus.CONFIRMED.value)
            .values(
                status=BookingStatus.CANCELLED.value,
                cancelled_at=cancelled_at,
                refund_id=refund_id,
                refund_status=refund_status,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to cancel booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to cancel booking: {str(e)}") from e

        changed = result.rowcount == 1
        if changed:
            cached = self.db.identity_map.get(identity_key(Booking, booking_id))
            if cached is not None:
                self.db.expire(cached)
        return changed

    def flag_for_reconciliation(self, booking_id: str) -> None:
        self.update(booking_id, needs_capacity_reconciliation=True)

    def count_confirmed_for_class(self, class_id: str) -> int:
        return self.count(class_id=class_id, status=BookingStatus.CONFIRMED.value)
