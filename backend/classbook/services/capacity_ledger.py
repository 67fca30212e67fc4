# backend/classbook/services/capacity_ledger.py
"""
Capacity Ledger

The single authority over a class's ``booked`` counter. Reservations are
conditional UPDATEs (see ClassRepository), so concurrent reserve() calls
against the same class are serialized by the database and at most the
reservations that actually fit succeed. Nothing else in the codebase writes
``booked``.

The ledger does not commit: reserve/release run inside the caller's
transaction so a reservation and the booking row it pays for are persisted
(or rolled back) together.
"""

from dataclasses import dataclass
import logging

from sqlalchemy.orm import Session

from ..core.exceptions import (
    CapacityExceededException,
    NotFoundException,
    PolicyViolationException,
    ValidationException,
)
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReleaseResult:
    class_id: str
    released: int
    clamped: bool = False


class CapacityLedger:
    """Atomic reserve/release of participant spots per class."""

    def __init__(self, db: Session):
        self.db = db
        self.class_repository = RepositoryFactory.create_class_repository(db)
        self.logger = logging.getLogger(self.__class__.__name__)

    def reserve(self, class_id: str, count: int) -> None:
        """
        Reserve ``count`` spots in a class.

        Raises:
            ValidationException: If count is not positive
            NotFoundException: If the class does not exist
            CapacityExceededException: If the spots do not fit; nothing changes
        """
        self._require_positive(count)

        if self.class_repository.try_increment_booked(class_id, count):
            prometheus_metrics.record_capacity_operation("reserve", "success")
            self.logger.info(
                "capacity_reserved",
                extra={"class_id": class_id, "count": count},
            )
            return

        counters = self.class_repository.get_counters(class_id)
        if counters is None:
            prometheus_metrics.record_capacity_operation("reserve", "not_found")
            raise NotFoundException("Class not found", details={"class_id": class_id})

        capacity, booked = counters
        prometheus_metrics.record_capacity_operation("reserve", "capacity_exceeded")
        self.logger.info(
            "capacity_reservation_rejected",
            extra={
                "class_id": class_id,
                "count": count,
                "capacity": capacity,
                "booked": booked,
            },
        )
        raise CapacityExceededException(class_id, requested=count, available=capacity - booked)

    def release(self, class_id: str, count: int) -> ReleaseResult:
        """
        Give back ``count`` previously reserved spots.

        The counter never goes below zero. Releasing more than is booked is a
        logic error upstream: it is logged, the counter is clamped to zero and
        the result is flagged so the caller can mark the booking for manual
        reconciliation.
        """
        self._require_positive(count)

        if self.class_repository.try_decrement_booked(class_id, count):
            prometheus_metrics.record_capacity_operation("release", "success")
            self.logger.info("capacity_released", extra={"class_id": class_id, "count": count})
            return ReleaseResult(class_id=class_id, released=count)

        counters = self.class_repository.get_counters(class_id)
        if counters is None:
            prometheus_metrics.record_capacity_operation("release", "not_found")
            self.logger.error(
                "capacity_release_class_missing",
                extra={"class_id": class_id, "count": count},
            )
            return ReleaseResult(class_id=class_id, released=0, clamped=True)

        _, booked = counters
        self.class_repository.clamp_booked_to_zero(class_id)
        prometheus_metrics.record_capacity_operation("release", "clamped")
        self.logger.error(
            "capacity_release_exceeds_booked",
            extra={"class_id": class_id, "count": count, "booked": booked},
        )
        return ReleaseResult(class_id=class_id, released=booked, clamped=True)

    def available_spots(self, class_id: str) -> int:
        """Return ``capacity - booked`` for a class."""
        counters = self.class_repository.get_counters(class_id)
        if counters is None:
            raise NotFoundException("Class not found", details={"class_id": class_id})
        capacity, booked = counters
        return capacity - booked

    def resize(self, class_id: str, capacity: int) -> None:
        """
        Change a class's capacity without ever dropping below current bookings.

        Raises:
            NotFoundException: If the class does not exist
            PolicyViolationException: If capacity would fall below booked
        """
        self._require_positive(capacity)
        if self.class_repository.try_set_capacity(class_id, capacity):
            prometheus_metrics.record_capacity_operation("resize", "success")
            return

        counters = self.class_repository.get_counters(class_id)
        if counters is None:
            raise NotFoundException("Class not found", details={"class_id": class_id})
        prometheus_metrics.record_capacity_operation("resize", "rejected")
        raise PolicyViolationException(
            "Cannot set capacity lower than current bookings",
            code="CAPACITY_BELOW_BOOKED",
            details={"current_booked": counters[1], "requested_capacity": capacity},
        )

    @staticmethod
    def _require_positive(count: int) -> None:
        if not isinstance(count, int) or isinstance(count, bool) or count < 1:
            raise ValidationException(
                "Count must be a positive integer", details={"count": count}
            )
