# backend/classbook/services/class_service.py
"""
Class Service

Schedule management for group classes. Capacity changes go through the
capacity ledger so a class can never be resized below its bookings, and a
class is only deleted while nobody holds a spot in it.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException, PolicyViolationException
from ..models.group_class import GroupClass
from ..repositories.factory import RepositoryFactory
from ..schemas.group_class import GroupClassCreate, GroupClassUpdate
from .base import BaseService
from .capacity_ledger import CapacityLedger

logger = logging.getLogger(__name__)


class ClassService(BaseService):
    """Create, read, update and delete scheduled classes."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_class_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.ledger = CapacityLedger(db)

    @BaseService.measure_operation("list_classes")
    def list_classes(self) -> List[GroupClass]:
        return self.repository.list_scheduled()

    @BaseService.measure_operation("get_class")
    def get_class(self, class_id: str) -> GroupClass:
        group_class = self.repository.get_by_id(class_id)
        if group_class is None:
            raise NotFoundException("Class not found", details={"class_id": class_id})
        return group_class

    @BaseService.measure_operation("create_class")
    def create_class(self, data: GroupClassCreate) -> GroupClass:
        with self.transaction():
            group_class = self.repository.create(
                title=data.title,
                description=data.description,
                instructor=data.instructor,
                languages=data.languages,
                class_date=data.class_date,
                start_time=data.start_time,
                duration=data.duration,
                price=data.price,
                capacity=data.capacity,
                booked=0,
                audience_type=data.audience_type,
            )

        self.logger.info(
            "class_created",
            extra={"class_id": group_class.id, "capacity": group_class.capacity},
        )
        return group_class

    @BaseService.measure_operation("update_class")
    def update_class(self, class_id: str, data: GroupClassUpdate) -> GroupClass:
        """
        Apply a partial update.

        Raises:
            NotFoundException: Unknown class
            PolicyViolationException: New capacity is below current bookings
        """
        changes = data.changes()
        capacity = changes.pop("capacity", None)

        with self.transaction():
            group_class = self.get_class(class_id)
            if capacity is not None and capacity != group_class.capacity:
                self.ledger.resize(class_id, capacity)
            if changes:
                self.repository.update(class_id, **changes)

        self.repository.refresh(group_class)
        self.logger.info(
            "class_updated",
            extra={"class_id": class_id, "fields": sorted(data.changes().keys())},
        )
        return group_class

    @BaseService.measure_operation("delete_class")
    def delete_class(self, class_id: str) -> GroupClass:
        """
        Delete a class that has no confirmed bookings.

        Cancelled bookings keep their history; their class reference is cleared.

        Raises:
            NotFoundException: Unknown class
            PolicyViolationException: Confirmed bookings still reference the class
        """
        with self.transaction():
            group_class = self.get_class(class_id)
            active = self.booking_repository.count_confirmed_for_class(class_id)
            if active > 0 or not self.repository.delete_if_unbooked(class_id):
                raise PolicyViolationException(
                    "Cannot delete class with active bookings",
                    code="CLASS_HAS_ACTIVE_BOOKINGS",
                    details={"active_bookings": active},
                )

        self.logger.info("class_deleted", extra={"class_id": class_id})
        return group_class

