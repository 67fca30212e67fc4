# backend/classbook/repositories/class_repository.py
"""
Class Repository

Data access for group classes. Every write to the ``booked`` counter (and to
``capacity``, which bounds it) goes through a single conditional UPDATE whose
affected-row count tells the caller whether the guard held. The database's
row write lock serializes concurrent statements against the same class, so
check-and-increment is one atomic step with no read-modify-write window.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from ..core.exceptions import RepositoryException
from ..models.group_class import GroupClass
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ClassRepository(BaseRepository[GroupClass]):
    """Repository for group classes and their capacity counters."""

    def __init__(self, db: Session):
        super().__init__(db, GroupClass)
        self.logger = logging.getLogger(__name__)

    def list_scheduled(self) -> List[GroupClass]:
        """All classes in schedule order (date, then start time)."""
        query = self._build_query().order_by(GroupClass.class_date, GroupClass.start_time)
        return self._execute_query(query)

    # Capacity counter -----------------------------------------------------

    def try_increment_booked(self, class_id: str, count: int) -> bool:
        """Add ``count`` to booked only if the result stays within capacity."""
        stmt = (
            update(GroupClass)
            .where(
                GroupClass.id == class_id,
                GroupClass.booked + count <= GroupClass.capacity,
            )
            .values(booked=GroupClass.booked + count)
            .execution_options(synchronize_session=False)
        )
        return self._execute_guarded(stmt, class_id, "increment booked")

    def try_decrement_booked(self, class_id: str, count: int) -> bool:
        """Subtract ``count`` from booked only if at least ``count`` is booked."""
        stmt = (
            update(GroupClass)
            .where(GroupClass.id == class_id, GroupClass.booked >= count)
            .values(booked=GroupClass.booked - count)
            .execution_options(synchronize_session=False)
        )
        return self._execute_guarded(stmt, class_id, "decrement booked")

    def clamp_booked_to_zero(self, class_id: str) -> bool:
        stmt = (
            update(GroupClass)
            .where(GroupClass.id == class_id)
            .values(booked=0)
            .execution_options(synchronize_session=False)
        )
        return self._execute_guarded(stmt, class_id, "clamp booked")

    def try_set_capacity(self, class_id: str, capacity: int) -> bool:
        """Change capacity only if it is not below the current booked count."""
        stmt = (
            update(GroupClass)
            .where(GroupClass.id == class_id, GroupClass.booked <= capacity)
            .values(capacity=capacity)
            .execution_options(synchronize_session=False)
        )
        return self._execute_guarded(stmt, class_id, "set capacity")

    def delete_if_unbooked(self, class_id: str) -> bool:
        """Delete the class only while nobody holds a spot in it."""
        stmt = (
            delete(GroupClass)
            .where(GroupClass.id == class_id, GroupClass.booked == 0)
            .execution_options(synchronize_session=False)
        )
        deleted = self._execute_guarded(stmt, class_id, "delete class", expire=False)
        if deleted:
            cached = self._cached_instance(class_id)
            if cached is not None:
                self.db.expunge(cached)
        return deleted

    def get_counters(self, class_id: str) -> Optional[tuple[int, int]]:
        """Return (capacity, booked) straight from the database."""
        try:
            row = (
                self.db.query(GroupClass.capacity, GroupClass.booked)
                .filter(GroupClass.id == class_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error reading counters for class {class_id}: {str(e)}")
            raise RepositoryException(f"Failed to read class counters: {str(e)}") from e
        if row is None:
            return None
        return int(row.capacity), int(row.booked)

    # Helpers --------------------------------------------------------------

    def _execute_guarded(self, stmt, class_id: str, action: str, expire: bool = True) -> bool:
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to {action} for class {class_id}: {str(e)}")
            raise RepositoryException(f"Failed to {action}: {str(e)}") from e

        changed = result.rowcount == 1
        if changed and expire:
            cached = self._cached_instance(class_id)
            if cached is not None:
                self.db.expire(cached, ["booked", "capacity"])
        return changed

    def _cached_instance(self, class_id: str) -> Optional[GroupClass]:
        return self.db.identity_map.get(identity_key(GroupClass, class_id))
