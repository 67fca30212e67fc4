"""Tests for the capacity ledger, including concurrent reservations."""

from concurrent.futures import ThreadPoolExecutor
import threading

import pytest

from classbook.core.exceptions import (
    CapacityExceededException,
    NotFoundException,
    PolicyViolationException,
    ValidationException,
)
from classbook.services.capacity_ledger import CapacityLedger


class TestReserve:
    def test_reserve_within_capacity(self, db, make_class):
        group_class = make_class(capacity=10)
        ledger = CapacityLedger(db)

        ledger.reserve(group_class.id, 4)
        db.commit()

        assert group_class.booked == 4
        assert ledger.available_spots(group_class.id) == 6

    def test_reserve_exactly_to_capacity(self, db, make_class):
        group_class = make_class(capacity=3)
        ledger = CapacityLedger(db)

        ledger.reserve(group_class.id, 3)

        assert ledger.available_spots(group_class.id) == 0

    def test_reserve_over_capacity_changes_nothing(self, db, make_class):
        group_class = make_class(capacity=10)
        ledger = CapacityLedger(db)
        ledger.reserve(group_class.id, 8)

        with pytest.raises(CapacityExceededException) as exc_info:
            ledger.reserve(group_class.id, 3)

        assert exc_info.value.code == "CAPACITY_EXCEEDED"
        assert exc_info.value.details["available_spots"] == 2
        assert ledger.available_spots(group_class.id) == 2

    def test_reserve_unknown_class(self, db):
        with pytest.raises(NotFoundException):
            CapacityLedger(db).reserve("01HZZZZZZZZZZZZZZZZZZZZZZZ", 1)

    @pytest.mark.parametrize("count", [0, -1, True])
    def test_reserve_rejects_non_positive_counts(self, db, make_class, count):
        group_class = make_class()
        with pytest.raises(ValidationException):
            CapacityLedger(db).reserve(group_class.id, count)


class TestRelease:
    def test_release_returns_spots(self, db, make_class):
        group_class = make_class(capacity=10)
        ledger = CapacityLedger(db)
        ledger.reserve(group_class.id, 5)

        result = ledger.release(group_class.id, 2)

        assert result.released == 2
        assert not result.clamped
        assert ledger.available_spots(group_class.id) == 7

    def test_release_more_than_booked_clamps_to_zero(self, db, make_class):
        group_class = make_class(capacity=10)
        ledger = CapacityLedger(db)
        ledger.reserve(group_class.id, 2)

        result = ledger.release(group_class.id, 5)

        assert result.clamped
        assert result.released == 2
        db.refresh(group_class)
        assert group_class.booked == 0

    def test_release_for_missing_class_is_flagged(self, db):
        result = CapacityLedger(db).release("01HZZZZZZZZZZZZZZZZZZZZZZZ", 1)
        assert result.clamped
        assert result.released == 0


class TestResize:
    def test_resize_above_booked(self, db, make_class):
        group_class = make_class(capacity=10)
        ledger = CapacityLedger(db)
        ledger.reserve(group_class.id, 6)

        ledger.resize(group_class.id, 6)

        db.refresh(group_class)
        assert group_class.capacity == 6

    def test_resize_below_booked_is_rejected(self, db, make_class):
        group_class = make_class(capacity=10)
        ledger = CapacityLedger(db)
        ledger.reserve(group_class.id, 6)

        with pytest.raises(PolicyViolationException) as exc_info:
            ledger.resize(group_class.id, 5)

        assert exc_info.value.code == "CAPACITY_BELOW_BOOKED"
        db.refresh(group_class)
        assert group_class.capacity == 10


class TestConcurrentReservations:
    def test_concurrent_reservations_never_exceed_capacity(self, db, session_factory, make_class):
        group_class = make_class(capacity=5)
        class_id = group_class.id
        start = threading.Barrier(20)

        def attempt() -> bool:
            session = session_factory()
            try:
                start.wait()
                CapacityLedger(session).reserve(class_id, 1)
                session.commit()
                return True
            except CapacityExceededException:
                session.rollback()
                return False
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=20) as pool:
            results = list(pool.map(lambda _: attempt(), range(20)))

        assert results.count(True) == 5
        db.refresh(group_class)
        assert group_class.booked == 5

    def test_concurrent_multi_spot_reservations(self, db, session_factory, make_class):
        group_class = make_class(capacity=10)
        class_id = group_class.id
        start = threading.Barrier(6)

        def attempt() -> int:
            session = session_factory()
            try:
                start.wait()
                CapacityLedger(session).reserve(class_id, 3)
                session.commit()
                return 3
            except CapacityExceededException:
                session.rollback()
                return 0
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=6) as pool:
            reserved = sum(pool.map(lambda _: attempt(), range(6)))

        # Only three groups of three fit into ten spots
        assert reserved == 9
        db.refresh(group_class)
        assert group_class.booked == 9

    def test_three_pairs_race_for_two_spots(self, db, session_factory, make_class, book):
        group_class = make_class(capacity=10)
        book(group_class, participants=8)
        class_id = group_class.id
        start = threading.Barrier(3)

        def attempt() -> str:
            session = session_factory()
            try:
                start.wait()
                CapacityLedger(session).reserve(class_id, 2)
                session.commit()
                return "reserved"
            except CapacityExceededException:
                session.rollback()
                return "capacity_exceeded"
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=3) as pool:
            outcomes = sorted(pool.map(lambda _: attempt(), range(3)))

        assert outcomes == ["capacity_exceeded", "capacity_exceeded", "reserved"]
        db.refresh(group_class)
        assert group_class.booked == 10
