from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from classbook.models.booking import BookingStatus
from classbook.repositories.factory import RepositoryFactory


@pytest.fixture
def repository(db):
    return RepositoryFactory.create_booking_repository(db)


def _booking_fields(group_class, payment_intent_id="pi_1", email="anna@example.com", participants=2):
    return dict(
        class_id=group_class.id,
        class_title=dict(group_class.title),
        customer_name="Anna",
        email=email,
        phone="",
        participants=participants,
        payment_type="full",
        total_price=Decimal("90.00"),
        paid_amount=Decimal("90.00"),
        remaining_amount=Decimal("0.00"),
        payment_intent_id=payment_intent_id,
    )


def test_payment_intent_is_unique(db, repository, make_class):
    group_class = make_class()
    repository.create(**_booking_fields(group_class))
    db.commit()

    with pytest.raises(IntegrityError):
        repository.create(**_booking_fields(group_class))
    db.rollback()


def test_amounts_must_balance(db, repository, make_class):
    group_class = make_class()
    fields = _booking_fields(group_class)
    fields["remaining_amount"] = Decimal("5.00")

    with pytest.raises(IntegrityError):
        repository.create(**fields)
    db.rollback()


def test_mark_cancelled_only_once(db, repository, make_class):
    group_class = make_class()
    booking = repository.create(**_booking_fields(group_class))
    db.commit()
    now = datetime.now(timezone.utc)

    first = repository.mark_cancelled(booking.id, cancelled_at=now, refund_id="re_1", refund_status="succeeded")
    second = repository.mark_cancelled(booking.id, cancelled_at=now, refund_id="re_2", refund_status="succeeded")
    db.commit()

    assert first is True
    assert second is False
    assert booking.status == BookingStatus.CANCELLED.value
    assert booking.refund_id == "re_1"


def test_confirmed_totals(db, repository, make_class, confirmed_participants):
    group_class = make_class()
    repository.create(**_booking_fields(group_class, "pi_1", participants=2))
    cancelled = repository.create(**_booking_fields(group_class, "pi_2", participants=3))
    repository.create(**_booking_fields(group_class, "pi_3", participants=4))
    cancelled.status = BookingStatus.CANCELLED.value
    db.commit()

    assert repository.count_confirmed_for_class(group_class.id) == 2
    assert confirmed_participants(group_class.id) == 6
    assert {b.payment_intent_id for b in repository.list_by_email("anna@example.com")} == {
        "pi_1",
        "pi_2",
        "pi_3",
    }
