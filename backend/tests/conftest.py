# backend/tests/conftest.py
"""
Pytest configuration for the booking backend.

Environment is configured BEFORE any classbook import so settings pick it up.
Every test gets its own SQLite file database, an in-memory payment gateway
and a controllable clock.
"""

import os
import sys
import tempfile

# CRITICAL: Set test configuration BEFORE any app imports!
_TEST_DIR = tempfile.mkdtemp(prefix="classbook-tests-")
os.environ["CI"] = "true"
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'app.db')}"
os.environ["SESSION_SECRET_KEY"] = "test-session-secret-0123456789abcdef"
os.environ["ADMIN_USERNAME"] = "admin"
for _var in ("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "RESEND_API_KEY", "OWNER_EMAIL"):
    os.environ.pop(_var, None)

# CRITICAL: Mock Resend API globally to prevent real emails in ANY test
import unittest.mock

global_resend_mock = unittest.mock.patch("resend.Emails.send")
mocked_send = global_resend_mock.start()
mocked_send.return_value = {"id": "test-email-id"}

# Add the backend directory to Python path so imports work
backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, backend_dir)

from datetime import datetime, timedelta, timezone
from decimal import Decimal
import itertools
import json
from typing import Any, Dict, List, Mapping, Optional
from unittest.mock import Mock

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from classbook.api.dependencies.database import get_db
from classbook.api.dependencies.services import get_notification_service, get_payment_gateway
from classbook.auth import create_session_token, get_password_hash
from classbook.core.config import settings
from classbook.core.exceptions import UpstreamPaymentException
from classbook.core.timezone_utils import get_school_timezone
from classbook.database import create_db_engine, create_tables
from classbook.main import app
from classbook.models.booking import Booking, BookingStatus
from classbook.models.group_class import GroupClass
from classbook.repositories.factory import RepositoryFactory
from classbook.services.booking_service import BookingService
from classbook.services.class_service import ClassService
from classbook.services.notification_service import NotificationService
from classbook.services.payment_gateway import PaymentAuthorization, RefundResult

ADMIN_PASSWORD = "correct-horse-battery"
WEBHOOK_SIGNATURE = "t=1,v1=valid"


# ============================================================================
# Fakes
# ============================================================================


class FakePaymentGateway:
    """In-memory stand-in for the Stripe gateway."""

    def __init__(self) -> None:
        self.intents: Dict[str, PaymentAuthorization] = {}
        self.refunds: List[Dict[str, Any]] = []
        self.fail_refunds = False
        self._refunds_by_key: Dict[str, RefundResult] = {}
        self._ids = itertools.count(1)

    def create_authorization(
        self,
        *,
        amount_cents: int,
        metadata: Mapping[str, str],
        receipt_email: Optional[str] = None,
        description: Optional[str] = None,
    ) -> PaymentAuthorization:
        intent_id = f"pi_test_{next(self._ids)}"
        intent = PaymentAuthorization(
            id=intent_id,
            status="requires_payment_method",
            amount=amount_cents,
            currency="eur",
            client_secret=f"{intent_id}_secret",
            metadata=dict(metadata),
        )
        self.intents[intent_id] = intent
        return intent

    def succeed(self, payment_intent_id: str, amount_cents: Optional[int] = None) -> None:
        """Simulate the customer completing the payment."""
        intent = self.intents[payment_intent_id]
        intent.status = "succeeded"
        if amount_cents is not None:
            intent.amount = amount_cents

    def add_intent(
        self,
        *,
        amount_cents: int,
        metadata: Optional[Mapping[str, str]] = None,
        status: str = "succeeded",
    ) -> str:
        intent = self.create_authorization(amount_cents=amount_cents, metadata=metadata or {})
        intent.status = status
        return intent.id

    def retrieve_authorization(self, payment_intent_id: str) -> PaymentAuthorization:
        intent = self.intents.get(payment_intent_id)
        if intent is None:
            raise UpstreamPaymentException(
                "Payment not found", code="PAYMENT_NOT_FOUND", status_code=400
            )
        return intent

    def refund(
        self,
        payment_intent_id: str,
        *,
        amount_cents: Optional[int] = None,
        idempotency_key: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        if self.fail_refunds:
            raise UpstreamPaymentException("Failed to refund payment: card_declined")
        if idempotency_key and idempotency_key in self._refunds_by_key:
            return self._refunds_by_key[idempotency_key]

        amount = amount_cents if amount_cents is not None else self.intents[payment_intent_id].amount
        result = RefundResult(id=f"re_test_{next(self._ids)}", status="succeeded", amount=amount)
        self.refunds.append(
            {
                "payment_intent_id": payment_intent_id,
                "amount_cents": amount,
                "idempotency_key": idempotency_key,
                "reason": reason,
            }
        )
        if idempotency_key:
            self._refunds_by_key[idempotency_key] = result
        return result

    def construct_webhook_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        if signature != WEBHOOK_SIGNATURE:
            raise UpstreamPaymentException(
                "Invalid webhook signature", code="INVALID_SIGNATURE", status_code=400
            )
        try:
            return json.loads(payload)
        except ValueError as e:
            raise UpstreamPaymentException(
                "Invalid webhook payload", code="INVALID_PAYLOAD", status_code=400
            ) from e


class Clock:
    """Settable replacement for utc_now."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingSender:
    def __init__(self) -> None:
        self.sent: List[Dict[str, Any]] = []

    def send_email(self, to_email, subject, html_content, text_content=None):
        self.sent.append({"to": to_email, "subject": subject, "html": html_content})
        return {"id": f"email_{len(self.sent)}"}


# ============================================================================
# Database
# ============================================================================


@pytest.fixture
def db_engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Session:
    """A fresh session on a fresh database for each test."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


# ============================================================================
# Services
# ============================================================================


@pytest.fixture
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def clock() -> Clock:
    return Clock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def notifier() -> Mock:
    return Mock(spec=NotificationService)


@pytest.fixture
def email_sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def booking_service(db, gateway, notifier, clock) -> BookingService:
    return BookingService(db, gateway, notifier, now_fn=clock)


@pytest.fixture
def class_service(db) -> ClassService:
    return ClassService(db)


# ============================================================================
# Data builders
# ============================================================================


@pytest.fixture
def make_class(db, clock):
    """Create a class starting at ``start`` (default: two weeks from now)."""

    def _make_class(
        *,
        price: Any = "45.00",
        capacity: int = 12,
        start: Optional[datetime] = None,
        title: Optional[Dict[str, str]] = None,
    ) -> GroupClass:
        start = start or clock.now + timedelta(days=14)
        local = start.astimezone(get_school_timezone())
        group_class = RepositoryFactory.create_class_repository(db).create(
            title=title or {"ru": "Итальянская паста", "lv": "Itāļu pasta"},
            description={"ru": "Паста", "lv": "Pasta"},
            instructor={"ru": "Марко", "lv": "Marko"},
            languages=["ru", "lv"],
            class_date=local.date(),
            start_time=local.time().replace(second=0, microsecond=0, tzinfo=None),
            duration="3 часа",
            price=Decimal(str(price)),
            capacity=capacity,
            booked=0,
        )
        db.commit()
        return group_class

    return _make_class


@pytest.fixture
def confirmed_participants(db):
    """Participants over a class's confirmed bookings; ``booked`` must always equal this."""

    def _confirmed_participants(class_id: str) -> int:
        total = (
            db.query(func.coalesce(func.sum(Booking.participants), 0))
            .filter(Booking.class_id == class_id, Booking.status == BookingStatus.CONFIRMED.value)
            .scalar()
        )
        return int(total)

    return _confirmed_participants


@pytest.fixture
def book(booking_service, gateway):
    """Run the quote -> pay -> confirm flow and return the booking."""

    def _book(
        group_class: GroupClass,
        participants: int = 1,
        payment_type: str = "full",
        email: str = "anna@example.com",
        name: str = "Anna Petrova",
    ) -> Booking:
        quote = booking_service.create_payment_intent(
            group_class.id, participants, payment_type, email, name, "+371 20000000"
        )
        gateway.succeed(quote.payment_intent_id)
        return booking_service.confirm_booking(quote.payment_intent_id).booking

    return _book


# ============================================================================
# HTTP
# ============================================================================


@pytest.fixture
def client(db: Session, gateway, email_sender):
    """Create a test client wired to the test database and fake gateway."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notification_service] = lambda: NotificationService(
        sender=email_sender
    )

    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture
def admin_client(client):
    client.cookies.set(settings.session_cookie_name, create_session_token(settings.admin_username))
    return client


@pytest.fixture
def admin_password(monkeypatch) -> str:
    monkeypatch.setattr(settings, "admin_password_hash", get_password_hash(ADMIN_PASSWORD))
    return ADMIN_PASSWORD


@pytest.fixture
def webhook_signature() -> str:
    return WEBHOOK_SIGNATURE
