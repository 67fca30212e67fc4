import pytest

from classbook.core.config import settings
from classbook.services.notification_service import (
    ConsoleEmailSender,
    NotificationService,
    build_email_sender,
    format_money,
    html_to_text,
    pick_localized,
)


@pytest.fixture
def notification_service(email_sender):
    return NotificationService(sender=email_sender)


def test_confirmation_is_rendered_in_default_locale(
    notification_service, email_sender, make_class, book
):
    group_class = make_class(price="45.50")
    booking = book(group_class, participants=2, payment_type="partial")
    email_sender.sent.clear()

    assert notification_service.send_booking_confirmation(booking, group_class)

    message = email_sender.sent[0]
    assert message["to"] == "anna@example.com"
    assert message["subject"] == "Бронирование подтверждено: Итальянская паста"
    assert "€9.10" in message["html"]
    assert "€81.90" in message["html"]
    assert booking.id in message["html"]


def test_confirmation_in_requested_locale(notification_service, email_sender, make_class, book):
    group_class = make_class()
    booking = book(group_class)
    email_sender.sent.clear()

    notification_service.send_booking_confirmation(booking, group_class, locale="lv")

    assert email_sender.sent[0]["subject"] == "Rezervācija apstiprināta: Itāļu pasta"


def test_owner_receives_a_copy(monkeypatch, notification_service, email_sender, make_class, book):
    monkeypatch.setattr(settings, "owner_email", "owner@example.com")
    group_class = make_class()
    booking = book(group_class)
    email_sender.sent.clear()

    notification_service.send_booking_cancellation(booking)

    assert [m["to"] for m in email_sender.sent] == ["anna@example.com", "owner@example.com"]


def test_sender_failure_returns_false(make_class, book):
    class BrokenSender:
        def send_email(self, *args, **kwargs):
            raise ConnectionError("resend unreachable")

    group_class = make_class()
    booking = book(group_class)

    service = NotificationService(sender=BrokenSender())

    assert service.send_booking_confirmation(booking, group_class) is False
    assert service.send_booking_cancellation(booking) is False


def test_console_sender_without_api_key(monkeypatch):
    monkeypatch.setattr(settings, "resend_api_key", None)
    assert isinstance(build_email_sender(), ConsoleEmailSender)


def test_pick_localized_falls_back():
    assert pick_localized({"ru": "Паста", "lv": "Pasta"}, "lv") == "Pasta"
    assert pick_localized({"ru": "Паста", "lv": ""}, "lv") == "Паста"
    assert pick_localized({"en": "Pasta"}, "lv") == "Pasta"
    assert pick_localized({}, "lv") == ""


def test_helpers():
    assert format_money("9.1") == "€9.10"
    assert html_to_text("<p>Hello <b>there</b></p>") == "Hello there"
