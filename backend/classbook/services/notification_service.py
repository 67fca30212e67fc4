# backend/classbook/services/notification_service.py
"""
Notification Service

Sends booking confirmation and cancellation emails. Templates are rendered
with Jinja2 and delivered through Resend; without a Resend API key the
console sender logs the message instead.

Notification is best-effort: every public method catches and logs failures
and returns False, a booking transition never fails because an email did.
"""

from decimal import Decimal
import logging
from pathlib import Path
import re
from typing import Any, Dict, Optional, Protocol

from jinja2 import Environment, FileSystemLoader
import resend

from ..core.config import settings
from ..core.constants import BRAND_NAME
from ..models.booking import Booking
from ..models.group_class import GroupClass

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"

FALLBACK_LOCALE = "en"

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "greeting": "Hello",
        "confirmed_subject": "Booking confirmed: {title}",
        "confirmed_intro": "Your booking is confirmed. We look forward to seeing you!",
        "cancelled_subject": "Booking cancelled: {title}",
        "cancelled_intro": "Your booking has been cancelled.",
        "class_label": "Class",
        "when_label": "When",
        "participants_label": "Participants",
        "total_label": "Total",
        "paid_label": "Paid",
        "remaining_label": "Due at the class",
        "refund_label": "Refund",
        "refund_note": "The refund goes back to your original payment method.",
        "cancellation_policy": "Free cancellation up to 24 hours before the class.",
        "reference_label": "Booking reference",
    },
    "ru": {
        "greeting": "Здравствуйте",
        "confirmed_subject": "Бронирование подтверждено: {title}",
        "confirmed_intro": "Ваше бронирование подтверждено. Ждём вас!",
        "cancelled_subject": "Бронирование отменено: {title}",
        "cancelled_intro": "Ваше бронирование отменено.",
        "class_label": "Класс",
        "when_label": "Когда",
        "participants_label": "Участники",
        "total_label": "Итого",
        "paid_label": "Оплачено",
        "remaining_label": "Доплата на месте",
        "refund_label": "Возврат",
        "refund_note": "Средства вернутся на исходный способ оплаты.",
        "cancellation_policy": "Бесплатная отмена не позднее чем за 24 часа до начала.",
        "reference_label": "Номер бронирования",
    },
    "lv": {
        "greeting": "Labdien",
        "confirmed_subject": "Rezervācija apstiprināta: {title}",
        "confirmed_intro": "Jūsu rezervācija ir apstiprināta. Gaidīsim jūs!",
        "cancelled_subject": "Rezervācija atcelta: {title}",
        "cancelled_intro": "Jūsu rezervācija ir atcelta.",
        "class_label": "Nodarbība",
        "when_label": "Kad",
        "participants_label": "Dalībnieki",
        "total_label": "Kopā",
        "paid_label": "Samaksāts",
        "remaining_label": "Jāpiemaksā uz vietas",
        "refund_label": "Atmaksa",
        "refund_note": "Nauda tiks atmaksāta uz sākotnējo maksājuma veidu.",
        "cancellation_policy": "Bezmaksas atcelšana ne vēlāk kā 24 stundas pirms nodarbības.",
        "reference_label": "Rezervācijas numurs",
    },
}


class EmailSender(Protocol):
    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Any: ...


class ResendEmailSender:
    """Deliver email through the Resend API."""

    def __init__(self, api_key: str, from_email: Optional[str] = None, from_name: Optional[str] = None):
        resend.api_key = api_key
        self.from_email = from_email or settings.from_email
        self.from_name = from_name or settings.from_name

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Any:
        email_data = {
            "from": f"{self.from_name} <{self.from_email}>",
            "to": to_email,
            "subject": subject,
            "html": html_content,
            "text": text_content or html_to_text(html_content),
        }
        return resend.Emails.send(email_data)


class ConsoleEmailSender:
    """Log emails instead of sending them (development and tests)."""

    def __init__(self) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> bool:
        self.logger.info(
            "email_logged",
            extra={"to_email": to_email, "subject": subject},
        )
        self.logger.debug(text_content or html_to_text(html_content))
        return True


def html_to_text(html_content: str) -> str:
    """Convert HTML content to plain text for better deliverability"""
    text = re.sub(r"<[^>]+>", " ", html_content)
    return re.sub(r"\s+", " ", text).strip()


def build_email_sender() -> EmailSender:
    if settings.resend_api_key:
        return ResendEmailSender(settings.resend_api_key)
    logger.info("Resend API key not configured - emails will be logged to the console")
    return ConsoleEmailSender()


def pick_localized(text: Optional[Dict[str, str]], locale: str) -> str:
    """Choose the best string from a LocalizedText mapping."""
    if not text:
        return ""
    if text.get(locale):
        return text[locale]
    for fallback in settings.default_locales:
        if text.get(fallback):
            return text[fallback]
    return next((value for value in text.values() if value), "")


def format_money(value: Any) -> str:
    amount = value if isinstance(value, Decimal) else Decimal(str(value or 0))
    return f"€{amount:.2f}"


class NotificationService:
    """Best-effort customer notifications for booking transitions."""

    def __init__(self, sender: Optional[EmailSender] = None):
        self.sender = sender if sender is not None else build_email_sender()
        self.logger = logging.getLogger(self.__class__.__name__)
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["money"] = format_money

    def _resolve_locale(self, locale: Optional[str]) -> str:
        if locale in MESSAGES:
            return locale
        for candidate in settings.default_locales:
            if candidate in MESSAGES:
                return candidate
        return FALLBACK_LOCALE

    def _render(self, template_name: str, locale: str, **context: Any) -> str:
        template = self.env.get_template(f"email/{template_name}")
        return template.render(
            brand_name=BRAND_NAME,
            locale=locale,
            t=MESSAGES[locale],
            **context,
        )

    def send_booking_confirmation(
        self,
        booking: Booking,
        group_class: Optional[GroupClass] = None,
        locale: Optional[str] = None,
    ) -> bool:
        """Email the customer that their booking is confirmed."""
        try:
            lang = self._resolve_locale(locale)
            title = pick_localized(booking.class_title, lang)
            schedule = None
            if group_class is not None and group_class.class_date is not None:
                schedule = f"{group_class.class_date.isoformat()} {group_class.start_time.strftime('%H:%M')}"

            html = self._render(
                "booking_confirmed.html",
                lang,
                booking=booking,
                class_title=title,
                schedule=schedule,
            )
            subject = MESSAGES[lang]["confirmed_subject"].format(title=title)
            self.sender.send_email(booking.email, subject, html)
            if settings.owner_email:
                self.sender.send_email(settings.owner_email, f"[{BRAND_NAME}] {subject}", html)
            self.logger.info(
                "booking_confirmation_sent",
                extra={"booking_id": booking.id, "email": booking.email},
            )
            return True
        except Exception as e:
            self.logger.error(
                f"Failed to send booking confirmation for {booking.id}: {str(e)}",
                exc_info=True,
            )
            return False

    def send_booking_cancellation(self, booking: Booking, locale: Optional[str] = None) -> bool:
        """Email the customer that their booking was cancelled and refunded."""
        try:
            lang = self._resolve_locale(locale)
            title = pick_localized(booking.class_title, lang)
            html = self._render("booking_cancelled.html", lang, booking=booking, class_title=title)
            subject = MESSAGES[lang]["cancelled_subject"].format(title=title)
            self.sender.send_email(booking.email, subject, html)
            if settings.owner_email:
                self.sender.send_email(settings.owner_email, f"[{BRAND_NAME}] {subject}", html)
            self.logger.info(
                "booking_cancellation_sent",
                extra={"booking_id": booking.id, "email": booking.email},
            )
            return True
        except Exception as e:
            self.logger.error(
                f"Failed to send cancellation notice for {booking.id}: {str(e)}",
                exc_info=True,
            )
            return False
