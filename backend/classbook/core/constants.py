"""Application-wide constants for the class booking backend."""

from __future__ import annotations

BRAND_NAME = "Cooking School"

API_TITLE = f"{BRAND_NAME} Booking API"
API_DESCRIPTION = "Class schedule, bookings and Stripe payments for group cooking classes."
API_VERSION = "1.0.0"

# Payment modes
PAYMENT_TYPE_FULL = "full"
PAYMENT_TYPE_PARTIAL = "partial"
PAYMENT_TYPES = (PAYMENT_TYPE_FULL, PAYMENT_TYPE_PARTIAL)

# Share of the total collected up front for partial payments
DEFAULT_DEPOSIT_RATE = "0.10"

# Cancellation policy
DEFAULT_CANCELLATION_WINDOW_HOURS = 24

# Default audience for new classes
DEFAULT_AUDIENCE_TYPE = "mixed"

# Locales the school publishes content in
DEFAULT_LOCALES = ("ru", "lv")

# Text constraints
MAX_NAME_LENGTH = 255
MAX_PHONE_LENGTH = 50
MAX_PARTICIPANTS_PER_BOOKING = 50

# Gateway statuses
PAYMENT_INTENT_SUCCEEDED = "succeeded"
