# backend/classbook/services/payment_amounts.py
"""
Amount calculation for class bookings.

Pure functions, no I/O. Every monetary value is a Decimal rounded to cents
with ROUND_HALF_UP (half away from zero). The remaining amount is always
derived as ``total - paid`` so ``paid + remaining == total`` holds exactly.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from ..core.constants import DEFAULT_DEPOSIT_RATE, PAYMENT_TYPE_FULL, PAYMENT_TYPE_PARTIAL

CENT = Decimal("0.01")
DEPOSIT_RATE = Decimal(DEFAULT_DEPOSIT_RATE)

NumberLike = Union[Decimal, int, float, str]


@dataclass(frozen=True)
class PaymentAmounts:
    total_price: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    payment_type: str

    @property
    def amount_cents(self) -> int:
        """Minor units handed to the payment gateway for the amount paid now."""
        return to_minor_units(self.paid_amount)


def to_decimal(value: NumberLike) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() avoids binary float artifacts (45.15 -> Decimal('45.15'))
    return Decimal(str(value))


def round_money(value: NumberLike) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: NumberLike) -> int:
    return int((round_money(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(cents: int) -> Decimal:
    return round_money(Decimal(cents) / 100)


def calculate_amounts(
    price: NumberLike,
    participants: int,
    payment_type: str,
    deposit_rate: Optional[NumberLike] = None,
) -> PaymentAmounts:
    """
    Compute total, paid-now and remaining amounts for a booking request.

    Args:
        price: Per-participant price (callers guarantee >= 0)
        participants: Number of participants (callers guarantee >= 1)
        payment_type: "full" or "partial"
        deposit_rate: Share collected up front for partial payments (default 10%)

    Returns:
        PaymentAmounts with all values rounded to cents

    Raises:
        ValueError: If payment_type is not recognised
    """
    total = round_money(to_decimal(price) * participants)

    if payment_type == PAYMENT_TYPE_FULL:
        paid = total
    elif payment_type == PAYMENT_TYPE_PARTIAL:
        rate = DEPOSIT_RATE if deposit_rate is None else to_decimal(deposit_rate)
        paid = round_money(total * rate)
    else:
        raise ValueError(f"Unknown payment type: {payment_type!r}")

    return PaymentAmounts(
        total_price=total,
        paid_amount=paid,
        remaining_amount=total - paid,
        payment_type=payment_type,
    )
