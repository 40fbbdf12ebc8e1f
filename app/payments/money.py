"""
Money helpers for booking amounts.

Booking prices travel as decimal strings ("45.00") and are charged in the
smallest currency unit. All arithmetic uses Decimal with half-up rounding so
the same input always yields the same cents value.

Usage:
    from payments.money import amount_to_cents, calculate_total_amount

    total = calculate_total_amount("20", 90)   # "30.00"
    cents = amount_to_cents(total)             # 3000
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING

from payments.exceptions import InvalidAmountError, InvalidScheduleError

if TYPE_CHECKING:
    from datetime import datetime

CENTS = Decimal("0.01")
WHOLE = Decimal("1")

# Largest charge Stripe accepts, in the smallest currency unit
MAX_AMOUNT_CENTS = 99_999_999


def parse_amount(amount: str | Decimal) -> Decimal:
    """
    Parse a decimal amount, rejecting non-numeric and non-finite input.

    Raises:
        InvalidAmountError: If the value is not a finite decimal number
    """
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmountError(
            f"Invalid amount: {amount!r}",
            details={"amount": str(amount)},
        ) from exc
    if not value.is_finite():
        raise InvalidAmountError(
            f"Amount must be finite: {amount!r}",
            details={"amount": str(amount)},
        )
    return value


def amount_to_cents(amount: str | Decimal) -> int:
    """
    Convert a decimal amount string to a positive integer number of cents.

    Rounds half-up to the nearest cent, so "19.999" becomes 2000 and
    "12.5" becomes 1250.

    Args:
        amount: Decimal string in major currency units

    Returns:
        Amount in the smallest currency unit

    Raises:
        InvalidAmountError: If the amount does not parse, is not finite,
            or rounds to zero or less, or exceeds MAX_AMOUNT_CENTS
    """
    value = parse_amount(amount)
    try:
        cents = int((value * 100).quantize(WHOLE, rounding=ROUND_HALF_UP))
    except InvalidOperation as exc:
        raise InvalidAmountError(
            f"Amount is too large: {amount!r}",
            details={"amount": str(amount)},
        ) from exc
    if cents <= 0:
        raise InvalidAmountError(
            f"Amount must be positive: {amount!r}",
            details={"amount": str(amount), "amount_cents": cents},
        )
    if cents > MAX_AMOUNT_CENTS:
        raise InvalidAmountError(
            f"Amount exceeds the maximum charge: {amount!r}",
            details={"amount": str(amount), "max_amount_cents": MAX_AMOUNT_CENTS},
        )
    return cents


def calculate_total_amount(hourly_rate: str | Decimal, minutes: int) -> str:
    """
    Price a session from an hourly rate and its length in minutes.

    Returns:
        Total as a two-decimal string, e.g. ("20", 90) -> "30.00"

    Raises:
        InvalidAmountError: If the hourly rate is not a finite decimal or
            the total does not fit two decimal places
    """
    rate = parse_amount(hourly_rate)
    try:
        total = (rate * Decimal(minutes) / Decimal(60)).quantize(
            CENTS, rounding=ROUND_HALF_UP
        )
    except InvalidOperation as exc:
        raise InvalidAmountError(
            f"Hourly rate is too large: {hourly_rate!r}",
            details={"hourly_rate": str(hourly_rate)},
        ) from exc
    return f"{total:.2f}"


def session_length_minutes(start: datetime, end: datetime) -> int:
    """
    Whole minutes between start and end.

    Raises:
        InvalidScheduleError: If end is not after start
    """
    if end <= start:
        raise InvalidScheduleError(
            "Session end must be after its start",
            details={"scheduled_start": start.isoformat(), "scheduled_end": end.isoformat()},
        )
    minutes = int((end - start).total_seconds() // 60)
    if minutes <= 0:
        raise InvalidScheduleError(
            "Session must last at least one minute",
            details={"scheduled_start": start.isoformat(), "scheduled_end": end.isoformat()},
        )
    return minutes
