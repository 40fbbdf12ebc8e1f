"""
Idempotency keys for booking payment operations.

Keys are derived, never random: the same booking, action and payment version
always produce the same key, so repeating a command (double click, client
retry after a timeout) reuses Stripe's stored result instead of creating a
second checkout session, capture, cancel or refund.

Format: "booking:{booking_id}:{action}:v{payment_version}"

Usage:
    from payments.idempotency import booking_idempotency_key

    key = booking_idempotency_key(booking.id, "capture", booking.payment_version)
    # "booking:550e8400-e29b-41d4-a716-446655440000:capture:v2"
"""

from __future__ import annotations

import uuid
from typing import Final

ACTIONS: Final = frozenset({"create", "capture", "cancel", "refund"})


def booking_idempotency_key(
    booking_id: uuid.UUID | str,
    action: str,
    payment_version: int,
) -> str:
    """
    Build the idempotency key for a booking payment operation.

    Args:
        booking_id: Booking primary key
        action: One of create, capture, cancel, refund
        payment_version: Booking payment version the operation applies to

    Returns:
        Deterministic key string

    Raises:
        ValueError: If the action is unknown or the version is not positive
    """
    if action not in ACTIONS:
        raise ValueError(f"Unknown idempotency action: {action}")
    if payment_version < 1:
        raise ValueError("payment_version must be >= 1")
    return f"booking:{booking_id}:{action}:v{payment_version}"
