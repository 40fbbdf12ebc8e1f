"""
Stripe event deduplication ledger.

Stripe delivers webhooks at least once and in no particular order. Each event
that can be correlated to a booking is inserted into BookingPaymentEvent
before any state change; the unique stripe_event_id makes the second insert
of the same event fail, and that failure is the duplicate signal.

The insert runs inside a savepoint so that a duplicate does not poison the
caller's surrounding transaction, and any failure other than a duplicate id
propagates (the caller's transaction then rolls back and Stripe retries).

Usage:
    from bookings.ledger import record_event_and_check_duplicate

    with transaction.atomic():
        if record_event_and_check_duplicate(
            stripe_event_id=event["id"],
            booking_id=booking_id,
            event_type=event["type"],
            payload=event,
        ):
            return  # already processed
        ...
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from django.db import IntegrityError, transaction

from bookings.models import BookingPaymentEvent

logger = logging.getLogger(__name__)


def record_event_and_check_duplicate(
    stripe_event_id: str,
    booking_id: uuid.UUID | str,
    event_type: str,
    payload: dict[str, Any],
) -> bool:
    """
    Record a Stripe event, reporting whether it was already recorded.

    Args:
        stripe_event_id: Stripe Event ID (evt_xxx)
        booking_id: Booking the event was correlated to
        event_type: Raw Stripe event type
        payload: Full event as received

    Returns:
        True if the event id was already in the ledger, False if this call
        recorded it

    Raises:
        IntegrityError: Insert failed for a reason other than a duplicate
            event id
    """
    try:
        with transaction.atomic():
            BookingPaymentEvent.objects.create(
                booking_id=booking_id,
                stripe_event_id=stripe_event_id,
                event_type=event_type,
                payload=payload,
            )
    except IntegrityError:
        # Only a unique violation on stripe_event_id means "duplicate"
        if not BookingPaymentEvent.objects.filter(
            stripe_event_id=stripe_event_id
        ).exists():
            raise
        logger.info(
            "Duplicate Stripe event",
            extra={
                "stripe_event_id": stripe_event_id,
                "booking_id": str(booking_id),
                "event_type": event_type,
            },
        )
        return True

    logger.debug(
        "Recorded Stripe event",
        extra={
            "stripe_event_id": stripe_event_id,
            "booking_id": str(booking_id),
            "event_type": event_type,
        },
    )
    return False


def mark_event_applied(stripe_event_id: str) -> None:
    """Flag a recorded event as having changed its booking's payment state."""
    BookingPaymentEvent.objects.filter(stripe_event_id=stripe_event_id).update(
        applied=True
    )
