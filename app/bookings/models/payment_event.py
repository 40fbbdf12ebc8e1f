"""
BookingPaymentEvent model: the Stripe webhook dedup ledger.

Every webhook event that can be correlated to a booking is recorded here
exactly once. The unique stripe_event_id is what turns Stripe's
at-least-once delivery into exactly-once processing: a second insert of the
same event id fails, and that failure is the duplicate signal.

Rows are append-only and keep the full event payload, so operators can
reconstruct the sequence of payment events behind a booking.

Usage:
    from bookings.ledger import record_event_and_check_duplicate

    if record_event_and_check_duplicate(
        stripe_event_id=event["id"],
        booking_id=booking_id,
        event_type=event["type"],
        payload=event,
    ):
        return  # already processed
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


class BookingPaymentEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    One processed Stripe event for a booking.

    Fields:
        booking: Booking the event was correlated to via metadata
        stripe_event_id: Unique Stripe Event ID (evt_xxx)
        event_type: Stripe event type, recorded even for ignored types
        payload: Full event JSON as received
        applied: Whether the event changed the booking's payment state
    """

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="payment_events",
        help_text="Booking this event belongs to",
    )

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g., 'checkout.session.completed')",
    )

    payload = models.JSONField(
        help_text="Full webhook event from Stripe (JSON)",
    )

    applied = models.BooleanField(
        default=False,
        help_text="True when the event changed the booking's payment state",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Booking Payment Event"
        verbose_name_plural = "Booking Payment Events"
        indexes = [
            models.Index(fields=["booking", "created_at"]),
        ]

    def __str__(self) -> str:
        """Return string representation with event ID and type."""
        return f"BookingPaymentEvent({self.stripe_event_id}, {self.event_type})"
