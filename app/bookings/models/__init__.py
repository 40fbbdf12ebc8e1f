"""
Booking domain models.

- Booking: A chat-negotiated paid session and its payment state
- BookingPaymentEvent: Dedup ledger of processed Stripe webhook events
"""

from bookings.models.booking import Booking
from bookings.models.payment_event import BookingPaymentEvent

__all__ = [
    "Booking",
    "BookingPaymentEvent",
]
