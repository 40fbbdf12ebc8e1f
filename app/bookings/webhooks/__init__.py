"""
Stripe webhook handling for booking payments.

Usage:
    from bookings.webhooks import process_payment_event, stripe_webhook
"""

from bookings.webhooks.handlers import (
    ChargeObject,
    CheckoutSessionObject,
    PaymentEventData,
    PaymentIntentObject,
    extract_event_data,
    parse_event_object,
    process_payment_event,
)
from bookings.webhooks.views import stripe_webhook

__all__ = [
    "ChargeObject",
    "CheckoutSessionObject",
    "PaymentEventData",
    "PaymentIntentObject",
    "extract_event_data",
    "parse_event_object",
    "process_payment_event",
    "stripe_webhook",
]
