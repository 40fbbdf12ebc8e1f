"""
Payments app configuration.

This app provides the payment building blocks used by bookings:
- Stripe adapter (checkout sessions, capture, cancel, refund, webhooks)
- Money helpers (decimal amounts to cents)
- Idempotency keys for payment operations
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
