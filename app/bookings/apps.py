"""
Bookings app configuration.

This app owns the booking negotiation lifecycle and its payment state:
- Booking and payment-event ledger models
- Payment state machine
- Stripe webhook ingress
- Create / modify / accept / decline commands and their API
"""

from django.apps import AppConfig


class BookingsConfig(AppConfig):
    """Configuration for the bookings application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "bookings"
    verbose_name = "Bookings"
