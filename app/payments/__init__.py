"""
Payments app: Stripe integration building blocks.

This app handles:
- Stripe API access through an injectable adapter
- Amount parsing and conversion to cents
- Idempotency key derivation for payment operations

It owns no models; payment state lives on bookings.Booking.

Usage:
    from payments.adapters import StripeAdapter
    from payments.money import amount_to_cents

    adapter = StripeAdapter.from_settings()
    cents = amount_to_cents("45.00")
"""
