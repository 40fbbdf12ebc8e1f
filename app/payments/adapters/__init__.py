"""
Payment adapters for external services.

All external payment API calls go through these adapters to ensure
consistent error handling, timeouts, idempotency, and observability.

Usage:
    from payments.adapters import StripeAdapter

    adapter = StripeAdapter.from_settings()
    result = adapter.capture_payment_intent("pi_xxx", idempotency_key=key)
"""

from payments.adapters.protocols import PaymentGateway
from payments.adapters.stripe_adapter import (
    CheckoutSessionResult,
    CreateCheckoutSessionParams,
    PaymentIntentResult,
    RefundResult,
    StripeAdapter,
)

__all__ = [
    "CheckoutSessionResult",
    "CreateCheckoutSessionParams",
    "PaymentGateway",
    "PaymentIntentResult",
    "RefundResult",
    "StripeAdapter",
]
