"""
Protocol definition for the payment gateway used by booking services.

BookingService depends on this interface rather than on StripeAdapter
directly, so tests (and alternative gateways) can be injected through the
service constructor.

Usage:
    from payments.adapters.protocols import PaymentGateway

    class BookingService(BaseService):
        def __init__(self, gateway: PaymentGateway):
            self.gateway = gateway

Note:
    - Protocols are primarily for type checking
    - @runtime_checkable allows isinstance() checks against fakes
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing import Any

    from payments.adapters.stripe_adapter import (
        CheckoutSessionResult,
        CreateCheckoutSessionParams,
        PaymentIntentResult,
        RefundResult,
    )


@runtime_checkable
class PaymentGateway(Protocol):
    """
    Operations the booking payment lifecycle needs from a payment provider.

    Implementations raise payments.exceptions.StripeError subclasses on
    failure, and StripeNotConfiguredError when credentials are missing.
    """

    @property
    def is_configured(self) -> bool:
        """True when API calls can be made."""
        ...

    @property
    def is_webhook_configured(self) -> bool:
        """True when webhook payloads can be verified."""
        ...

    def create_checkout_session(
        self, params: CreateCheckoutSessionParams
    ) -> CheckoutSessionResult:
        """Create a manual-capture checkout session."""
        ...

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        """Fetch the live state of a PaymentIntent."""
        ...

    def capture_payment_intent(
        self, payment_intent_id: str, idempotency_key: str
    ) -> PaymentIntentResult:
        """Capture an authorized PaymentIntent."""
        ...

    def cancel_payment_intent(
        self, payment_intent_id: str, idempotency_key: str | None = None
    ) -> PaymentIntentResult:
        """Release an uncaptured authorization."""
        ...

    def create_refund(
        self, payment_intent_id: str, idempotency_key: str | None = None
    ) -> RefundResult:
        """Refund a captured PaymentIntent in full."""
        ...

    def construct_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Verify a webhook payload and return the parsed event."""
        ...
