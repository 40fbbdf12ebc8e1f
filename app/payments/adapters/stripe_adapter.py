"""
Stripe API adapter for booking payment operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls go through an adapter instance
to ensure consistent error handling, timeouts, idempotency, and
observability.

Features:
- Explicitly constructed instances: the secret key and webhook secret are
  passed in, and every request carries the instance's key
- Configurable timeout on all API calls, no automatic network retries
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Idempotency keys forwarded on every mutating call

Configuration (via settings, read by StripeAdapter.from_settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)

Usage:
    from payments.adapters import CreateCheckoutSessionParams, StripeAdapter

    adapter = StripeAdapter.from_settings()
    session = adapter.create_checkout_session(
        CreateCheckoutSessionParams(
            amount_cents=4500,
            currency="aud",
            product_name="Guitar lesson",
            success_url="https://example.com/chat/1?checkout=success",
            cancel_url="https://example.com/chat/1?checkout=cancel",
            metadata={"booking_id": str(booking.id)},
            idempotency_key="booking:...:create:v1",
        )
    )

    adapter.capture_payment_intent("pi_xxx", idempotency_key="booking:...:capture:v1")
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInvalidRequestError,
    StripeNotConfiguredError,
    StripeRateLimitError,
    StripeTimeoutError,
)

# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreateCheckoutSessionParams:
    """
    Parameters for creating a Stripe Checkout session with manual capture.

    Attributes:
        amount_cents: Amount in smallest currency unit (e.g., cents)
        currency: ISO 4217 currency code
        product_name: Line item name shown on the Checkout page
        success_url: Redirect after the customer authorizes payment
        cancel_url: Redirect when the customer abandons Checkout
        metadata: Key-value pairs copied to the session and its PaymentIntent
        idempotency_key: Optional key for idempotent creation
        product_description: Optional line item description
    """

    amount_cents: int
    currency: str
    product_name: str
    success_url: str
    cancel_url: str
    metadata: dict[str, str] = field(default_factory=dict)
    idempotency_key: str | None = None
    product_description: str | None = None

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.currency:
            raise ValueError("currency is required")
        if not self.product_name:
            raise ValueError("product_name is required")


@dataclass
class CheckoutSessionResult:
    """
    Result from Stripe Checkout session creation.

    Attributes:
        id: Checkout Session ID (cs_xxx)
        url: Hosted Checkout URL the customer is redirected to
        payment_intent_id: PaymentIntent ID if Stripe created one up front
    """

    id: str
    url: str | None
    payment_intent_id: str | None = None


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent operations.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Current status (requires_capture, succeeded, canceled, etc.)
        amount_cents: Amount in cents
        currency: Currency code
        captured: Whether any amount has been received
        metadata: Attached metadata
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    captured: bool = False
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class RefundResult:
    """
    Result from Stripe Refund operations.

    Attributes:
        id: Refund ID (re_xxx)
        amount_cents: Refunded amount in cents
        currency: Currency code
        status: Refund status (succeeded, pending, failed)
        payment_intent_id: Original PaymentIntent ID
    """

    id: str
    amount_cents: int
    currency: str
    status: str
    payment_intent_id: str


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    Each instance carries its own credentials; nothing is stored on the
    stripe module except the shared HTTP transport, which is built once per
    process and rebuilt only when the configured timeout changes.
    Services receive an adapter through their constructor, so tests can pass
    a fake implementing the same PaymentGateway protocol.

    Usage:
        adapter = StripeAdapter.from_settings()
        intent = adapter.retrieve_payment_intent("pi_xxx")
        if intent.status == "requires_capture":
            adapter.capture_payment_intent("pi_xxx", idempotency_key=key)
    """

    # Timeout of the transport installed on the stripe module, if any
    _http_client_timeout: int | None = None

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str = "",
        timeout_seconds: int = 10,
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.timeout_seconds = timeout_seconds
        self._configure_http_client()

    @classmethod
    def from_settings(cls) -> StripeAdapter:
        """Build an adapter from Django settings."""
        return cls(
            secret_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            timeout_seconds=getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10),
        )

    # =========================================================================
    # Configuration
    # =========================================================================

    def _configure_http_client(self) -> None:
        """Configure the shared Stripe transport with our timeout and no retries."""
        if StripeAdapter._http_client_timeout == self.timeout_seconds:
            return
        stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout_seconds)
        stripe.max_network_retries = 0
        StripeAdapter._http_client_timeout = self.timeout_seconds

    @property
    def is_configured(self) -> bool:
        """True when API calls can be made."""
        return bool(self.secret_key)

    @property
    def is_webhook_configured(self) -> bool:
        """True when webhook payloads can be verified."""
        return bool(self.secret_key and self.webhook_secret)

    def _require_secret_key(self, operation: str) -> None:
        if not self.secret_key:
            self.get_logger().error(
                "Stripe secret key is not configured",
                extra={"operation": operation},
            )
            raise StripeNotConfiguredError("Stripe is not configured")

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Core Operations
    # =========================================================================

    def create_checkout_session(
        self,
        params: CreateCheckoutSessionParams,
    ) -> CheckoutSessionResult:
        """
        Create a Checkout session whose PaymentIntent uses manual capture.

        The booking metadata is attached to both the session and the
        PaymentIntent, so every webhook object type can be traced back to
        its booking.

        Args:
            params: Parameters for creating the session

        Returns:
            CheckoutSessionResult with the hosted Checkout URL

        Raises:
            StripeNotConfiguredError: Secret key missing
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
        """
        self._require_secret_key("create_checkout_session")
        logger = self.get_logger()
        log_context = {
            "operation": "create_checkout_session",
            "amount_cents": params.amount_cents,
            "currency": params.currency,
            "idempotency_key": params.idempotency_key,
            "booking_id": params.metadata.get("booking_id"),
        }
        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        product_data: dict[str, Any] = {"name": params.product_name}
        if params.product_description:
            product_data["description"] = params.product_description

        request: dict[str, Any] = {
            "mode": "payment",
            "payment_intent_data": {
                "capture_method": "manual",
                "metadata": params.metadata,
            },
            "metadata": params.metadata,
            "line_items": [
                {
                    "quantity": 1,
                    "price_data": {
                        "currency": params.currency,
                        "unit_amount": params.amount_cents,
                        "product_data": product_data,
                    },
                }
            ],
            "success_url": params.success_url,
            "cancel_url": params.cancel_url,
            "expand": ["payment_intent"],
            "api_key": self.secret_key,
        }
        if params.idempotency_key:
            request["idempotency_key"] = params.idempotency_key

        try:
            session = stripe.checkout.Session.create(**request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self._handle_stripe_error(e, log_context, duration_ms)
            raise

        payment_intent = session.payment_intent
        if payment_intent is not None and not isinstance(payment_intent, str):
            payment_intent = payment_intent.id

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "checkout_session_id": session.id,
                "payment_intent_id": payment_intent,
                "duration_ms": duration_ms,
            },
        )

        return CheckoutSessionResult(
            id=session.id,
            url=session.url,
            payment_intent_id=payment_intent,
        )

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        """
        Retrieve a PaymentIntent by ID.

        Raises:
            StripeNotConfiguredError: Secret key missing
            StripeInvalidRequestError: PaymentIntent not found
        """
        self._require_secret_key("retrieve_payment_intent")
        logger = self.get_logger()
        log_context = {
            "operation": "retrieve_payment_intent",
            "payment_intent_id": payment_intent_id,
        }
        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.retrieve(
                payment_intent_id,
                api_key=self.secret_key,
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.debug(
            "Stripe operation completed",
            extra={**log_context, "status": intent.status, "duration_ms": duration_ms},
        )
        return self._intent_result(intent)

    def capture_payment_intent(
        self,
        payment_intent_id: str,
        idempotency_key: str,
    ) -> PaymentIntentResult:
        """
        Capture the full authorized amount of a PaymentIntent.

        Raises:
            StripeNotConfiguredError: Secret key missing
            StripeInvalidRequestError: PaymentIntent not capturable
            StripeAPIUnavailableError: Stripe service unavailable
        """
        self._require_secret_key("capture_payment_intent")
        logger = self.get_logger()
        log_context = {
            "operation": "capture_payment_intent",
            "payment_intent_id": payment_intent_id,
            "idempotency_key": idempotency_key,
        }
        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.capture(
                payment_intent_id,
                idempotency_key=idempotency_key,
                api_key=self.secret_key,
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "status": intent.status,
                "amount_captured": intent.amount_received,
                "duration_ms": duration_ms,
            },
        )
        return self._intent_result(intent)

    def cancel_payment_intent(
        self,
        payment_intent_id: str,
        idempotency_key: str | None = None,
    ) -> PaymentIntentResult:
        """
        Cancel an uncaptured PaymentIntent, releasing the authorization.

        Raises:
            StripeNotConfiguredError: Secret key missing
            StripeInvalidRequestError: PaymentIntent already captured or canceled
        """
        self._require_secret_key("cancel_payment_intent")
        logger = self.get_logger()
        log_context = {
            "operation": "cancel_payment_intent",
            "payment_intent_id": payment_intent_id,
            "idempotency_key": idempotency_key,
        }
        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        request: dict[str, Any] = {"api_key": self.secret_key}
        if idempotency_key:
            request["idempotency_key"] = idempotency_key

        try:
            intent = stripe.PaymentIntent.cancel(payment_intent_id, **request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={**log_context, "status": intent.status, "duration_ms": duration_ms},
        )
        return self._intent_result(intent)

    def create_refund(
        self,
        payment_intent_id: str,
        idempotency_key: str | None = None,
    ) -> RefundResult:
        """
        Refund the full captured amount of a PaymentIntent.

        Raises:
            StripeNotConfiguredError: Secret key missing
            StripeInvalidRequestError: Refund not possible
        """
        self._require_secret_key("create_refund")
        logger = self.get_logger()
        log_context = {
            "operation": "create_refund",
            "payment_intent_id": payment_intent_id,
            "idempotency_key": idempotency_key,
        }
        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        request: dict[str, Any] = {
            "payment_intent": payment_intent_id,
            "api_key": self.secret_key,
        }
        if idempotency_key:
            request["idempotency_key"] = idempotency_key

        try:
            refund = stripe.Refund.create(**request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "refund_id": refund.id,
                "status": refund.status,
                "duration_ms": duration_ms,
            },
        )
        return RefundResult(
            id=refund.id,
            amount_cents=refund.amount,
            currency=refund.currency,
            status=refund.status,
            payment_intent_id=payment_intent_id,
        )

    @staticmethod
    def _intent_result(intent: Any) -> PaymentIntentResult:
        return PaymentIntentResult(
            id=intent.id,
            status=intent.status,
            amount_cents=intent.amount,
            currency=intent.currency,
            captured=(intent.amount_received or 0) > 0,
            metadata=dict(intent.metadata or {}),
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def construct_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Verify a webhook signature and parse the event.

        Args:
            payload: Raw request body bytes, exactly as received
            signature: Stripe-Signature header value

        Returns:
            The event as a plain dict

        Raises:
            StripeNotConfiguredError: Webhook secret missing
            StripeInvalidRequestError: Invalid signature or payload
        """
        if not self.webhook_secret:
            raise StripeNotConfiguredError("Stripe webhook secret is not configured")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
                details={"error": str(e)},
            ) from e

        # The signature covers the raw body, so the verified bytes are the event
        return json.loads(payload)

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Args:
            error: The Stripe exception
            log_context: Logging context dict
            duration_ms: Operation duration for logging

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid request parameters
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: API unavailable or authentication failed
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        elif isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise StripeInvalidRequestError(
                str(error.user_message or error),
                stripe_code=error.code,
            ) from error

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded.",
                stripe_code="rate_limit",
            ) from error

        elif isinstance(error, stripe.APIConnectionError):
            if "timed out" in str(error).lower():
                logger.error("Stripe request timed out", extra=log_context)
                raise StripeTimeoutError(
                    "Stripe request timed out.",
                    stripe_code="timeout",
                ) from error
            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe.",
                stripe_code="api_connection_error",
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeAPIUnavailableError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        elif isinstance(error, stripe.StripeError):
            logger.error(
                "Stripe API error",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Stripe service error.",
                stripe_code="api_error",
            ) from error

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                f"Unexpected Stripe error: {error}",
                stripe_code="unknown_error",
            ) from error
