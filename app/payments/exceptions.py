"""
Payment-specific exceptions for payment operations.

This module provides a hierarchy of exceptions for payment operations,
covering payment domain errors, concurrency control errors, and
Stripe-specific errors.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentValidationError - Payment validation failures
    │   ├── InvalidAmountError - Amount not a positive, finite decimal
    │   └── InvalidScheduleError - Session window is empty or reversed
    └── PaymentProcessingError - Payment processing failures
        └── StripeError - Base for all Stripe errors
            ├── StripeNotConfiguredError - Secret key / webhook secret missing
            ├── StripeCardDeclinedError - Card declined (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeRateLimitError - Rate limited (transient)
            ├── StripeAPIUnavailableError - API unavailable (transient)
            └── StripeTimeoutError - Request timeout (transient)

    StaleRecordError - Optimistic locking conflict (inherits ConflictError)
    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)

Error codes are the lowercase tokens API clients branch on.

Usage:
    from payments.exceptions import StaleRecordError, StripeError

    try:
        gateway.capture_payment_intent(intent_id, idempotency_key=key)
    except StripeError as e:
        return ServiceResult.failure(str(e), error_code="payment_capture_failed")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    All payment-specific exceptions inherit from this class,
    which itself inherits from BaseApplicationError for
    consistent API error responses.
    """

    default_error_code: str = "payment_error"


class PaymentValidationError(PaymentError):
    """
    Raised when payment validation fails.

    Use for:
    - Invalid payment amount
    - Invalid session schedule the amount is derived from
    - Business rule violations
    """

    default_error_code: str = "payment_validation_error"


class InvalidAmountError(PaymentValidationError):
    """
    Raised when a decimal amount cannot be charged.

    Covers strings that do not parse, non-finite values (NaN, Infinity) and
    amounts that round to zero or less in the smallest currency unit.

    Example:
        amount_to_cents("0.004")  # raises InvalidAmountError
    """

    default_error_code: str = "invalid_amount"


class InvalidScheduleError(PaymentValidationError):
    """
    Raised when a session end is not after its start.

    The session length drives the booking total, so an empty or reversed
    window cannot produce a chargeable amount.
    """

    default_error_code: str = "invalid_schedule"


class PaymentProcessingError(PaymentError):
    """
    Raised when payment processing fails.

    Use for:
    - Stripe API errors
    - Payment gateway failures
    - Processing timeouts
    """

    default_error_code: str = "payment_processing_error"


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Provides common attributes for Stripe error handling:
    - stripe_code: Stripe's internal error code
    - decline_code: Card decline code (if applicable)
    - is_retryable: Whether the operation could succeed if repeated

    Commands never retry on their own; is_retryable is surfaced in logs so
    operators can tell a transient outage from a permanent refusal.

    Example:
        try:
            gateway.cancel_payment_intent(intent_id, idempotency_key=key)
        except StripeError as e:
            logger.warning("Cancel failed", extra={"retryable": e.is_retryable})
    """

    default_error_code: str = "stripe_error"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


class StripeNotConfiguredError(StripeError):
    """
    Stripe credentials are missing from settings.

    Raised before any network call when STRIPE_SECRET_KEY (or, for webhook
    verification, STRIPE_WEBHOOK_SECRET) is empty.
    """

    default_error_code: str = "stripe_not_configured"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Permanent Errors
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """
    Card was declined by the issuing bank.

    The decline_code attribute contains the specific reason
    (generic_decline, insufficient_funds, expired_card, ...).
    """

    default_error_code: str = "card_declined"
    is_retryable: bool = False


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Possible causes:
    - Unknown PaymentIntent ID
    - PaymentIntent in a state that does not allow the operation
      (e.g. cancel after capture, refund before capture)
    - Invalid webhook signature or payload

    Check the stripe_code and details for specific information
    about what was invalid.
    """

    default_error_code: str = "invalid_stripe_request"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by Stripe API."""

    default_error_code: str = "stripe_rate_limited"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable.

    This covers:
    - Network connectivity issues
    - Stripe server errors (5xx)
    - Authentication failures reported by Stripe
    """

    default_error_code: str = "stripe_unavailable"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out.

    The request was sent but no response was received within
    STRIPE_API_TIMEOUT_SECONDS.

    IMPORTANT: The operation may have succeeded on Stripe's side. Booking
    operations always send an idempotency key, so repeating the same command
    at the same payment version returns Stripe's original result.
    """

    default_error_code: str = "stripe_timeout"
    is_retryable: bool = True


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class StaleRecordError(ConflictError):
    """
    Raised when optimistic locking detects concurrent modification.

    The booking's payment_version (or payment intent) changed between the
    read that planned a gateway call and the write that records its outcome.

    Attributes:
        details: Contains pk, expected_version, and current_version

    Example:
        if booking.payment_version != expected_version:
            raise StaleRecordError(
                f"Booking {booking.pk} has been modified",
                details={
                    "pk": str(booking.pk),
                    "expected_version": expected_version,
                    "current_version": booking.payment_version,
                },
            )
    """

    default_error_code: str = "booking_conflict"


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a booking status transition is not allowed.

    Wraps django-fsm's transition checks so callers get the standard error
    format. Example: accepting a booking that was already declined.
    """

    default_error_code: str = "invalid_booking_status"


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Payment domain
    "PaymentError",
    "PaymentValidationError",
    "InvalidAmountError",
    "InvalidScheduleError",
    "PaymentProcessingError",
    # Stripe-specific
    "StripeError",
    "StripeNotConfiguredError",
    "StripeCardDeclinedError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
    # Concurrency control
    "StaleRecordError",
    "InvalidStateTransitionError",
]
