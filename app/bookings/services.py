"""
Booking command service.

This module provides the BookingService class which handles the commands a
chat participant can issue against a booking:

1. create_booking_request: insert a pending booking and start Checkout
2. modify_booking_request: start a new negotiation and authorization cycle
3. accept_booking: capture the authorized payment, then accept
4. decline_booking: cancel or refund the payment, then decline

Every command that talks to Stripe follows the same shape:
    - Validate and plan against the booking as read
    - Call the payment gateway outside any database transaction
    - Re-read the booking under a row lock and write only if the payment
      cycle (payment_version, payment_intent_id) is unchanged

A failed gateway call never changes the booking's status. Expected failures
are returned as ServiceResult.failure with a stable error token in
error_code; database errors propagate.

Usage:
    from bookings.services import BookingService, CreateBookingParams

    service = BookingService.from_settings()
    result = service.create_booking_request(request.user, params)
    if result.success:
        redirect_to(result.data.checkout_url)
    else:
        print(result.error_code)  # e.g. "invalid_amount"
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Q
from django_fsm import can_proceed

from core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from core.services import BaseService, ServiceResult

from payments.adapters import CreateCheckoutSessionParams, StripeAdapter
from payments.exceptions import (
    InvalidStateTransitionError,
    PaymentValidationError,
    StaleRecordError,
    StripeError,
    StripeNotConfiguredError,
)
from payments.idempotency import booking_idempotency_key
from payments.money import amount_to_cents, calculate_total_amount, session_length_minutes

from bookings.models import Booking
from bookings.state_machines import (
    GatewayAction,
    plan_accept,
    plan_decline,
    plan_modify,
)

if TYPE_CHECKING:
    from payments.adapters import PaymentGateway


# Stripe PaymentIntent status in which a manual-capture authorization can be captured
CAPTURABLE_INTENT_STATUS = "requires_capture"


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreateBookingParams:
    """
    Input for proposing a new booking.

    Attributes:
        conversation_id: Chat conversation the booking belongs to
        customer_id: User paying for the session
        provider_id: User delivering the session
        title: Short title, also the Checkout line item name
        scheduled_start / scheduled_end: Session window
        hourly_rate: Decimal string; the total is derived from it
    """

    conversation_id: uuid.UUID
    customer_id: int
    provider_id: int
    title: str
    scheduled_start: datetime
    scheduled_end: datetime
    hourly_rate: str
    description: str = ""
    location: str = ""
    meeting_link: str = ""
    special_instructions: str = ""


@dataclass
class ModifyBookingParams:
    """Updated terms for an existing booking."""

    title: str
    scheduled_start: datetime
    scheduled_end: datetime
    hourly_rate: str
    description: str = ""
    location: str = ""
    meeting_link: str = ""
    special_instructions: str = ""


@dataclass
class BookingTerms:
    """Validated, derived amounts for a proposed session window and rate."""

    session_length_minutes: int
    total_amount: str
    payment_amount_cents: int


@dataclass
class CheckoutResult:
    """
    Result of a command that starts a Checkout session.

    Attributes:
        booking_id: Booking the session pays for
        checkout_url: Hosted Checkout page the customer must visit
        checkout_session_id: Stripe Checkout Session ID (cs_xxx)
    """

    booking_id: uuid.UUID
    checkout_url: str
    checkout_session_id: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


# =============================================================================
# Booking Service
# =============================================================================


class BookingService(BaseService):
    """
    Commands for chat-negotiated bookings.

    The payment gateway is injected so tests can substitute a fake that
    implements the PaymentGateway protocol.

    Usage:
        service = BookingService(StripeAdapter.from_settings())
        result = service.accept_booking(provider, booking_id)
    """

    def __init__(self, gateway: PaymentGateway):
        self.gateway = gateway

    @classmethod
    def from_settings(cls) -> BookingService:
        """Build a service backed by the Stripe adapter from settings."""
        return cls(StripeAdapter.from_settings())

    # =========================================================================
    # Queries
    # =========================================================================

    def get_booking(self, user, booking_id: uuid.UUID) -> ServiceResult[Booking]:
        """Return a booking visible to one of its parties."""
        try:
            return ServiceResult.success(self._load_for_party(user, booking_id))
        except (NotFoundError, PermissionDeniedError) as e:
            return ServiceResult.from_exception(e)

    def list_conversation_bookings(
        self,
        user,
        conversation_id: uuid.UUID,
    ) -> ServiceResult[list[Booking]]:
        """Return the caller's bookings in a conversation, newest first."""
        bookings = list(
            Booking.objects.filter(conversation_id=conversation_id)
            .filter(Q(customer=user) | Q(provider=user))
            .order_by("-created_at")
        )
        return ServiceResult.success(bookings)

    # =========================================================================
    # Create
    # =========================================================================

    def create_booking_request(
        self,
        user,
        params: CreateBookingParams,
    ) -> ServiceResult[CheckoutResult]:
        """
        Propose a booking and start its Checkout session.

        The booking row is inserted first so its id can be carried in the
        Checkout metadata. If the session cannot be created the row is
        deleted again, leaving no trace of the attempt.

        Error tokens:
            forbidden, invalid_parties, invalid_schedule, invalid_amount,
            stripe_not_configured, checkout_session_failed
        """
        logger = self.get_logger()

        if user.pk not in (params.customer_id, params.provider_id):
            return ServiceResult.failure(
                "Only a party to the booking can propose it",
                error_code="forbidden",
            )
        if params.customer_id == params.provider_id:
            return ServiceResult.from_exception(
                ValidationError(
                    "Customer and provider must be different users",
                    error_code="invalid_parties",
                )
            )

        try:
            terms = self._derive_terms(
                params.scheduled_start, params.scheduled_end, params.hourly_rate
            )
        except PaymentValidationError as e:
            return ServiceResult.from_exception(e)

        user_model = get_user_model()
        party_count = user_model.objects.filter(
            pk__in=[params.customer_id, params.provider_id]
        ).count()
        if party_count != 2:
            return ServiceResult.failure(
                "Customer or provider does not exist",
                error_code="invalid_parties",
            )

        booking = Booking.objects.create(
            conversation_id=params.conversation_id,
            customer_id=params.customer_id,
            provider_id=params.provider_id,
            title=params.title,
            description=params.description,
            scheduled_start=params.scheduled_start,
            scheduled_end=params.scheduled_end,
            session_length_minutes=terms.session_length_minutes,
            hourly_rate=params.hourly_rate,
            total_amount=terms.total_amount,
            location=params.location,
            meeting_link=params.meeting_link,
            special_instructions=params.special_instructions,
            payment_amount_cents=terms.payment_amount_cents,
        )
        log_context = {
            "booking_id": str(booking.id),
            "conversation_id": str(booking.conversation_id),
            "payment_amount_cents": booking.payment_amount_cents,
        }
        logger.info("Created pending booking", extra=log_context)

        result = self._start_checkout(booking, booking.payment_version)
        if not result.success:
            # Compensate: a booking never outlives a failed Checkout start
            booking.delete()
            logger.warning(
                "Deleted booking after Checkout session failure",
                extra={**log_context, "error_code": result.error_code},
            )
        return result

    # =========================================================================
    # Modify
    # =========================================================================

    def modify_booking_request(
        self,
        user,
        booking_id: uuid.UUID,
        params: ModifyBookingParams,
    ) -> ServiceResult[CheckoutResult]:
        """
        Change a booking's terms and start a new authorization cycle.

        The Checkout session for the next payment_version is created before
        anything is written; events from the previous cycle are fenced out
        by the version in their metadata.

        Error tokens:
            booking_not_found, forbidden, invalid_schedule, invalid_amount,
            stripe_not_configured, checkout_session_failed, booking_conflict
        """
        logger = self.get_logger()

        try:
            booking = self._load_for_party(user, booking_id)
            terms = self._derive_terms(
                params.scheduled_start, params.scheduled_end, params.hourly_rate
            )
        except (NotFoundError, PermissionDeniedError, PaymentValidationError) as e:
            return ServiceResult.from_exception(e)

        plan = plan_modify(booking.payment_version)
        changes = {
            "title": params.title,
            "description": params.description,
            "scheduled_start": params.scheduled_start,
            "scheduled_end": params.scheduled_end,
            "session_length_minutes": terms.session_length_minutes,
            "hourly_rate": params.hourly_rate,
            "total_amount": terms.total_amount,
            "location": params.location,
            "meeting_link": params.meeting_link,
            "special_instructions": params.special_instructions,
            "payment_amount_cents": terms.payment_amount_cents,
        }

        # Session carries the new terms; the row still holds the old ones
        proposed = Booking(
            id=booking.id,
            conversation_id=booking.conversation_id,
            customer_id=booking.customer_id,
            provider_id=booking.provider_id,
            payment_currency=booking.payment_currency,
            **changes,
        )
        result = self._start_checkout(proposed, plan.next_version)
        if not result.success:
            return result

        try:
            with self.atomic():
                locked = self._lock_unchanged(booking)
                locked.modify(plan.next_version, **changes)
                locked.save()
        except StaleRecordError as e:
            logger.warning(
                "Booking changed while modifying",
                extra={"booking_id": str(booking.id), **e.details},
            )
            return ServiceResult.from_exception(e)

        logger.info(
            "Modified booking",
            extra={
                "booking_id": str(booking.id),
                "payment_version": plan.next_version,
                "payment_amount_cents": terms.payment_amount_cents,
            },
        )
        return result

    # =========================================================================
    # Accept
    # =========================================================================

    def accept_booking(self, user, booking_id: uuid.UUID) -> ServiceResult[Booking]:
        """
        Capture the authorized payment and accept the booking.

        Only the provider can accept. The live PaymentIntent must be in
        requires_capture; capture must succeed before the booking is written.

        Error tokens:
            booking_not_found, forbidden, invalid_booking_status,
            payment_intent_missing, payment_not_authorized_yet,
            stripe_not_configured, payment_not_capturable,
            payment_capture_failed, booking_conflict
        """
        logger = self.get_logger()

        try:
            booking = self._load_for_party(user, booking_id)
        except (NotFoundError, PermissionDeniedError) as e:
            return ServiceResult.from_exception(e)

        if not booking.is_provider(user):
            return ServiceResult.failure(
                "Only the provider can accept a booking",
                error_code="forbidden",
            )
        if not can_proceed(booking.accept):
            return ServiceResult.from_exception(
                InvalidStateTransitionError(
                    f"Cannot accept a booking in status {booking.status}",
                    details={"status": booking.status},
                )
            )

        blocked = plan_accept(booking)
        if blocked is not None:
            return ServiceResult.failure(
                f"Payment cannot be captured (payment_status={booking.payment_status})",
                error_code=blocked,
            )

        log_context = {
            "booking_id": str(booking.id),
            "payment_intent_id": booking.payment_intent_id,
            "payment_version": booking.payment_version,
        }

        try:
            intent = self.gateway.retrieve_payment_intent(booking.payment_intent_id)
        except StripeNotConfiguredError as e:
            return ServiceResult.from_exception(e)
        except StripeError as e:
            logger.warning(
                "Failed to retrieve payment intent before capture",
                extra={**log_context, "error": str(e)},
            )
            return ServiceResult.failure(str(e), error_code="payment_intent_missing")

        if intent.status != CAPTURABLE_INTENT_STATUS:
            logger.warning(
                "Payment intent is not capturable",
                extra={**log_context, "intent_status": intent.status},
            )
            return ServiceResult.failure(
                f"Payment intent is {intent.status}",
                error_code="payment_not_capturable",
            )

        try:
            self.gateway.capture_payment_intent(
                booking.payment_intent_id,
                idempotency_key=booking_idempotency_key(
                    booking.id, "capture", booking.payment_version
                ),
            )
        except StripeNotConfiguredError as e:
            return ServiceResult.from_exception(e)
        except StripeError as e:
            logger.error(
                "Payment capture failed",
                extra={**log_context, "error": str(e)},
            )
            return ServiceResult.failure(str(e), error_code="payment_capture_failed")

        try:
            with self.atomic():
                locked = self._lock_unchanged(booking)
                if not can_proceed(locked.accept):
                    raise StaleRecordError(
                        "Booking status changed while capturing",
                        details={"status": locked.status},
                    )
                locked.accept()
                locked.save()
        except StaleRecordError as e:
            # Funds were captured; the webhook stream records the capture
            logger.error(
                "Booking changed after payment capture",
                extra={**log_context, **e.details},
            )
            return ServiceResult.from_exception(e)

        logger.info("Accepted booking", extra=log_context)
        return ServiceResult.success(locked)

    # =========================================================================
    # Decline
    # =========================================================================

    def decline_booking(self, user, booking_id: uuid.UUID) -> ServiceResult[Booking]:
        """
        Decline a booking, releasing or refunding its payment.

        - Uncaptured authorization: cancel the PaymentIntent
        - Captured payment: refund it (completion arrives as charge.refunded)
        - No payment to act on: decline without a gateway call

        Error tokens:
            booking_not_found, forbidden, invalid_booking_status,
            stripe_not_configured, payment_cancel_failed,
            payment_refund_failed, booking_conflict
        """
        logger = self.get_logger()

        try:
            booking = self._load_for_party(user, booking_id)
        except (NotFoundError, PermissionDeniedError) as e:
            return ServiceResult.from_exception(e)

        if not can_proceed(booking.decline):
            return ServiceResult.from_exception(
                InvalidStateTransitionError(
                    f"Cannot decline a booking in status {booking.status}",
                    details={"status": booking.status},
                )
            )

        plan = plan_decline(booking.payment_status, bool(booking.payment_intent_id))
        log_context = {
            "booking_id": str(booking.id),
            "payment_intent_id": booking.payment_intent_id,
            "payment_status": booking.payment_status,
            "gateway_action": plan.gateway_action.value if plan.gateway_action else None,
        }

        if plan.gateway_action is GatewayAction.CANCEL:
            try:
                self.gateway.cancel_payment_intent(
                    booking.payment_intent_id,
                    idempotency_key=booking_idempotency_key(
                        booking.id, "cancel", booking.payment_version
                    ),
                )
            except StripeNotConfiguredError as e:
                return ServiceResult.from_exception(e)
            except StripeError as e:
                logger.error(
                    "Payment cancel failed",
                    extra={**log_context, "error": str(e)},
                )
                return ServiceResult.failure(str(e), error_code="payment_cancel_failed")

        elif plan.gateway_action is GatewayAction.REFUND:
            try:
                self.gateway.create_refund(
                    booking.payment_intent_id,
                    idempotency_key=booking_idempotency_key(
                        booking.id, "refund", booking.payment_version
                    ),
                )
            except StripeNotConfiguredError as e:
                return ServiceResult.from_exception(e)
            except StripeError as e:
                logger.error(
                    "Payment refund failed",
                    extra={**log_context, "error": str(e)},
                )
                return ServiceResult.failure(str(e), error_code="payment_refund_failed")

        try:
            with self.atomic():
                locked = self._lock_unchanged(booking)
                if not can_proceed(locked.decline):
                    raise StaleRecordError(
                        "Booking status changed while declining",
                        details={"status": locked.status},
                    )
                locked.decline(
                    payment_status=plan.next_payment_status
                    if plan.gateway_action is not None
                    else None
                )
                locked.save()
        except StaleRecordError as e:
            logger.error(
                "Booking changed during decline",
                extra={**log_context, **e.details},
            )
            return ServiceResult.from_exception(e)

        logger.info(
            "Declined booking",
            extra={**log_context, "next_payment_status": locked.payment_status},
        )
        return ServiceResult.success(locked)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _load_for_party(user, booking_id: uuid.UUID) -> Booking:
        """
        Load a booking the user is a party to.

        Raises:
            NotFoundError: No such booking
            PermissionDeniedError: User is neither customer nor provider
        """
        booking = Booking.objects.filter(id=booking_id).first()
        if booking is None:
            raise NotFoundError("Booking not found", error_code="booking_not_found")
        if not booking.is_party(user):
            raise PermissionDeniedError(
                "You are not a party to this booking",
                error_code="forbidden",
            )
        return booking

    @staticmethod
    def _derive_terms(start: datetime, end: datetime, hourly_rate: str) -> BookingTerms:
        """
        Validate a session window and rate and derive the amounts.

        Raises:
            InvalidScheduleError: end is not after start
            InvalidAmountError: rate is not a number or the total is not positive
        """
        minutes = session_length_minutes(start, end)
        total_amount = calculate_total_amount(hourly_rate, minutes)
        return BookingTerms(
            session_length_minutes=minutes,
            total_amount=total_amount,
            payment_amount_cents=amount_to_cents(total_amount),
        )

    @staticmethod
    def _lock_unchanged(booking: Booking) -> Booking:
        """
        Re-read a booking under a row lock, refusing if its payment cycle moved.

        Must be called inside a transaction.

        Raises:
            StaleRecordError: payment_version or payment_intent_id changed
                since the booking was read
        """
        locked = Booking.objects.select_for_update().get(id=booking.id)
        if (
            locked.payment_version != booking.payment_version
            or locked.payment_intent_id != booking.payment_intent_id
        ):
            raise StaleRecordError(
                "Booking was modified concurrently",
                details={
                    "expected_version": booking.payment_version,
                    "actual_version": locked.payment_version,
                },
            )
        return locked

    @staticmethod
    def _checkout_urls(booking: Booking) -> tuple[str, str]:
        base_url = settings.SITE_URL.rstrip("/")
        path = f"{base_url}/chat/{booking.conversation_id}?booking={booking.id}"
        return f"{path}&checkout=success", f"{path}&checkout=cancel"

    def _start_checkout(
        self,
        booking: Booking,
        payment_version: int,
    ) -> ServiceResult[CheckoutResult]:
        """
        Create the manual-capture Checkout session for one payment cycle.

        Error tokens:
            stripe_not_configured, checkout_session_failed
        """
        success_url, cancel_url = self._checkout_urls(booking)
        metadata = {
            "booking_id": str(booking.id),
            "conversation_id": str(booking.conversation_id),
            "customer_id": str(booking.customer_id),
            "provider_id": str(booking.provider_id),
            "payment_version": str(payment_version),
        }

        try:
            session = self.gateway.create_checkout_session(
                CreateCheckoutSessionParams(
                    amount_cents=booking.payment_amount_cents,
                    currency=booking.payment_currency,
                    product_name=booking.title,
                    product_description=booking.description or None,
                    success_url=success_url,
                    cancel_url=cancel_url,
                    metadata=metadata,
                    idempotency_key=booking_idempotency_key(
                        booking.id, "create", payment_version
                    ),
                )
            )
        except StripeNotConfiguredError as e:
            return ServiceResult.from_exception(e)
        except StripeError as e:
            self.get_logger().error(
                "Checkout session creation failed",
                extra={
                    "booking_id": str(booking.id),
                    "payment_version": payment_version,
                    "error": str(e),
                },
            )
            return ServiceResult.failure(str(e), error_code="checkout_session_failed")

        if not session.url:
            return ServiceResult.failure(
                "Checkout session has no URL",
                error_code="checkout_session_failed",
            )

        return ServiceResult.success(
            CheckoutResult(
                booking_id=booking.id,
                checkout_url=session.url,
                checkout_session_id=session.id,
                metadata=metadata,
            )
        )
