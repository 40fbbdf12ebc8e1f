"""
Stripe webhook event processing for bookings.

Every event object this system cares about (Checkout Session, PaymentIntent,
Charge) carries the booking metadata that was attached when the Checkout
session was created. Processing an event:

1. Parse event.data.object into one of the typed objects below, selected by
   its "object" discriminant
2. Normalize it to PaymentEventData (booking id, intent id, currency, ...)
3. In one transaction: lock the booking row, record the event in the dedup
   ledger, map its type to a trigger, apply the fence, apply the transition

Business-level dead ends (no metadata, unknown booking, duplicate, ignored
type, stale event) are successful outcomes with an informational message,
so Stripe stops retrying them. Database errors propagate so Stripe retries.

Fencing:
    An event is stale when its metadata payment_version differs from the
    booking's current payment_version, or when its Stripe "created" time is
    older than the last webhook event applied in the current cycle
    (Booking.last_stripe_event_created_at), or when it belongs to a payment
    phase the booking has already left (an authorization event after
    capture or cancel, a capture event after a refund). Stale events are
    still recorded in the ledger.

Usage:
    from bookings.webhooks.handlers import process_payment_event

    result = process_payment_event(event)
    body = {"success": True}
    if result.data:
        body["info"] = result.data
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from typing import Any, Union

from django.db import transaction
from django.utils import timezone

from core.services import ServiceResult

from bookings.ledger import mark_event_applied, record_event_and_check_duplicate
from bookings.models import Booking
from bookings.state_machines import (
    PaymentTrigger,
    apply_trigger,
    regresses_payment,
    trigger_for_event,
)

logger = logging.getLogger(__name__)


# Informational outcomes returned to Stripe with a 200
NO_OBJECT = "No object on event"
NO_BOOKING_METADATA = "No booking_id metadata"
BOOKING_NOT_FOUND = "Booking not found"
DUPLICATE_EVENT = "Duplicate event"
EVENT_IGNORED = "Event ignored"
STALE_VERSION = "Stale event for previous payment version"
STALE_EVENT = "Stale event"
STALE_PHASE = "Stale event for an earlier payment phase"


# =============================================================================
# Event Objects
# =============================================================================


def _id_of(value: Any) -> str | None:
    """Return the id of a Stripe reference that may be a string or an expanded object."""
    if not value:
        return None
    if isinstance(value, str):
        return value
    return value.get("id")


@dataclass(frozen=True)
class CheckoutSessionObject:
    """Checkout Session (object == "checkout.session")."""

    metadata: dict[str, str] = field(default_factory=dict)
    payment_intent: str | dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckoutSessionObject:
        return cls(
            metadata=data.get("metadata") or {},
            payment_intent=data.get("payment_intent"),
        )


@dataclass(frozen=True)
class PaymentIntentObject:
    """PaymentIntent (object == "payment_intent")."""

    id: str
    metadata: dict[str, str] = field(default_factory=dict)
    currency: str | None = None
    last_payment_error: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PaymentIntentObject:
        return cls(
            id=data["id"],
            metadata=data.get("metadata") or {},
            currency=data.get("currency"),
            last_payment_error=data.get("last_payment_error"),
        )


@dataclass(frozen=True)
class ChargeObject:
    """Charge (object == "charge")."""

    metadata: dict[str, str] = field(default_factory=dict)
    payment_intent: str | dict[str, Any] | None = None
    currency: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChargeObject:
        return cls(
            metadata=data.get("metadata") or {},
            payment_intent=data.get("payment_intent"),
            currency=data.get("currency"),
        )


EventObject = Union[CheckoutSessionObject, PaymentIntentObject, ChargeObject]

OBJECT_TYPES: dict[str, type] = {
    "checkout.session": CheckoutSessionObject,
    "payment_intent": PaymentIntentObject,
    "charge": ChargeObject,
}


def parse_event_object(data: dict[str, Any] | None) -> EventObject | None:
    """
    Parse event.data.object by its "object" discriminant.

    Returns None for a missing object or an object type that carries no
    booking payment information.
    """
    if not data:
        return None
    object_type = OBJECT_TYPES.get(data.get("object", ""))
    if object_type is None:
        return None
    return object_type.from_dict(data)


# =============================================================================
# Normalized Event Data
# =============================================================================


@dataclass(frozen=True)
class PaymentEventData:
    """
    What a webhook event says about a booking's payment.

    Attributes:
        booking_id: Booking id from metadata, None if absent
        payment_intent_id: PaymentIntent the event refers to, if known
        currency: Currency reported by Stripe, if known
        last_error: Failure message reported by Stripe, if any
        payment_version: Authorization cycle the event belongs to, if tagged
    """

    booking_id: str | None = None
    payment_intent_id: str | None = None
    currency: str | None = None
    last_error: str | None = None
    payment_version: int | None = None


def _metadata_version(metadata: dict[str, str]) -> int | None:
    raw = metadata.get("payment_version")
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def extract_event_data(event_object: EventObject) -> PaymentEventData:
    """Normalize a typed event object to PaymentEventData."""
    metadata = event_object.metadata
    booking_id = metadata.get("booking_id") or None
    version = _metadata_version(metadata)

    if isinstance(event_object, CheckoutSessionObject):
        intent = event_object.payment_intent
        # Currency is only known when the intent was expanded
        currency = intent.get("currency") if isinstance(intent, dict) else None
        return PaymentEventData(
            booking_id=booking_id,
            payment_intent_id=_id_of(intent),
            currency=currency,
            payment_version=version,
        )

    if isinstance(event_object, PaymentIntentObject):
        error = event_object.last_payment_error or {}
        return PaymentEventData(
            booking_id=booking_id,
            payment_intent_id=event_object.id,
            currency=event_object.currency,
            last_error=error.get("message"),
            payment_version=version,
        )

    return PaymentEventData(
        booking_id=booking_id,
        payment_intent_id=_id_of(event_object.payment_intent),
        currency=event_object.currency,
        payment_version=version,
    )


# =============================================================================
# Processing
# =============================================================================


def _event_created_at(event: dict[str, Any]) -> datetime | None:
    created = event.get("created")
    if created is None:
        return None
    return datetime.fromtimestamp(int(created), tz=dt_timezone.utc)


def _parse_booking_id(raw: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


def _stale_reason(
    booking: Booking,
    trigger: PaymentTrigger,
    data: PaymentEventData,
    created_at: datetime | None,
) -> str | None:
    if data.payment_version is not None and data.payment_version != booking.payment_version:
        return STALE_VERSION
    if (
        created_at is not None
        and booking.last_stripe_event_created_at is not None
        and created_at < booking.last_stripe_event_created_at
    ):
        return STALE_EVENT
    if regresses_payment(booking.payment_status, trigger):
        return STALE_PHASE
    return None


def process_payment_event(event: dict[str, Any]) -> ServiceResult[str | None]:
    """
    Apply a verified Stripe event to its booking.

    Args:
        event: Verified webhook event (plain dict)

    Returns:
        ServiceResult.success with None when the booking was updated, or with
        an informational message when the event was acknowledged without a
        change

    Raises:
        DatabaseError: Persistence failed; nothing was recorded
    """
    stripe_event_id = event.get("id")
    event_type = event.get("type", "")
    log_context = {"stripe_event_id": stripe_event_id, "event_type": event_type}

    event_object = parse_event_object((event.get("data") or {}).get("object"))
    if event_object is None:
        logger.info("Webhook event has no booking payment object", extra=log_context)
        return ServiceResult.success(NO_OBJECT)

    data = extract_event_data(event_object)
    if not data.booking_id:
        logger.info("Webhook event has no booking_id metadata", extra=log_context)
        return ServiceResult.success(NO_BOOKING_METADATA)

    log_context["booking_id"] = data.booking_id
    booking_id = _parse_booking_id(data.booking_id)
    if booking_id is None:
        logger.warning("Webhook event for unknown booking", extra=log_context)
        return ServiceResult.success(BOOKING_NOT_FOUND)

    created_at = _event_created_at(event)

    with transaction.atomic():
        booking = Booking.objects.select_for_update().filter(id=booking_id).first()
        if booking is None:
            logger.warning("Webhook event for unknown booking", extra=log_context)
            return ServiceResult.success(BOOKING_NOT_FOUND)

        if record_event_and_check_duplicate(
            stripe_event_id=stripe_event_id,
            booking_id=booking_id,
            event_type=event_type,
            payload=event,
        ):
            return ServiceResult.success(DUPLICATE_EVENT)

        trigger = trigger_for_event(event_type)
        if trigger is None:
            logger.info("Webhook event type not handled", extra=log_context)
            return ServiceResult.success(EVENT_IGNORED)

        stale = _stale_reason(booking, trigger, data, created_at)
        if stale is not None:
            logger.info(
                "Ignoring stale webhook event",
                extra={
                    **log_context,
                    "reason": stale,
                    "event_payment_version": data.payment_version,
                    "payment_version": booking.payment_version,
                },
            )
            return ServiceResult.success(stale)

        transition = apply_trigger(booking.payment_status, trigger, data.last_error)
        previous_status = booking.payment_status

        booking.payment_status = transition.payment_status
        booking.last_payment_error = transition.last_payment_error
        booking.last_payment_event_at = timezone.now()
        update_fields = [
            "payment_status",
            "last_payment_error",
            "last_payment_event_at",
            "updated_at",
        ]
        if created_at is not None:
            booking.last_stripe_event_created_at = created_at
            update_fields.append("last_stripe_event_created_at")
        if data.payment_intent_id:
            booking.payment_intent_id = data.payment_intent_id
            update_fields.append("payment_intent_id")
        if data.currency:
            booking.payment_currency = data.currency
            update_fields.append("payment_currency")
        booking.save(update_fields=update_fields)

        mark_event_applied(stripe_event_id)

    logger.info(
        "Applied webhook event to booking",
        extra={
            **log_context,
            "trigger": trigger.value,
            "from_payment_status": previous_status,
            "to_payment_status": booking.payment_status,
            "payment_intent_id": booking.payment_intent_id,
        },
    )
    return ServiceResult.success(None)
