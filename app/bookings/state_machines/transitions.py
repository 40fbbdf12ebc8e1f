"""
Pure payment-status transitions for bookings.

Everything in this module is side-effect free: functions take the current
payment state and a trigger, and return what the next state should be.
Webhook handlers and booking commands decide *when* to apply a transition
and persist the result; this module only decides *what* it is.

Trigger Table:
    Trigger                         Next payment status      last_payment_error
    CHECKOUT_COMPLETED              authorization_pending    cleared
    CHECKOUT_FAILED                 requires_payment         "checkout_session_failed"
    AMOUNT_CAPTURABLE               capturable               cleared
    PAYMENT_CANCELED                canceled                 external message or cleared
    PAYMENT_FAILED                  requires_payment         external message
    PAYMENT_CAPTURED                captured                 cleared
    PAYMENT_REFUNDED                refunded                 cleared
    ACCEPT_CAPTURED                 captured                 cleared

regresses_payment() flags webhook triggers that arrive after the payment has
moved past the phase they describe (e.g. "amount capturable" after capture).

Command plans (accept, decline, modify) are computed by plan_* helpers
before any gateway call is made.

Usage:
    from bookings.state_machines.transitions import apply_trigger, trigger_for_event

    trigger = trigger_for_event("checkout.session.completed")
    if trigger is not None:
        result = apply_trigger(booking.payment_status, trigger)
        booking.payment_status = result.payment_status
        booking.last_payment_error = result.last_payment_error
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from bookings.state_machines.states import PaymentStatus

if TYPE_CHECKING:
    from bookings.models import Booking

CHECKOUT_SESSION_FAILED = "checkout_session_failed"
PAYMENT_FAILED = "payment_failed"


class PaymentTrigger(str, Enum):
    """Inputs that can move a booking's payment status."""

    CHECKOUT_COMPLETED = "checkout_completed"
    CHECKOUT_FAILED = "checkout_failed"
    AMOUNT_CAPTURABLE = "amount_capturable"
    PAYMENT_CANCELED = "payment_canceled"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_CAPTURED = "payment_captured"
    PAYMENT_REFUNDED = "payment_refunded"
    ACCEPT_CAPTURED = "accept_captured"


class GatewayAction(str, Enum):
    """Side effect a decline needs at the payment gateway."""

    CANCEL = "cancel"
    REFUND = "refund"


# Stripe event types this system models. Anything else is acknowledged and ignored.
EVENT_TRIGGERS: dict[str, PaymentTrigger] = {
    "checkout.session.completed": PaymentTrigger.CHECKOUT_COMPLETED,
    "checkout.session.expired": PaymentTrigger.CHECKOUT_FAILED,
    "checkout.session.async_payment_failed": PaymentTrigger.CHECKOUT_FAILED,
    "payment_intent.amount_capturable_updated": PaymentTrigger.AMOUNT_CAPTURABLE,
    "payment_intent.canceled": PaymentTrigger.PAYMENT_CANCELED,
    "payment_intent.payment_failed": PaymentTrigger.PAYMENT_FAILED,
    "charge.captured": PaymentTrigger.PAYMENT_CAPTURED,
    "payment_intent.succeeded": PaymentTrigger.PAYMENT_CAPTURED,
    "charge.refunded": PaymentTrigger.PAYMENT_REFUNDED,
}

# Statuses in which the provider may accept (capture) the authorization.
ACCEPTABLE_PAYMENT_STATUSES = frozenset(
    {PaymentStatus.AUTHORIZATION_PENDING, PaymentStatus.CAPTURABLE}
)

# Triggers from the authorization phase of a payment cycle.
AUTHORIZATION_TRIGGERS = frozenset(
    {
        PaymentTrigger.CHECKOUT_COMPLETED,
        PaymentTrigger.CHECKOUT_FAILED,
        PaymentTrigger.AMOUNT_CAPTURABLE,
        PaymentTrigger.PAYMENT_FAILED,
    }
)

# Statuses an authorization-phase event can no longer lead out of.
POST_AUTHORIZATION_PAYMENT_STATUSES = frozenset(
    {
        PaymentStatus.CAPTURED,
        PaymentStatus.REFUNDING,
        PaymentStatus.REFUNDED,
        PaymentStatus.CANCELED,
    }
)

# Statuses a capture event can no longer lead out of.
REFUND_PAYMENT_STATUSES = frozenset({PaymentStatus.REFUNDING, PaymentStatus.REFUNDED})

# Statuses in which an uncaptured authorization exists and can be released.
CANCELABLE_PAYMENT_STATUSES = frozenset(
    {
        PaymentStatus.AUTHORIZATION_PENDING,
        PaymentStatus.AUTHORIZED,
        PaymentStatus.CAPTURABLE,
    }
)


@dataclass(frozen=True)
class PaymentTransition:
    """Next payment status and diagnostic after a trigger."""

    payment_status: PaymentStatus
    last_payment_error: str | None


@dataclass(frozen=True)
class DeclinePlan:
    """
    What a decline must do at the gateway and where it leaves the payment.

    gateway_action is None when there is nothing to release or refund; the
    payment status and error are then left as they are.
    """

    gateway_action: GatewayAction | None
    next_payment_status: PaymentStatus


@dataclass(frozen=True)
class ModifyPlan:
    """A new authorization cycle."""

    next_version: int
    next_payment_status: PaymentStatus = PaymentStatus.REQUIRES_PAYMENT


def trigger_for_event(event_type: str) -> PaymentTrigger | None:
    """Map a Stripe event type to a trigger, or None if it is not modeled."""
    return EVENT_TRIGGERS.get(event_type)


def regresses_payment(current: PaymentStatus | str, trigger: PaymentTrigger) -> bool:
    """
    Whether a trigger would move a payment back to an earlier phase.

    Within one payment cycle Stripe never authorizes an intent that was
    already captured or canceled, and never captures one that is being
    refunded, so such events are late deliveries.
    """
    status = PaymentStatus(current)
    if trigger in AUTHORIZATION_TRIGGERS:
        return status in POST_AUTHORIZATION_PAYMENT_STATUSES
    if trigger is PaymentTrigger.PAYMENT_CAPTURED:
        return status in REFUND_PAYMENT_STATUSES
    return False


def apply_trigger(
    current: PaymentStatus | str,
    trigger: PaymentTrigger,
    external_message: str | None = None,
) -> PaymentTransition:
    """
    Compute the next payment status for a trigger.

    Every trigger applies from any current status: Stripe is the source of
    truth for each event, and a later event overwrites an earlier one.

    Args:
        current: Current payment status (kept for the call contract and logs)
        trigger: What happened
        external_message: Failure message reported by Stripe, if any

    Returns:
        PaymentTransition with the next status and last_payment_error
    """
    if trigger is PaymentTrigger.CHECKOUT_COMPLETED:
        return PaymentTransition(PaymentStatus.AUTHORIZATION_PENDING, None)
    if trigger is PaymentTrigger.CHECKOUT_FAILED:
        return PaymentTransition(PaymentStatus.REQUIRES_PAYMENT, CHECKOUT_SESSION_FAILED)
    if trigger is PaymentTrigger.AMOUNT_CAPTURABLE:
        return PaymentTransition(PaymentStatus.CAPTURABLE, None)
    if trigger is PaymentTrigger.PAYMENT_CANCELED:
        return PaymentTransition(PaymentStatus.CANCELED, external_message or None)
    if trigger is PaymentTrigger.PAYMENT_FAILED:
        return PaymentTransition(
            PaymentStatus.REQUIRES_PAYMENT, external_message or PAYMENT_FAILED
        )
    if trigger in (PaymentTrigger.PAYMENT_CAPTURED, PaymentTrigger.ACCEPT_CAPTURED):
        return PaymentTransition(PaymentStatus.CAPTURED, None)
    if trigger is PaymentTrigger.PAYMENT_REFUNDED:
        return PaymentTransition(PaymentStatus.REFUNDED, None)
    raise ValueError(f"Unhandled payment trigger: {trigger!r} (from {current})")


def plan_accept(booking: Booking) -> str | None:
    """
    Check that a booking's local payment state allows a capture.

    Returns:
        None if accept may proceed, otherwise the error token
    """
    if not booking.payment_intent_id:
        return "payment_intent_missing"
    if booking.payment_status not in ACCEPTABLE_PAYMENT_STATUSES:
        return "payment_not_authorized_yet"
    return None


def plan_decline(payment_status: PaymentStatus | str, has_intent: bool) -> DeclinePlan:
    """
    Decide the gateway side effect of a decline.

    - Uncaptured authorization: cancel it, payment becomes canceled
    - Captured funds: refund them, payment becomes refunding
    - Anything else, or no PaymentIntent to act on: nothing to do
    """
    status = PaymentStatus(payment_status)
    if has_intent and status in CANCELABLE_PAYMENT_STATUSES:
        return DeclinePlan(GatewayAction.CANCEL, PaymentStatus.CANCELED)
    if has_intent and status == PaymentStatus.CAPTURED:
        return DeclinePlan(GatewayAction.REFUND, PaymentStatus.REFUNDING)
    return DeclinePlan(None, status)


def plan_modify(payment_version: int) -> ModifyPlan:
    """Start a new authorization cycle one version above the current one."""
    return ModifyPlan(next_version=payment_version + 1)
