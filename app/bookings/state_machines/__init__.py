"""
State machine enums and transitions for bookings.

- states: BookingStatus and PaymentStatus choices
- transitions: pure payment-status transitions and command plans
"""

from bookings.state_machines.states import BookingStatus, PaymentStatus
from bookings.state_machines.transitions import (
    DeclinePlan,
    GatewayAction,
    ModifyPlan,
    PaymentTransition,
    PaymentTrigger,
    apply_trigger,
    plan_accept,
    plan_decline,
    plan_modify,
    regresses_payment,
    trigger_for_event,
)

__all__ = [
    "BookingStatus",
    "DeclinePlan",
    "GatewayAction",
    "ModifyPlan",
    "PaymentStatus",
    "PaymentTransition",
    "PaymentTrigger",
    "apply_trigger",
    "plan_accept",
    "plan_decline",
    "plan_modify",
    "regresses_payment",
    "trigger_for_event",
]
