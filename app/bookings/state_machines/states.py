"""
State enums for booking models.

This module defines the two state dimensions of a booking. Both are Django
TextChoices for database storage and admin integration.

State Machines Overview:

Booking status (django-fsm, see Booking model transitions):
    pending/modified → accepted      (accept, after a successful capture)
    pending/modified/accepted → declined  (decline, after cancel/refund)
    any → modified                   (modify, after a new checkout session)

Payment status (pure transitions, see state_machines.transitions):
    requires_payment → authorization_pending → capturable | authorized
    → captured → refunding → refunded
    authorization_pending/authorized/capturable → canceled
    any → requires_payment (modify, checkout failure)
"""

from django.db import models


class BookingStatus(models.TextChoices):
    """
    Negotiation status of a booking.

    Terminal states: DECLINED
    ACCEPTED can still move to DECLINED (refund) or MODIFIED (renegotiation).

    State Flow:
        PENDING → ACCEPTED
        PENDING → DECLINED
        PENDING → MODIFIED → ACCEPTED / DECLINED
    """

    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    DECLINED = "declined", "Declined"
    MODIFIED = "modified", "Modified"


class PaymentStatus(models.TextChoices):
    """
    Payment status of a booking's current authorization cycle.

    Mirrors Stripe's view of the PaymentIntent behind the booking's
    checkout session:

    - REQUIRES_PAYMENT: No authorization yet (new cycle or failed attempt)
    - AUTHORIZATION_PENDING: Checkout completed, authorization in flight
    - AUTHORIZED: Funds held, awaiting capture readiness
    - CAPTURABLE: Funds held and capturable (PaymentIntent requires_capture)
    - CAPTURED: Funds collected
    - REFUNDING: Refund requested after capture
    - REFUNDED: Refund completed
    - CANCELED: Authorization released without capture
    """

    REQUIRES_PAYMENT = "requires_payment", "Requires Payment"
    AUTHORIZATION_PENDING = "authorization_pending", "Authorization Pending"
    AUTHORIZED = "authorized", "Authorized"
    CAPTURABLE = "capturable", "Capturable"
    CAPTURED = "captured", "Captured"
    REFUNDING = "refunding", "Refunding"
    REFUNDED = "refunded", "Refunded"
    CANCELED = "canceled", "Canceled"


__all__ = [
    "BookingStatus",
    "PaymentStatus",
]
