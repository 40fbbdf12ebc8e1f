"""
Booking model for chat-negotiated, paid sessions.

A Booking is proposed inside a chat conversation by one of its two parties,
paid for through a Stripe Checkout session with manual capture, and then
accepted (capture) or declined (cancel/refund) by the provider.

Two state dimensions are tracked:
    status          negotiation lifecycle, django-fsm transitions below
    payment_status  Stripe authorization lifecycle, driven by webhooks and
                    by the accept/decline/modify transitions

Usage:
    from bookings.models import Booking

    booking = Booking.objects.create(
        conversation_id=conversation_id,
        customer=customer,
        provider=provider,
        title="Guitar lesson",
        scheduled_start=start,
        scheduled_end=end,
        session_length_minutes=60,
        hourly_rate="45",
        total_amount="45.00",
        payment_amount_cents=4500,
    )

    # Transitions using django-fsm (after the gateway call succeeded)
    booking.accept()
    booking.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from bookings.state_machines import BookingStatus, PaymentStatus


def default_payment_currency() -> str:
    return settings.BOOKING_PAYMENT_CURRENCY


class Booking(UUIDPrimaryKeyMixin, BaseModel):
    """
    A proposed paid session between a customer and a provider.

    Invariants:
        - customer and provider are different users
        - payment_amount_cents > 0
        - payment_version only increases, and only through modify()
        - payment_intent_id is cleared exactly when payment_version increases
        - status ACCEPTED implies payment_status CAPTURED

    Fields:
        conversation_id: Chat conversation the booking was negotiated in
        customer / provider: The two parties
        scheduled_start / scheduled_end: Session window
        session_length_minutes: Derived from the window
        hourly_rate / total_amount: Decimal strings
        status: Negotiation status (FSM)
        payment_intent_id: Stripe PaymentIntent of the current cycle
        payment_status: Stripe authorization status of the current cycle
        payment_amount_cents / payment_currency: What is being charged
        payment_version: Authorization cycle counter
        last_payment_event_at: When payment_status last changed
        last_stripe_event_created_at: Ordering fence for webhook events
        last_payment_error: Diagnostic from the last failure, if any
    """

    # ==========================================================================
    # Parties
    # ==========================================================================

    conversation_id = models.UUIDField(
        db_index=True,
        help_text="Chat conversation this booking belongs to",
    )

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="customer_bookings",
        help_text="User paying for the session",
    )

    provider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="provider_bookings",
        help_text="User delivering the session; the only party who can accept",
    )

    # ==========================================================================
    # Session Details
    # ==========================================================================

    title = models.CharField(
        max_length=200,
        help_text="Short title shown in chat and on the Checkout page",
    )

    description = models.TextField(
        blank=True,
        default="",
        help_text="Free-form description of the session",
    )

    scheduled_start = models.DateTimeField(
        help_text="Session start",
    )

    scheduled_end = models.DateTimeField(
        help_text="Session end (after scheduled_start)",
    )

    session_length_minutes = models.PositiveIntegerField(
        help_text="Length of the session window in minutes",
    )

    hourly_rate = models.CharField(
        max_length=32,
        help_text="Hourly rate as a decimal string",
    )

    total_amount = models.CharField(
        max_length=32,
        help_text="hourly_rate x hours, rounded half-up to 2 decimals",
    )

    location = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Where the session takes place",
    )

    meeting_link = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Video call link for remote sessions",
    )

    special_instructions = models.TextField(
        blank=True,
        default="",
        help_text="Notes from the proposing party",
    )

    # ==========================================================================
    # Negotiation Status
    # ==========================================================================

    status = FSMField(
        default=BookingStatus.PENDING,
        choices=BookingStatus.choices,
        db_index=True,
        help_text="Negotiation status (managed by FSM)",
    )

    # ==========================================================================
    # Payment State
    # ==========================================================================

    payment_intent_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Stripe PaymentIntent ID (pi_xxx) of the current payment cycle",
    )

    payment_status = models.CharField(
        max_length=32,
        choices=PaymentStatus.choices,
        default=PaymentStatus.REQUIRES_PAYMENT,
        db_index=True,
        help_text="Stripe authorization status of the current payment cycle",
    )

    payment_amount_cents = models.PositiveIntegerField(
        help_text="Amount to authorize in the smallest currency unit",
    )

    payment_currency = models.CharField(
        max_length=3,
        default=default_payment_currency,
        help_text="ISO 4217 currency code (lowercase, as Stripe reports it)",
    )

    payment_version = models.PositiveIntegerField(
        default=1,
        help_text="Authorization cycle counter - incremented on every modify",
    )

    last_payment_event_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When payment_status last changed",
    )

    last_stripe_event_created_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Stripe 'created' time of the last webhook event applied in this cycle",
    )

    last_payment_error = models.TextField(
        null=True,
        blank=True,
        help_text="Diagnostic from the most recent payment failure",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Booking"
        verbose_name_plural = "Bookings"
        indexes = [
            models.Index(fields=["conversation_id", "created_at"]),
            models.Index(fields=["provider", "status"]),
            models.Index(fields=["customer", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(payment_amount_cents__gt=0),
                name="booking_payment_amount_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(scheduled_end__gt=models.F("scheduled_start")),
                name="booking_schedule_ordered",
            ),
            models.CheckConstraint(
                condition=~models.Q(customer=models.F("provider")),
                name="booking_parties_distinct",
            ),
            models.CheckConstraint(
                condition=models.Q(payment_status__in=PaymentStatus.values),
                name="booking_payment_status_valid",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation with ID, status, and amount."""
        amount_display = f"{self.payment_amount_cents / 100:.2f} {self.payment_currency.upper()}"
        return f"Booking({self.id}, {self.status}/{self.payment_status}, {amount_display})"

    # ==========================================================================
    # Properties
    # ==========================================================================

    def is_party(self, user) -> bool:
        """Check whether a user is the customer or the provider."""
        return user.pk in (self.customer_id, self.provider_id)

    def is_provider(self, user) -> bool:
        """Check whether a user is the provider."""
        return user.pk == self.provider_id

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=[BookingStatus.PENDING, BookingStatus.MODIFIED],
        target=BookingStatus.ACCEPTED,
    )
    def accept(self):
        """
        Accept the booking after its payment was captured.

        Transition: PENDING/MODIFIED -> ACCEPTED

        Only called once the capture call has succeeded, so an accepted
        booking always has captured funds.
        """
        self.payment_status = PaymentStatus.CAPTURED
        self.last_payment_error = None
        self.last_payment_event_at = timezone.now()

    @transition(
        field=status,
        source=[BookingStatus.PENDING, BookingStatus.MODIFIED, BookingStatus.ACCEPTED],
        target=BookingStatus.DECLINED,
    )
    def decline(self, payment_status: str | None = None):
        """
        Decline the booking.

        Transition: PENDING/MODIFIED/ACCEPTED -> DECLINED

        Args:
            payment_status: Payment status after the cancel/refund that was
                performed, or None when no gateway action was needed (the
                payment state is then left untouched)
        """
        if payment_status is not None:
            self.payment_status = payment_status
            self.last_payment_error = None
            self.last_payment_event_at = timezone.now()

    @transition(
        field=status,
        source="*",
        target=BookingStatus.MODIFIED,
    )
    def modify(self, next_version: int, **changes):
        """
        Start a new negotiation and authorization cycle.

        Transition: * -> MODIFIED

        The previous PaymentIntent is forgotten and the payment restarts
        at requires_payment under the new version.

        Args:
            next_version: payment_version + 1
            **changes: Updated booking fields (title, schedule, amounts, ...)
        """
        for field_name, value in changes.items():
            setattr(self, field_name, value)
        self.payment_version = next_version
        self.payment_intent_id = None
        self.payment_status = PaymentStatus.REQUIRES_PAYMENT
        self.last_payment_error = None
        self.last_payment_event_at = timezone.now()
        self.last_stripe_event_created_at = None
