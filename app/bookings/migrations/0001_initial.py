import uuid

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models

import bookings.models.booking


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "conversation_id",
                    models.UUIDField(
                        db_index=True,
                        help_text="Chat conversation this booking belongs to",
                    ),
                ),
                (
                    "title",
                    models.CharField(
                        help_text="Short title shown in chat and on the Checkout page",
                        max_length=200,
                    ),
                ),
                (
                    "description",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Free-form description of the session",
                    ),
                ),
                ("scheduled_start", models.DateTimeField(help_text="Session start")),
                (
                    "scheduled_end",
                    models.DateTimeField(help_text="Session end (after scheduled_start)"),
                ),
                (
                    "session_length_minutes",
                    models.PositiveIntegerField(
                        help_text="Length of the session window in minutes"
                    ),
                ),
                (
                    "hourly_rate",
                    models.CharField(
                        help_text="Hourly rate as a decimal string", max_length=32
                    ),
                ),
                (
                    "total_amount",
                    models.CharField(
                        help_text="hourly_rate x hours, rounded half-up to 2 decimals",
                        max_length=32,
                    ),
                ),
                (
                    "location",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Where the session takes place",
                        max_length=255,
                    ),
                ),
                (
                    "meeting_link",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Video call link for remote sessions",
                        max_length=500,
                    ),
                ),
                (
                    "special_instructions",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Notes from the proposing party",
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("accepted", "Accepted"),
                            ("declined", "Declined"),
                            ("modified", "Modified"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Negotiation status (managed by FSM)",
                        max_length=50,
                    ),
                ),
                (
                    "payment_intent_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Stripe PaymentIntent ID (pi_xxx) of the current payment cycle",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("requires_payment", "Requires Payment"),
                            ("authorization_pending", "Authorization Pending"),
                            ("authorized", "Authorized"),
                            ("capturable", "Capturable"),
                            ("captured", "Captured"),
                            ("refunding", "Refunding"),
                            ("refunded", "Refunded"),
                            ("canceled", "Canceled"),
                        ],
                        db_index=True,
                        default="requires_payment",
                        help_text="Stripe authorization status of the current payment cycle",
                        max_length=32,
                    ),
                ),
                (
                    "payment_amount_cents",
                    models.PositiveIntegerField(
                        help_text="Amount to authorize in the smallest currency unit"
                    ),
                ),
                (
                    "payment_currency",
                    models.CharField(
                        default=bookings.models.booking.default_payment_currency,
                        help_text="ISO 4217 currency code (lowercase, as Stripe reports it)",
                        max_length=3,
                    ),
                ),
                (
                    "payment_version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Authorization cycle counter - incremented on every modify",
                    ),
                ),
                (
                    "last_payment_event_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When payment_status last changed",
                        null=True,
                    ),
                ),
                (
                    "last_stripe_event_created_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Stripe 'created' time of the last webhook event applied in this cycle",
                        null=True,
                    ),
                ),
                (
                    "last_payment_error",
                    models.TextField(
                        blank=True,
                        help_text="Diagnostic from the most recent payment failure",
                        null=True,
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        help_text="User paying for the session",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="customer_bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "provider",
                    models.ForeignKey(
                        help_text="User delivering the session; the only party who can accept",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="provider_bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["conversation_id", "created_at"],
                        name="bookings_bo_convers_5c1f0e_idx",
                    ),
                    models.Index(
                        fields=["provider", "status"],
                        name="bookings_bo_provide_8a2d41_idx",
                    ),
                    models.Index(
                        fields=["customer", "status"],
                        name="bookings_bo_custome_3e9b77_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("payment_amount_cents__gt", 0)),
                        name="booking_payment_amount_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("scheduled_end__gt", models.F("scheduled_start"))
                        ),
                        name="booking_schedule_ordered",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("customer", models.F("provider")), _negated=True
                        ),
                        name="booking_parties_distinct",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            (
                                "payment_status__in",
                                [
                                    "requires_payment",
                                    "authorization_pending",
                                    "authorized",
                                    "capturable",
                                    "captured",
                                    "refunding",
                                    "refunded",
                                    "canceled",
                                ],
                            )
                        ),
                        name="booking_payment_status_valid",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BookingPaymentEvent",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "stripe_event_id",
                    models.CharField(
                        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe event type (e.g., 'checkout.session.completed')",
                        max_length=100,
                    ),
                ),
                (
                    "payload",
                    models.JSONField(help_text="Full webhook event from Stripe (JSON)"),
                ),
                (
                    "applied",
                    models.BooleanField(
                        default=False,
                        help_text="True when the event changed the booking's payment state",
                    ),
                ),
                (
                    "booking",
                    models.ForeignKey(
                        help_text="Booking this event belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payment_events",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking Payment Event",
                "verbose_name_plural": "Booking Payment Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["booking", "created_at"],
                        name="bookings_bo_booking_71d2c4_idx",
                    ),
                ],
            },
        ),
    ]
