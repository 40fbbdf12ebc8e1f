"""
Booking admin configuration.

Bookings and their payment events are visible to operators for support and
audit. Payment state changes go through BookingService and the webhook
handler, so payment fields are read-only here and the event ledger cannot
be edited at all.
"""

from django.contrib import admin

from bookings.models import Booking, BookingPaymentEvent

__all__ = [
    "BookingAdmin",
    "BookingPaymentEventAdmin",
]


class BookingPaymentEventInline(admin.TabularInline):
    """Read-only event history on the booking page."""

    model = BookingPaymentEvent
    extra = 0
    can_delete = False
    fields = ["stripe_event_id", "event_type", "applied", "created_at"]
    readonly_fields = fields
    ordering = ["created_at"]
    show_change_link = True

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """
    Admin configuration for Booking.

    Provides visibility into negotiation status and payment state.
    """

    list_display = [
        "id",
        "title",
        "customer",
        "provider",
        "status",
        "payment_status",
        "amount_display",
        "payment_version",
        "created_at",
    ]
    list_filter = ["status", "payment_status", "payment_currency", "created_at"]
    search_fields = [
        "id",
        "conversation_id",
        "payment_intent_id",
        "title",
        "customer__email",
        "provider__email",
    ]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "status",
        "payment_intent_id",
        "payment_status",
        "payment_amount_cents",
        "payment_currency",
        "payment_version",
        "last_payment_event_at",
        "last_stripe_event_created_at",
        "last_payment_error",
    ]
    raw_id_fields = ["customer", "provider"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [BookingPaymentEventInline]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "conversation_id", "customer", "provider", "status"),
            },
        ),
        (
            "Session",
            {
                "fields": (
                    "title",
                    "description",
                    "scheduled_start",
                    "scheduled_end",
                    "session_length_minutes",
                    "hourly_rate",
                    "total_amount",
                    "location",
                    "meeting_link",
                    "special_instructions",
                ),
            },
        ),
        (
            "Payment",
            {
                "fields": (
                    "payment_status",
                    "payment_intent_id",
                    "payment_amount_cents",
                    "payment_currency",
                    "payment_version",
                    "last_payment_event_at",
                    "last_stripe_event_created_at",
                    "last_payment_error",
                ),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def amount_display(self, obj: Booking) -> str:
        """Display the amount formatted as currency."""
        return f"{obj.payment_amount_cents / 100:.2f} {obj.payment_currency.upper()}"

    amount_display.short_description = "Amount"

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for bookings (audit trail)."""
        return False


@admin.register(BookingPaymentEvent)
class BookingPaymentEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for BookingPaymentEvent.

    Webhook events are immutable once recorded.
    """

    list_display = [
        "stripe_event_id",
        "event_type",
        "booking",
        "applied",
        "created_at",
    ]
    list_filter = ["event_type", "applied", "created_at"]
    search_fields = ["stripe_event_id", "event_type", "booking__id"]
    readonly_fields = [
        "id",
        "booking",
        "stripe_event_id",
        "event_type",
        "applied",
        "payload",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "booking", "stripe_event_id", "event_type", "applied"),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
