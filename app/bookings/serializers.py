"""
Serializers for the bookings API.

Serializer Hierarchy:
    BookingSerializer: Read-only booking with payment state
    BookingCreateSerializer: Propose a booking in a conversation
    BookingModifySerializer: New terms for an existing booking
    CheckoutResponseSerializer / BookingResponseSerializer: Response envelopes
    ErrorResponseSerializer: {"success": false, "error": "<token>"}

Design Decisions:
    - Amounts are accepted as strings; the service validates and derives the
      total so clients receive the stable invalid_amount token
    - Request serializers convert to the service's parameter dataclasses
"""

from __future__ import annotations

from rest_framework import serializers

from bookings.models import Booking
from bookings.services import CreateBookingParams, ModifyBookingParams


class BookingSerializer(serializers.ModelSerializer):
    """
    Booking with its negotiation and payment state.

    Usage:
        serializer = BookingSerializer(booking)
        data = serializer.data
    """

    customer_id = serializers.IntegerField(read_only=True)
    provider_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "conversation_id",
            "customer_id",
            "provider_id",
            "title",
            "description",
            "scheduled_start",
            "scheduled_end",
            "session_length_minutes",
            "hourly_rate",
            "total_amount",
            "status",
            "location",
            "meeting_link",
            "special_instructions",
            "payment_intent_id",
            "payment_status",
            "payment_amount_cents",
            "payment_currency",
            "payment_version",
            "last_payment_event_at",
            "last_payment_error",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BookingTermsSerializer(serializers.Serializer):
    """Fields shared by create and modify."""

    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    scheduled_start = serializers.DateTimeField()
    scheduled_end = serializers.DateTimeField()
    hourly_rate = serializers.CharField(
        max_length=32,
        help_text="Hourly rate as a decimal string, e.g. \"45.00\"",
    )
    location = serializers.CharField(
        max_length=255, required=False, allow_blank=True, default=""
    )
    meeting_link = serializers.CharField(
        max_length=500, required=False, allow_blank=True, default=""
    )
    special_instructions = serializers.CharField(
        required=False, allow_blank=True, default=""
    )


class BookingCreateSerializer(BookingTermsSerializer):
    """Serializer for proposing a booking."""

    conversation_id = serializers.UUIDField()
    customer_id = serializers.IntegerField()
    provider_id = serializers.IntegerField()

    def to_params(self) -> CreateBookingParams:
        return CreateBookingParams(**self.validated_data)


class BookingModifySerializer(BookingTermsSerializer):
    """Serializer for modifying a booking's terms."""

    def to_params(self) -> ModifyBookingParams:
        return ModifyBookingParams(**self.validated_data)


class ConversationBookingsQuerySerializer(serializers.Serializer):
    conversation_id = serializers.UUIDField()


class CheckoutResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    booking_id = serializers.UUIDField()
    checkout_url = serializers.URLField()


class BookingResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    booking = BookingSerializer()


class ErrorResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField(default=False)
    error = serializers.CharField(help_text="Stable error token, e.g. \"forbidden\"")
