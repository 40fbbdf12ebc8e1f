"""
Tests for the Stripe event dedup ledger.
"""

import pytest
from django.db import transaction

from bookings.ledger import mark_event_applied, record_event_and_check_duplicate
from bookings.models import BookingPaymentEvent


def record(booking_id, stripe_event_id="evt_test123", event_type="checkout.session.completed"):
    return record_event_and_check_duplicate(
        stripe_event_id=stripe_event_id,
        booking_id=booking_id,
        event_type=event_type,
        payload={"id": stripe_event_id, "type": event_type},
    )


@pytest.mark.django_db
class TestRecordEventAndCheckDuplicate:
    """Tests for record_event_and_check_duplicate."""

    def test_first_delivery_is_recorded(self, pending_booking):
        """Should record a new event and report it as not a duplicate."""
        assert record(pending_booking.id) is False

        event = BookingPaymentEvent.objects.get(stripe_event_id="evt_test123")
        assert event.booking_id == pending_booking.id
        assert event.event_type == "checkout.session.completed"
        assert event.payload == {
            "id": "evt_test123",
            "type": "checkout.session.completed",
        }
        assert event.applied is False

    def test_redelivery_is_duplicate(self, pending_booking):
        """Should report a second delivery of the same event as a duplicate."""
        record(pending_booking.id)

        assert record(pending_booking.id) is True
        assert BookingPaymentEvent.objects.count() == 1

    def test_distinct_events_recorded(self, pending_booking):
        """Should record different event ids independently."""
        assert record(pending_booking.id, "evt_one") is False
        assert record(pending_booking.id, "evt_two", "charge.captured") is False

        assert BookingPaymentEvent.objects.count() == 2

    def test_duplicate_keeps_outer_transaction_usable(self, pending_booking):
        """Should leave the caller's transaction usable after a duplicate."""
        record(pending_booking.id)

        with transaction.atomic():
            assert record(pending_booking.id) is True
            assert record(pending_booking.id, "evt_after_duplicate") is False

        assert BookingPaymentEvent.objects.count() == 2


@pytest.mark.django_db
class TestMarkEventApplied:
    """Tests for mark_event_applied."""

    def test_marks_event(self, pending_booking):
        """Should flag the recorded event as applied."""
        record(pending_booking.id)

        mark_event_applied("evt_test123")

        assert BookingPaymentEvent.objects.get(stripe_event_id="evt_test123").applied

    def test_unknown_event_is_noop(self):
        """Should do nothing for an event that was never recorded."""
        mark_event_applied("evt_missing")

        assert not BookingPaymentEvent.objects.exists()
