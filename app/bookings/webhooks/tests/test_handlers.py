"""
Tests for Stripe webhook event processing.

Tests cover:
- Event object parsing and normalization
- Payment status updates per event type
- Dedup through the event ledger
- Fencing by payment version, event creation time and payment phase
- Acknowledged dead ends (no object, no metadata, unknown booking)
"""

import uuid
from datetime import datetime, timezone as dt_timezone

import pytest
from django.utils import timezone
from freezegun import freeze_time

from bookings.models import BookingPaymentEvent
from bookings.services import BookingService
from bookings.state_machines import BookingStatus, PaymentStatus
from bookings.tests.factories import BookingFactory
from bookings.tests.fakes import FakeGateway
from bookings.webhooks.handlers import (
    BOOKING_NOT_FOUND,
    DUPLICATE_EVENT,
    EVENT_IGNORED,
    NO_BOOKING_METADATA,
    NO_OBJECT,
    STALE_EVENT,
    STALE_PHASE,
    STALE_VERSION,
    ChargeObject,
    CheckoutSessionObject,
    PaymentIntentObject,
    extract_event_data,
    parse_event_object,
    process_payment_event,
)
from bookings.webhooks.tests.events import BASE_CREATED


def created_at(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=dt_timezone.utc)


# =============================================================================
# Parsing
# =============================================================================


class TestParseEventObject:
    """Tests for parse_event_object."""

    def test_checkout_session(self):
        """Should parse a checkout.session object."""
        obj = parse_event_object(
            {
                "object": "checkout.session",
                "payment_intent": "pi_123",
                "metadata": {"booking_id": "b1"},
            }
        )

        assert obj == CheckoutSessionObject(
            metadata={"booking_id": "b1"}, payment_intent="pi_123"
        )

    def test_payment_intent(self):
        """Should parse a payment_intent object."""
        obj = parse_event_object(
            {"object": "payment_intent", "id": "pi_123", "currency": "aud"}
        )

        assert isinstance(obj, PaymentIntentObject)
        assert obj.id == "pi_123"
        assert obj.metadata == {}

    def test_charge(self):
        """Should parse a charge object."""
        obj = parse_event_object(
            {"object": "charge", "payment_intent": "pi_123", "metadata": None}
        )

        assert isinstance(obj, ChargeObject)
        assert obj.metadata == {}

    @pytest.mark.parametrize("data", [None, {}, {"object": "customer", "id": "cus_1"}])
    def test_unsupported(self, data):
        """Should return None for missing or unsupported objects."""
        assert parse_event_object(data) is None


class TestExtractEventData:
    """Tests for extract_event_data."""

    def test_session_with_intent_id(self):
        """Should take the intent id from a string reference."""
        data = extract_event_data(
            CheckoutSessionObject(
                metadata={"booking_id": "b1", "payment_version": "2"},
                payment_intent="pi_123",
            )
        )

        assert data.booking_id == "b1"
        assert data.payment_intent_id == "pi_123"
        assert data.currency is None
        assert data.payment_version == 2

    def test_session_with_expanded_intent(self):
        """Should take id and currency from an expanded intent."""
        data = extract_event_data(
            CheckoutSessionObject(
                metadata={"booking_id": "b1"},
                payment_intent={"id": "pi_123", "currency": "nzd"},
            )
        )

        assert data.payment_intent_id == "pi_123"
        assert data.currency == "nzd"
        assert data.payment_version is None

    def test_payment_intent_error_message(self):
        """Should surface Stripe's last payment error message."""
        data = extract_event_data(
            PaymentIntentObject(
                id="pi_123",
                metadata={"booking_id": "b1"},
                currency="aud",
                last_payment_error={"message": "Your card was declined."},
            )
        )

        assert data.payment_intent_id == "pi_123"
        assert data.last_error == "Your card was declined."

    def test_charge(self):
        """Should take the intent and currency from a charge."""
        data = extract_event_data(
            ChargeObject(
                metadata={"booking_id": "b1"},
                payment_intent={"id": "pi_123"},
                currency="usd",
            )
        )

        assert data.payment_intent_id == "pi_123"
        assert data.currency == "usd"

    @pytest.mark.parametrize("raw", ["two", "", "1.5"])
    def test_unparsable_version(self, raw):
        """Should treat an unparsable version as untagged."""
        data = extract_event_data(
            CheckoutSessionObject(metadata={"booking_id": "b1", "payment_version": raw})
        )

        assert data.payment_version is None


# =============================================================================
# Applying Events
# =============================================================================


@pytest.mark.django_db
class TestProcessPaymentEvent:
    """Tests for process_payment_event."""

    def test_checkout_completed(self, booking, make_event, checkout_session_object):
        """Should record the intent and move to authorization_pending."""
        event = make_event(
            "checkout.session.completed",
            checkout_session_object(booking, payment_intent="pi_abc"),
        )

        result = process_payment_event(event)

        assert result.success
        assert result.data is None
        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.AUTHORIZATION_PENDING
        assert booking.payment_intent_id == "pi_abc"
        assert booking.last_payment_event_at is not None
        assert booking.last_stripe_event_created_at == created_at(BASE_CREATED)

    @freeze_time("2026-02-01 08:00:00")
    def test_event_time_is_wall_clock(self, booking, make_event, checkout_session_object):
        """Should stamp last_payment_event_at with the processing time."""
        process_payment_event(
            make_event("checkout.session.completed", checkout_session_object(booking))
        )

        booking.refresh_from_db()
        assert booking.last_payment_event_at == datetime(
            2026, 2, 1, 8, 0, tzinfo=dt_timezone.utc
        )
        assert booking.last_stripe_event_created_at == created_at(BASE_CREATED)

    def test_event_recorded_and_applied(self, booking, make_event, checkout_session_object):
        """Should keep the event in the ledger flagged as applied."""
        event = make_event("checkout.session.completed", checkout_session_object(booking))

        process_payment_event(event)

        recorded = BookingPaymentEvent.objects.get(stripe_event_id=event["id"])
        assert recorded.booking_id == booking.id
        assert recorded.event_type == "checkout.session.completed"
        assert recorded.payload == event
        assert recorded.applied is True

    def test_expanded_intent_sets_currency(
        self, booking, make_event, checkout_session_object
    ):
        """Should take the currency Stripe reports."""
        event = make_event(
            "checkout.session.completed",
            checkout_session_object(
                booking, payment_intent={"id": "pi_abc", "currency": "nzd"}
            ),
        )

        process_payment_event(event)

        booking.refresh_from_db()
        assert booking.payment_currency == "nzd"
        assert booking.payment_intent_id == "pi_abc"

    def test_amount_capturable(self, booking, make_event, payment_intent_object):
        """Should mark the payment capturable."""
        event = make_event(
            "payment_intent.amount_capturable_updated",
            payment_intent_object(booking, id="pi_abc"),
        )

        process_payment_event(event)

        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.CAPTURABLE
        assert booking.payment_intent_id == "pi_abc"

    def test_payment_failed(self, booking, make_event, payment_intent_object):
        """Should return to requires_payment with Stripe's message."""
        event = make_event(
            "payment_intent.payment_failed",
            payment_intent_object(
                booking, last_payment_error={"message": "Insufficient funds."}
            ),
        )

        process_payment_event(event)

        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.REQUIRES_PAYMENT
        assert booking.last_payment_error == "Insufficient funds."

    def test_payment_failed_without_message(self, booking, make_event, payment_intent_object):
        """Should store the payment_failed token when Stripe gives no message."""
        event = make_event(
            "payment_intent.payment_failed",
            payment_intent_object(booking, last_payment_error=None),
        )

        process_payment_event(event)

        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.REQUIRES_PAYMENT
        assert booking.last_payment_error == "payment_failed"

    def test_checkout_expired(self, booking, make_event, checkout_session_object):
        """Should record a checkout failure."""
        event = make_event(
            "checkout.session.expired",
            checkout_session_object(booking, payment_intent=None),
        )

        process_payment_event(event)

        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.REQUIRES_PAYMENT
        assert booking.last_payment_error == "checkout_session_failed"
        assert booking.payment_intent_id is None

    def test_payment_canceled(self, make_event, payment_intent_object):
        """Should mark the payment canceled."""
        booking = BookingFactory(capturable=True)
        event = make_event(
            "payment_intent.canceled",
            payment_intent_object(booking, id=booking.payment_intent_id),
        )

        process_payment_event(event)

        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.CANCELED

    @pytest.mark.parametrize("event_type", ["charge.captured", "payment_intent.succeeded"])
    def test_captured(
        self, booking, make_event, charge_object, payment_intent_object, event_type
    ):
        """Should mark the payment captured from either capture event."""
        obj = (
            charge_object(booking)
            if event_type.startswith("charge")
            else payment_intent_object(booking)
        )

        process_payment_event(make_event(event_type, obj))

        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.CAPTURED

    def test_refunded(self, booking, make_event, charge_object):
        """Should mark the payment refunded."""
        process_payment_event(make_event("charge.refunded", charge_object(booking)))

        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.REFUNDED

    def test_status_unchanged_by_webhooks(self, booking, make_event, charge_object):
        """Should change only the payment state, never the negotiation status."""
        process_payment_event(make_event("charge.captured", charge_object(booking)))

        booking.refresh_from_db()
        assert booking.status == "pending"

    # -------------------------------------------------------------------------
    # Dedup
    # -------------------------------------------------------------------------

    def test_duplicate_delivery(self, booking, make_event, checkout_session_object):
        """Should apply an event once and acknowledge redeliveries."""
        event = make_event("checkout.session.completed", checkout_session_object(booking))
        process_payment_event(event)

        result = process_payment_event(event)

        assert result.success
        assert result.data == DUPLICATE_EVENT
        assert BookingPaymentEvent.objects.filter(stripe_event_id=event["id"]).count() == 1

    def test_duplicate_does_not_reapply(
        self, booking, make_event, checkout_session_object, payment_intent_object
    ):
        """Should not let a redelivered event overwrite later state."""
        completed = make_event(
            "checkout.session.completed", checkout_session_object(booking)
        )
        capturable = make_event(
            "payment_intent.amount_capturable_updated",
            payment_intent_object(booking),
            created=BASE_CREATED + 10,
        )
        process_payment_event(completed)
        process_payment_event(capturable)

        process_payment_event(completed)

        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.CAPTURABLE

    # -------------------------------------------------------------------------
    # Ignored and unroutable events
    # -------------------------------------------------------------------------

    def test_unmodeled_type_recorded_not_applied(self, booking, make_event, charge_object):
        """Should record an unmodeled event type without changing the booking."""
        event = make_event("charge.succeeded", charge_object(booking))

        result = process_payment_event(event)

        assert result.data == EVENT_IGNORED
        recorded = BookingPaymentEvent.objects.get(stripe_event_id=event["id"])
        assert recorded.applied is False
        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.REQUIRES_PAYMENT
        assert booking.payment_intent_id is None

    def test_no_object(self, make_event, db):
        """Should acknowledge events without a booking payment object."""
        result = process_payment_event(
            make_event("customer.created", {"object": "customer", "id": "cus_1"})
        )

        assert result.success
        assert result.data == NO_OBJECT
        assert not BookingPaymentEvent.objects.exists()

    def test_no_booking_metadata(self, booking, make_event, checkout_session_object):
        """Should acknowledge events that carry no booking id."""
        event = make_event(
            "checkout.session.completed",
            checkout_session_object(booking, metadata={}),
        )

        result = process_payment_event(event)

        assert result.data == NO_BOOKING_METADATA
        assert not BookingPaymentEvent.objects.exists()

    @pytest.mark.parametrize("booking_id", [str(uuid.uuid4()), "not-a-uuid"])
    def test_unknown_booking(
        self, booking, make_event, checkout_session_object, booking_id
    ):
        """Should acknowledge events for bookings that do not exist."""
        event = make_event(
            "checkout.session.completed",
            checkout_session_object(
                booking, metadata={"booking_id": booking_id, "payment_version": "1"}
            ),
        )

        result = process_payment_event(event)

        assert result.data == BOOKING_NOT_FOUND
        assert not BookingPaymentEvent.objects.exists()

    def test_booking_deleted_before_delivery(self, make_event, checkout_session_object, db):
        """Should acknowledge events for a booking removed after checkout failed."""
        booking = BookingFactory()
        event = make_event("checkout.session.expired", checkout_session_object(booking))
        booking.delete()

        result = process_payment_event(event)

        assert result.success is True
        assert result.data == BOOKING_NOT_FOUND
        assert not BookingPaymentEvent.objects.exists()

    # -------------------------------------------------------------------------
    # Fencing
    # -------------------------------------------------------------------------

    def test_previous_version_is_stale(self, booking, make_event, checkout_session_object):
        """Should ignore events from an earlier payment cycle."""
        booking.modify(2)
        booking.save()
        event = make_event(
            "checkout.session.completed",
            checkout_session_object(booking, payment_version=1, payment_intent="pi_old"),
        )

        result = process_payment_event(event)

        assert result.data == STALE_VERSION
        booking.refresh_from_db()
        assert booking.payment_intent_id is None
        assert booking.payment_status == PaymentStatus.REQUIRES_PAYMENT
        recorded = BookingPaymentEvent.objects.get(stripe_event_id=event["id"])
        assert recorded.applied is False

    def test_current_version_applies_after_modify(
        self, booking, make_event, checkout_session_object
    ):
        """Should apply the new cycle's events after a modify."""
        booking.modify(2)
        booking.save()

        process_payment_event(
            make_event(
                "checkout.session.completed",
                checkout_session_object(booking, payment_version=2, payment_intent="pi_new"),
            )
        )

        booking.refresh_from_db()
        assert booking.payment_intent_id == "pi_new"
        assert booking.payment_status == PaymentStatus.AUTHORIZATION_PENDING

    def test_untagged_event_applies(self, booking, make_event, checkout_session_object):
        """Should apply events without a payment_version in metadata."""
        event = make_event(
            "checkout.session.completed",
            checkout_session_object(booking, metadata={"booking_id": str(booking.id)}),
        )

        result = process_payment_event(event)

        assert result.data is None

    def test_older_event_is_stale(
        self, booking, make_event, checkout_session_object, payment_intent_object
    ):
        """Should not let an older event overwrite a newer one."""
        process_payment_event(
            make_event(
                "payment_intent.amount_capturable_updated",
                payment_intent_object(booking),
                created=BASE_CREATED + 30,
            )
        )

        result = process_payment_event(
            make_event(
                "checkout.session.completed",
                checkout_session_object(booking),
                created=BASE_CREATED,
            )
        )

        assert result.data == STALE_EVENT
        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.CAPTURABLE
        assert booking.last_stripe_event_created_at == created_at(BASE_CREATED + 30)

    def test_same_second_applies_in_arrival_order(
        self, booking, make_event, checkout_session_object, payment_intent_object
    ):
        """Should apply events created in the same second in arrival order."""
        process_payment_event(
            make_event("checkout.session.completed", checkout_session_object(booking))
        )
        process_payment_event(
            make_event(
                "payment_intent.amount_capturable_updated",
                payment_intent_object(booking),
            )
        )

        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.CAPTURABLE

    def test_command_time_does_not_fence(self, db, make_event, charge_object):
        """Should apply events older than a local command's write."""
        booking = BookingFactory(captured=True, last_payment_event_at=timezone.now())
        refund = charge_object(booking, payment_intent=booking.payment_intent_id)

        process_payment_event(make_event("charge.refunded", refund))

        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.REFUNDED

    def test_missing_created_applies(self, booking, make_event, checkout_session_object):
        """Should apply an event without a creation time and keep the fence."""
        event = make_event(
            "checkout.session.completed",
            checkout_session_object(booking),
            created=None,
        )

        result = process_payment_event(event)

        assert result.data is None
        booking.refresh_from_db()
        assert booking.last_stripe_event_created_at is None

    def test_authorization_event_after_accept_is_stale(
        self, booking, make_event, checkout_session_object, payment_intent_object
    ):
        """Should keep an accepted booking captured when an authorization event arrives late."""
        process_payment_event(
            make_event("checkout.session.completed", checkout_session_object(booking))
        )
        accepted = BookingService(FakeGateway()).accept_booking(booking.provider, booking.id)
        assert accepted.success is True

        late = make_event(
            "payment_intent.amount_capturable_updated",
            payment_intent_object(booking),
            created=BASE_CREATED + 1,
        )
        result = process_payment_event(late)

        assert result.data == STALE_PHASE
        booking.refresh_from_db()
        assert booking.status == BookingStatus.ACCEPTED
        assert booking.payment_status == PaymentStatus.CAPTURED
        recorded = BookingPaymentEvent.objects.get(stripe_event_id=late["id"])
        assert recorded.applied is False

    @pytest.mark.parametrize(
        "event_type",
        [
            "checkout.session.completed",
            "checkout.session.expired",
            "payment_intent.amount_capturable_updated",
            "payment_intent.payment_failed",
        ],
    )
    def test_authorization_events_after_capture_are_stale(
        self, db, make_event, checkout_session_object, payment_intent_object, event_type
    ):
        """Should not move a captured payment back to an authorization state."""
        booking = BookingFactory(captured=True)
        obj = (
            checkout_session_object(booking, payment_intent=booking.payment_intent_id)
            if event_type.startswith("checkout")
            else payment_intent_object(booking, id=booking.payment_intent_id)
        )

        result = process_payment_event(make_event(event_type, obj))

        assert result.data == STALE_PHASE
        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.CAPTURED
        assert booking.last_payment_error is None

    def test_decline_after_late_event_refunds(
        self, db, make_event, payment_intent_object
    ):
        """Should still refund on decline after a late authorization event."""
        booking = BookingFactory(captured=True)
        gateway = FakeGateway()
        process_payment_event(
            make_event(
                "payment_intent.amount_capturable_updated",
                payment_intent_object(booking, id=booking.payment_intent_id),
            )
        )

        result = BookingService(gateway).decline_booking(booking.provider, booking.id)

        assert result.success is True
        assert len(gateway.calls_to("create_refund")) == 1
        assert gateway.calls_to("cancel_payment_intent") == []
        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.REFUNDING

    def test_capture_event_after_refund_is_stale(self, db, make_event, charge_object):
        """Should not move a refunding payment back to captured."""
        booking = BookingFactory(captured=True, payment_status=PaymentStatus.REFUNDING)

        result = process_payment_event(
            make_event(
                "charge.captured",
                charge_object(booking, payment_intent=booking.payment_intent_id),
            )
        )

        assert result.data == STALE_PHASE
        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.REFUNDING

    def test_capture_event_after_cancel_applies(self, db, make_event, charge_object):
        """Should let a capture overwrite an earlier stray cancel."""
        booking = BookingFactory(capturable=True, payment_status=PaymentStatus.CANCELED)

        result = process_payment_event(
            make_event(
                "charge.captured",
                charge_object(booking, payment_intent=booking.payment_intent_id),
            )
        )

        assert result.data is None
        booking.refresh_from_db()
        assert booking.payment_status == PaymentStatus.CAPTURED
