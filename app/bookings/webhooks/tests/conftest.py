"""
Pytest fixtures for Stripe webhook tests.

Event builders produce plain dicts shaped like verified Stripe events, with
the booking metadata a Checkout session created by BookingService carries.

Usage:
    def test_completed(booking, make_event, checkout_session_object):
        event = make_event(
            "checkout.session.completed",
            checkout_session_object(booking, payment_intent="pi_123"),
        )
        process_payment_event(event)
"""

import itertools

import pytest

from bookings.tests.factories import BookingFactory
from bookings.webhooks.tests.events import BASE_CREATED, booking_metadata

_event_ids = itertools.count(1)


@pytest.fixture
def booking(db):
    """Booking awaiting its first payment."""
    return BookingFactory()


@pytest.fixture
def make_event():
    """Build a Stripe event envelope around an object."""

    def _make(event_type, obj, event_id=None, created=BASE_CREATED):
        event = {
            "id": event_id or f"evt_test{next(_event_ids):06d}",
            "object": "event",
            "type": event_type,
            "data": {"object": obj},
        }
        if created is not None:
            event["created"] = created
        return event

    return _make


@pytest.fixture
def checkout_session_object():
    """Build a checkout.session object for a booking."""

    def _make(booking, payment_intent="pi_test123", payment_version=None, metadata=None):
        return {
            "id": "cs_test123",
            "object": "checkout.session",
            "payment_intent": payment_intent,
            "metadata": booking_metadata(booking, payment_version)
            if metadata is None
            else metadata,
        }

    return _make


@pytest.fixture
def payment_intent_object():
    """Build a payment_intent object for a booking."""

    def _make(
        booking,
        id="pi_test123",
        currency="aud",
        last_payment_error=None,
        payment_version=None,
    ):
        return {
            "id": id,
            "object": "payment_intent",
            "currency": currency,
            "last_payment_error": last_payment_error,
            "metadata": booking_metadata(booking, payment_version),
        }

    return _make


@pytest.fixture
def charge_object():
    """Build a charge object for a booking."""

    def _make(booking, payment_intent="pi_test123", currency="aud", payment_version=None):
        return {
            "id": "ch_test123",
            "object": "charge",
            "payment_intent": payment_intent,
            "currency": currency,
            "metadata": booking_metadata(booking, payment_version),
        }

    return _make
