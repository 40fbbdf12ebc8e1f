"""
Pytest fixtures for booking tests.

Bookings are created through BookingFactory; services get a FakeGateway so
no test talks to Stripe.

Usage:
    def test_accept(service, gateway, capturable_booking):
        result = service.accept_booking(capturable_booking.provider, capturable_booking.id)
        assert gateway.calls_to("capture_payment_intent")
"""

import pytest
from rest_framework.test import APIClient

from bookings.services import BookingService
from bookings.state_machines import BookingStatus, PaymentStatus
from bookings.tests.factories import BookingFactory, UserFactory
from bookings.tests.fakes import FakeGateway


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def customer(db):
    """User paying for bookings."""
    return UserFactory()


@pytest.fixture
def provider(db):
    """User delivering sessions."""
    return UserFactory()


@pytest.fixture
def stranger(db):
    """User who is not a party to any booking."""
    return UserFactory()


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def gateway():
    """Fake payment gateway recording every call."""
    return FakeGateway()


@pytest.fixture
def service(gateway):
    """BookingService backed by the fake gateway."""
    return BookingService(gateway)


@pytest.fixture
def site_url(settings):
    settings.SITE_URL = "https://app.example.com/"
    return settings.SITE_URL


# =============================================================================
# Booking State Fixtures
# =============================================================================


@pytest.fixture
def pending_booking(db, customer, provider):
    """Pending booking with no payment yet."""
    return BookingFactory(customer=customer, provider=provider)


@pytest.fixture
def capturable_booking(db, customer, provider):
    """Pending booking whose authorization is ready to capture."""
    return BookingFactory(customer=customer, provider=provider, capturable=True)


@pytest.fixture
def accepted_booking(db, customer, provider):
    """Accepted booking with captured funds."""
    return BookingFactory(customer=customer, provider=provider, captured=True)


@pytest.fixture
def declined_booking(db, customer, provider):
    """Declined booking whose authorization was released."""
    return BookingFactory(
        customer=customer,
        provider=provider,
        status=BookingStatus.DECLINED,
        payment_intent_id="pi_test_declined",
        payment_status=PaymentStatus.CANCELED,
    )


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def customer_client(customer):
    client = APIClient()
    client.force_authenticate(user=customer)
    return client


@pytest.fixture
def provider_client(provider):
    client = APIClient()
    client.force_authenticate(user=provider)
    return client
