"""
Factory Boy factories for booking test data.

Usage:
    from bookings.tests.factories import BookingFactory, UserFactory

    # A pending booking awaiting payment
    booking = BookingFactory()

    # A booking whose authorization can be captured
    booking = BookingFactory(capturable=True, provider=provider)

    # An accepted booking with captured funds
    booking = BookingFactory(captured=True)
"""

import uuid
from datetime import timedelta

import factory
from django.utils import timezone

from bookings.models import Booking, BookingPaymentEvent
from bookings.state_machines import BookingStatus, PaymentStatus


class UserFactory(factory.django.DjangoModelFactory):
    """Factory for django.contrib.auth users acting as customer or provider."""

    class Meta:
        model = "auth.User"
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    password = factory.PostGenerationMethodCall("set_password", "testpass123")
    is_active = True


class BookingFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating Booking instances.

    Defaults to a one hour session at 45/hour in a fresh conversation,
    pending and awaiting payment.
    """

    class Meta:
        model = Booking

    conversation_id = factory.LazyFunction(uuid.uuid4)
    customer = factory.SubFactory(UserFactory)
    provider = factory.SubFactory(UserFactory)
    title = "Guitar lesson"
    description = "Intro to fingerpicking"
    scheduled_start = factory.LazyFunction(lambda: timezone.now() + timedelta(days=1))
    scheduled_end = factory.LazyAttribute(lambda o: o.scheduled_start + timedelta(hours=1))
    session_length_minutes = 60
    hourly_rate = "45"
    total_amount = "45.00"
    payment_amount_cents = 4500
    payment_currency = "aud"
    status = BookingStatus.PENDING
    payment_status = PaymentStatus.REQUIRES_PAYMENT
    payment_version = 1

    class Params:
        capturable = factory.Trait(
            payment_intent_id=factory.Sequence(lambda n: f"pi_test{n:06d}"),
            payment_status=PaymentStatus.CAPTURABLE,
        )
        captured = factory.Trait(
            status=BookingStatus.ACCEPTED,
            payment_intent_id=factory.Sequence(lambda n: f"pi_test{n:06d}"),
            payment_status=PaymentStatus.CAPTURED,
        )


class BookingPaymentEventFactory(factory.django.DjangoModelFactory):
    """Factory for ledger rows."""

    class Meta:
        model = BookingPaymentEvent

    booking = factory.SubFactory(BookingFactory)
    stripe_event_id = factory.Sequence(lambda n: f"evt_test{n:06d}")
    event_type = "checkout.session.completed"
    payload = factory.LazyAttribute(
        lambda o: {"id": o.stripe_event_id, "type": o.event_type}
    )
