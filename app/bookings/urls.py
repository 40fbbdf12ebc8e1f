"""
URL configuration for the bookings app.

All routes are prefixed with /api/v1/bookings/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("bookings/", include("bookings.urls")),
    ]
"""

from django.urls import path

from bookings.views import (
    BookingAcceptView,
    BookingDeclineView,
    BookingDetailView,
    BookingListCreateView,
    BookingModifyView,
)
from bookings.webhooks.views import stripe_webhook

app_name = "bookings"

urlpatterns = [
    path("", BookingListCreateView.as_view(), name="booking-list"),
    path("<uuid:booking_id>/", BookingDetailView.as_view(), name="booking-detail"),
    path(
        "<uuid:booking_id>/modify/",
        BookingModifyView.as_view(),
        name="booking-modify",
    ),
    path(
        "<uuid:booking_id>/accept/",
        BookingAcceptView.as_view(),
        name="booking-accept",
    ),
    path(
        "<uuid:booking_id>/decline/",
        BookingDeclineView.as_view(),
        name="booking-decline",
    ),
    # Webhook endpoints
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
]
