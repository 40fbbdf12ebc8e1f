"""
Webhook endpoint view for Stripe booking payment events.

The view:
1. Refuses to run when Stripe is not configured (500, Stripe retries later)
2. Verifies the webhook signature against the raw body
3. Hands the verified event to process_payment_event
4. Returns 200 for every processed or acknowledged event

Events are processed synchronously: the booking row is updated before the
response is sent, and any database error becomes a 5xx so Stripe redelivers.

Usage:
    # In urls.py
    from bookings.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import StripeAdapter
from payments.exceptions import StripeInvalidRequestError

from bookings.webhooks.handlers import process_payment_event

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive and apply Stripe webhook events.

    Security:
    - Signature verification prevents spoofed webhooks
    - CSRF exemption required for external webhooks
    - Only POST requests accepted

    Returns:
        JsonResponse with status:
        - 200: {"success": true} or {"success": true, "info": "..."}
        - 400: Missing or invalid signature
        - 500: Stripe not configured
    """
    adapter = StripeAdapter.from_settings()
    if not adapter.is_webhook_configured:
        logger.error("Stripe webhook received but Stripe is not configured")
        return JsonResponse({"error": "Stripe not configured"}, status=500)

    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    if not signature:
        logger.warning("Webhook received without Stripe-Signature header")
        return JsonResponse({"error": "Missing signature"}, status=400)

    try:
        event = adapter.construct_event(payload, signature)
    except StripeInvalidRequestError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": str(e), "stripe_code": e.stripe_code},
        )
        return JsonResponse({"error": f"Webhook Error: {e.message}"}, status=400)

    logger.info(
        f"Received Stripe webhook: {event.get('type')}",
        extra={"stripe_event_id": event.get("id"), "event_type": event.get("type")},
    )

    result = process_payment_event(event)

    body = {"success": True}
    if result.data:
        body["info"] = result.data
    return JsonResponse(body, status=200)
