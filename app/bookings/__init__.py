"""
Bookings app: paid sessions negotiated in chat.

A booking is proposed by either party of a conversation, authorized through
a Stripe Checkout session with manual capture, and then accepted (capture)
or declined (cancel or refund) by the provider. Stripe webhooks keep the
payment status in step with Stripe.

Usage:
    from bookings.services import BookingService

    service = BookingService.from_settings()
    result = service.accept_booking(request.user, booking_id)
"""
