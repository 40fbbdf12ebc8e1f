"""
API views for bookings.

URL Structure:
    /api/v1/bookings/?conversation_id=X          GET   list caller's bookings
    /api/v1/bookings/                            POST  propose + start Checkout
    /api/v1/bookings/{id}/                       GET   detail
    /api/v1/bookings/{id}/modify/                POST  new terms + new Checkout
    /api/v1/bookings/{id}/accept/                POST  capture + accept
    /api/v1/bookings/{id}/decline/               POST  cancel/refund + decline

Responses:
    Success bodies carry "success": true. Failures are
    {"success": false, "error": "<token>"} with the HTTP status taken from
    ERROR_STATUS_CODES.

Design Decisions:
    - All business logic lives in BookingService; views only translate HTTP
    - The service is built per request through get_service(), so tests can
      patch it with a fake payment gateway
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.services import ServiceResult

from bookings.serializers import (
    BookingCreateSerializer,
    BookingModifySerializer,
    BookingResponseSerializer,
    BookingSerializer,
    CheckoutResponseSerializer,
    ConversationBookingsQuerySerializer,
    ErrorResponseSerializer,
)
from bookings.services import BookingService

# Error token -> HTTP status. Unlisted tokens map to 400.
ERROR_STATUS_CODES: dict[str, int] = {
    "forbidden": status.HTTP_403_FORBIDDEN,
    "booking_not_found": status.HTTP_404_NOT_FOUND,
    "booking_conflict": status.HTTP_409_CONFLICT,
    "invalid_booking_status": status.HTTP_409_CONFLICT,
    "payment_not_authorized_yet": status.HTTP_409_CONFLICT,
    "payment_intent_missing": status.HTTP_409_CONFLICT,
    "payment_not_capturable": status.HTTP_409_CONFLICT,
    "stripe_not_configured": status.HTTP_503_SERVICE_UNAVAILABLE,
    "checkout_session_failed": status.HTTP_502_BAD_GATEWAY,
    "payment_capture_failed": status.HTTP_502_BAD_GATEWAY,
    "payment_cancel_failed": status.HTTP_502_BAD_GATEWAY,
    "payment_refund_failed": status.HTTP_502_BAD_GATEWAY,
    "invalid_amount": status.HTTP_400_BAD_REQUEST,
    "invalid_schedule": status.HTTP_400_BAD_REQUEST,
    "invalid_parties": status.HTTP_400_BAD_REQUEST,
    "invalid_request": status.HTTP_400_BAD_REQUEST,
}

ERROR_RESPONSES = {
    400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid input"),
    403: OpenApiResponse(response=ErrorResponseSerializer, description="Not allowed"),
    404: OpenApiResponse(response=ErrorResponseSerializer, description="Booking not found"),
    409: OpenApiResponse(response=ErrorResponseSerializer, description="Booking state conflict"),
    502: OpenApiResponse(response=ErrorResponseSerializer, description="Stripe call failed"),
    503: OpenApiResponse(response=ErrorResponseSerializer, description="Stripe not configured"),
}


def error_response(result: ServiceResult) -> Response:
    """Render a failed ServiceResult with the status for its token."""
    http_status = ERROR_STATUS_CODES.get(result.error_code, status.HTTP_400_BAD_REQUEST)
    return Response(result.to_response(), status=http_status)


def invalid_request_response(errors: dict) -> Response:
    return Response(
        {"success": False, "error": "invalid_request", "details": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


class BookingServiceMixin:
    """Provides the booking service to a view."""

    def get_service(self) -> BookingService:
        return BookingService.from_settings()


class BookingListCreateView(BookingServiceMixin, APIView):
    """
    List a conversation's bookings or propose a new one.

    GET /api/v1/bookings/?conversation_id=<uuid>
    POST /api/v1/bookings/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_conversation_bookings",
        summary="List bookings in a conversation",
        parameters=[
            OpenApiParameter(
                name="conversation_id",
                type=OpenApiTypes.UUID,
                location=OpenApiParameter.QUERY,
                description="Conversation to list bookings for",
                required=True,
            ),
        ],
        responses={200: BookingSerializer(many=True), **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    def get(self, request):
        query = ConversationBookingsQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return invalid_request_response(query.errors)

        result = self.get_service().list_conversation_bookings(
            request.user, query.validated_data["conversation_id"]
        )
        return Response(BookingSerializer(result.data, many=True).data)

    @extend_schema(
        operation_id="create_booking",
        summary="Propose a booking",
        description=(
            "Create a pending booking and a Stripe Checkout session that "
            "authorizes (but does not capture) the total amount."
        ),
        request=BookingCreateSerializer,
        responses={201: CheckoutResponseSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    def post(self, request):
        serializer = BookingCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request_response(serializer.errors)

        result = self.get_service().create_booking_request(
            request.user, serializer.to_params()
        )
        if not result.success:
            return error_response(result)

        return Response(
            {
                "success": True,
                "booking_id": str(result.data.booking_id),
                "checkout_url": result.data.checkout_url,
            },
            status=status.HTTP_201_CREATED,
        )


class BookingDetailView(BookingServiceMixin, APIView):
    """GET /api/v1/bookings/{id}/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_booking",
        summary="Get booking",
        responses={200: BookingSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    def get(self, request, booking_id):
        result = self.get_service().get_booking(request.user, booking_id)
        if not result.success:
            return error_response(result)
        return Response(BookingSerializer(result.data).data)


class BookingModifyView(BookingServiceMixin, APIView):
    """
    Change a booking's terms.

    POST /api/v1/bookings/{id}/modify/

    Starts a new payment cycle; the customer must complete the returned
    Checkout session again.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="modify_booking",
        summary="Modify booking",
        request=BookingModifySerializer,
        responses={200: CheckoutResponseSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    def post(self, request, booking_id):
        serializer = BookingModifySerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request_response(serializer.errors)

        result = self.get_service().modify_booking_request(
            request.user, booking_id, serializer.to_params()
        )
        if not result.success:
            return error_response(result)

        return Response(
            {
                "success": True,
                "booking_id": str(result.data.booking_id),
                "checkout_url": result.data.checkout_url,
            }
        )


class BookingAcceptView(BookingServiceMixin, APIView):
    """
    Accept a booking (provider only).

    POST /api/v1/bookings/{id}/accept/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="accept_booking",
        summary="Accept booking",
        description="Capture the authorized payment and mark the booking accepted.",
        request=None,
        responses={200: BookingResponseSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    def post(self, request, booking_id):
        result = self.get_service().accept_booking(request.user, booking_id)
        if not result.success:
            return error_response(result)
        return Response({"success": True, "booking": BookingSerializer(result.data).data})


class BookingDeclineView(BookingServiceMixin, APIView):
    """
    Decline a booking (either party).

    POST /api/v1/bookings/{id}/decline/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="decline_booking",
        summary="Decline booking",
        description=(
            "Release an uncaptured authorization or refund a captured payment, "
            "then mark the booking declined."
        ),
        request=None,
        responses={200: BookingResponseSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    def post(self, request, booking_id):
        result = self.get_service().decline_booking(request.user, booking_id)
        if not result.success:
            return error_response(result)
        return Response({"success": True, "booking": BookingSerializer(result.data).data})
