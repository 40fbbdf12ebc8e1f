"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error responses across the application
- Machine-readable error codes for client handling
- Detailed error information for debugging

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures
    ├── NotFoundError - Resource not found
    ├── PermissionDeniedError - Authorization failures
    └── ConflictError - State conflicts (concurrent modifications, bad transitions)

Error codes are the lowercase tokens returned to API clients
(e.g. "booking_not_found", "forbidden"), so services can pass them straight
through to ServiceResult.failure().

Usage:
    from core.exceptions import NotFoundError, PermissionDeniedError

    booking = Booking.objects.filter(id=booking_id).first()
    if booking is None:
        raise NotFoundError("Booking not found", error_code="booking_not_found")

    try:
        ...
    except BaseApplicationError as e:
        return ServiceResult.failure(e.message, error_code=e.error_code)

Note:
    These exceptions are for domain/business logic errors.
    DRF handles API-layer exceptions (serialization, authentication, etc.).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, versions, statuses)

    Example:
        try:
            booking = service.load_for_party(user, booking_id)
        except NotFoundError as e:
            logger.warning(f"Booking lookup failed: {e.error_code}")
            return ServiceResult.failure(e.message, error_code=e.error_code)
    """

    default_error_code: str = "application_error"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Returns:
            Dict with error, error_code, and details keys

        Example:
            {
                "error": "Booking not found",
                "error_code": "booking_not_found",
                "details": {"booking_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for:
    - Business rule violations (distinct parties, schedule order)
    - Field-level validation performed in the service layer

    Example:
        if customer_id == provider_id:
            raise ValidationError(
                "Customer and provider must be different users",
                error_code="invalid_parties",
            )

    Note:
        For DRF serializer validation, use DRF's built-in validation.
        Use this for service-layer validation logic.
    """

    default_error_code: str = "validation_error"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Example:
        booking = Booking.objects.filter(id=booking_id).first()
        if not booking:
            raise NotFoundError(
                f"Booking {booking_id} not found",
                error_code="booking_not_found",
                details={"booking_id": str(booking_id)},
            )
    """

    default_error_code: str = "not_found"


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when a user lacks permission for an operation.

    Use for authorization failures, such as a caller who is not a party to
    the booking or a customer trying to accept on the provider's behalf.

    Note:
        For authentication failures (missing/invalid token), DRF raises
        NotAuthenticated. Use this for authorization failures.
    """

    default_error_code: str = "forbidden"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Concurrent modification conflicts (optimistic locking failures)
    - Invalid state transitions

    Example:
        if not can_proceed(booking.accept):
            raise ConflictError(
                f"Cannot accept booking in {booking.status} status",
                error_code="invalid_booking_status",
                details={"current_status": booking.status, "action": "accept"},
            )

    Note:
        HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "conflict"
