"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, business rules,
      payment gateway refusals)
    - Exceptions: Use for unexpected failures (database errors, bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class BookingService(BaseService):
        def accept_booking(self, user, booking_id) -> ServiceResult[Booking]:
            booking = Booking.objects.filter(id=booking_id).first()
            if booking is None:
                return ServiceResult.failure(
                    "Booking not found", error_code="booking_not_found"
                )
            ...
            return ServiceResult.success(booking)

    # In view
    result = service.accept_booking(request.user, booking_id)
    if result.success:
        return Response({"success": True, "booking": ...})
    return Response(result.to_response(), status=409)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

    from core.exceptions import BaseApplicationError

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions.
    Use this for expected failures (validation errors, business rule violations).

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error token for client handling

    Usage:
        # Success case
        return ServiceResult.success(booking)

        # Failure case
        return ServiceResult.failure("Booking not found", "booking_not_found")

        # Check result
        result = service.decline_booking(user, booking_id)
        if result.success:
            booking = result.data
        else:
            print(f"Error: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error token for client handling

        Returns:
            ServiceResult with success=False and error details

        Example:
            return ServiceResult.failure(
                "Payment has not been authorized yet",
                error_code="payment_not_authorized_yet",
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
        )

    @classmethod
    def from_exception(cls, exc: BaseApplicationError) -> ServiceResult[T]:
        """
        Create a failed result from an application exception.

        The exception's error_code becomes the result's error token.

        Example:
            try:
                booking = self._load_for_party(user, booking_id)
            except (NotFoundError, PermissionDeniedError) as e:
                return ServiceResult.from_exception(e)
        """
        return cls(
            success=False,
            error=exc.message,
            error_code=exc.error_code,
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert a failed result to the API error body.

        Clients branch on the stable token, so the error code is what is
        exposed under "error"; the message stays in the logs.

        Returns:
            {"success": False, "error": "<token>"}
        """
        return {"success": False, "error": self.error_code or "unknown_error"}

    def __bool__(self) -> bool:
        """
        Allow using result in boolean context.

        Example:
            result = service.accept_booking(user, booking_id)
            if result:  # Same as: if result.success
                print("Accepted!")
        """
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Usage:
        class BookingService(BaseService):
            def modify_booking_request(self, user, booking_id, params):
                with self.atomic():
                    booking = Booking.objects.select_for_update().get(id=booking_id)
                    ...

                self.get_logger().info(f"Modified booking {booking.id}")
                return ServiceResult.success(booking)

    Design Notes:
        - Services hold no request state; collaborators such as the payment
          gateway are passed to the constructor
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        All database operations within this context manager are
        wrapped in a transaction. If any operation fails, all
        changes are rolled back.

        Note:
            This is a thin wrapper around Django's transaction.atomic().
            Use it to make transaction boundaries explicit in service code.
        """
        with transaction.atomic():
            yield
