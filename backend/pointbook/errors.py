"""
Domain exceptions for the booking & ledger engine.

Services raise these; the API layer maps them to HTTP responses
through a single exception handler registered in main.py.
"""

from typing import Any, Dict, Optional

from fastapi import status


class DomainException(Exception):
    """Base exception for all domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationException(DomainException):
    """Malformed input: bad date, duration, amount or state transition."""

    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientPointsException(DomainException):
    """Balance check failed before any write."""

    status_code = status.HTTP_400_BAD_REQUEST


class SlotConflictException(DomainException):
    """
    Requested interval is not bookable.

    Window closed, runs past close, starts in the past or overlaps
    a confirmed reservation. Expected outcome of concurrent bookings.
    """

    status_code = status.HTTP_409_CONFLICT


class NotFoundException(DomainException):
    """Unknown reservation, profile or course."""

    status_code = status.HTTP_404_NOT_FOUND


class UnauthorizedException(DomainException):
    """Caller may not perform this operation."""

    status_code = status.HTTP_403_FORBIDDEN
