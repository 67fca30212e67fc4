# backend/classbook/core/exceptions.py
"""
Domain-specific exceptions for the class booking backend.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

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

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when input is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested class or booking does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class CapacityExceededException(ConflictException):
    """Raised when a class cannot take the requested number of participants."""

    def __init__(
        self,
        class_id: str,
        requested: int,
        available: int,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(
            message=message or "Not enough spots available",
            code="CAPACITY_EXCEEDED",
            details={
                "class_id": class_id,
                "requested": requested,
                "available_spots": max(available, 0),
            },
        )


class PolicyViolationException(DomainException):
    """Raised when a business policy forbids the requested transition."""

    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamPaymentException(DomainException):
    """Raised when the payment gateway fails or a payment did not succeed."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, code=code or "PAYMENT_ERROR", details=details)
        if status_code is not None:
            self.status_code = status_code


class PaymentNotCompletedException(UpstreamPaymentException):
    """Raised when the authorization exists but has not succeeded."""

    def __init__(self, payment_intent_id: str, payment_status: str) -> None:
        super().__init__(
            "Payment not completed",
            code="PAYMENT_NOT_COMPLETED",
            details={"payment_intent_id": payment_intent_id, "status": payment_status},
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class UnauthorizedException(DomainException):
    """Raised when the admin session is missing or invalid."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
