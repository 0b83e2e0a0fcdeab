"""
Custom Exceptions for the Hostel Allocation Engine

This module defines the typed errors raised by the allocation core. Every
error carries a stable error code, a human-readable message, structured
details and the HTTP status the API layer maps it to.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Standard error codes for the application"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    ACCESS_DENIED = "ACCESS_DENIED"
    DATABASE_ERROR = "DATABASE_ERROR"

    # Window errors
    WINDOW_CLOSED = "WINDOW_CLOSED"
    ALREADY_EXPIRED = "ALREADY_EXPIRED"

    # Application errors
    INELIGIBLE = "INELIGIBLE"
    DUPLICATE_APPLICATION = "DUPLICATE_APPLICATION"
    INVALID_STATE = "INVALID_STATE"
    WAITLIST_FULL = "WAITLIST_FULL"

    # Capacity errors
    CAPACITY_EXHAUSTED = "CAPACITY_EXHAUSTED"
    INVALID_BED_STATE = "INVALID_BED_STATE"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling across the application with
    structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


# ========================================
# General Application Exceptions
# ========================================

class ValidationError(BaseAppException):
    """Exception raised when data validation fails"""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, List[str]]] = None,
    ):
        details = {"field_errors": field_errors} if field_errors else {}
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details, 422)


class ResourceNotFoundError(BaseAppException):
    """Exception raised when a requested resource is not found"""

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None
    ):
        if not message:
            message = f"{resource_type} not found"
            if resource_id:
                message += f" (ID: {resource_id})"

        details = {
            "resource_type": resource_type,
            "resource_id": resource_id
        }
        super().__init__(message, ErrorCode.RESOURCE_NOT_FOUND, details, 404)


class AccessDeniedError(BaseAppException):
    """Raised when an actor touches an application it does not own"""

    def __init__(self, message: str = "Access denied", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.ACCESS_DENIED, details, 403)


class RepositoryError(BaseAppException):
    """Raised when the storage layer fails"""

    def __init__(self, message: str = "Database operation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.DATABASE_ERROR, details, 500)


# ========================================
# Window Exceptions
# ========================================

class WindowClosedError(BaseAppException):
    """Raised when a window is not accepting applications"""

    def __init__(self, window_id: str, reason: str, message: Optional[str] = None):
        super().__init__(
            message or f"Application window is not accepting applications ({reason})",
            ErrorCode.WINDOW_CLOSED,
            {"window_id": window_id, "reason": reason},
            409,
        )


class AlreadyExpiredError(BaseAppException):
    """Raised when publishing a window whose end date has passed"""

    def __init__(self, window_id: str, end_date: Optional[str] = None):
        super().__init__(
            "Application window has already expired",
            ErrorCode.ALREADY_EXPIRED,
            {"window_id": window_id, "end_date": end_date},
            409,
        )


# ========================================
# Application Exceptions
# ========================================

class IneligibleError(BaseAppException):
    """Raised when a student fails one or more eligibility criteria"""

    def __init__(self, reasons: List[str], messages: Optional[List[str]] = None):
        self.reasons = list(reasons)
        super().__init__(
            "Student is not eligible for this application window",
            ErrorCode.INELIGIBLE,
            {"reasons": self.reasons, "messages": list(messages or [])},
            422,
        )


class DuplicateApplicationError(BaseAppException):
    """Raised when a student already holds an active application in a window"""

    def __init__(self, window_id: str, student_id: str, existing_id: Optional[str] = None):
        super().__init__(
            "Student already has an active application in this window",
            ErrorCode.DUPLICATE_APPLICATION,
            {"window_id": window_id, "student_id": student_id, "existing_application_id": existing_id},
            409,
        )


class InvalidStateError(BaseAppException):
    """Raised when an illegal state transition is attempted"""

    def __init__(
        self,
        message: str,
        current_state: Optional[str] = None,
        target_state: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        payload = {"current_state": current_state, "target_state": target_state}
        if details:
            payload.update(details)
        super().__init__(message, ErrorCode.INVALID_STATE, payload, 409)


class WaitlistFullError(BaseAppException):
    """Raised when capacity is exhausted and no waitlist slot is available"""

    def __init__(self, window_id: str, waitlist_capacity: int, allow_waitlist: bool):
        super().__init__(
            "No bed is available and the window waitlist cannot take this application; reject it explicitly",
            ErrorCode.WAITLIST_FULL,
            {
                "window_id": window_id,
                "waitlist_capacity": waitlist_capacity,
                "allow_waitlist": allow_waitlist,
            },
            409,
        )


# ========================================
# Capacity Exceptions
# ========================================

class CapacityExhaustedError(BaseAppException):
    """Raised when no bed matching the request can be reserved"""

    def __init__(self, message: str = "No matching bed is available", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.CAPACITY_EXHAUSTED, details, 409)


class InvalidBedStateError(BaseAppException):
    """Raised when a bed is not in the state an operation requires"""

    def __init__(self, bed_id: str, current_state: Optional[str], expected: Optional[List[str]] = None,
                 message: Optional[str] = None):
        super().__init__(
            message or f"Bed {bed_id} is in state '{current_state}'",
            ErrorCode.INVALID_BED_STATE,
            {"bed_id": bed_id, "current_state": current_state, "expected_states": expected or []},
            409,
        )


__all__ = [
    "ErrorCode",
    "BaseAppException",
    "ValidationError",
    "ResourceNotFoundError",
    "AccessDeniedError",
    "RepositoryError",
    "WindowClosedError",
    "AlreadyExpiredError",
    "IneligibleError",
    "DuplicateApplicationError",
    "InvalidStateError",
    "WaitlistFullError",
    "CapacityExhaustedError",
    "InvalidBedStateError",
]
