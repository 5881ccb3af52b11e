"""
coursecore/errors.py
Centralized error taxonomy

CORE PRINCIPLES:
- Every failure the core raises is one of a small, closed set of outcomes
- Errors are machine-readable (stable codes) and user-safe (no stack traces)
- "Missing" and "soft-deleted" are the same outcome: NOT_FOUND

TAXONOMY:
- NotFound        entity missing or soft-deleted
- StaleReference  curriculum entry resolves to nothing (logged, skippable)
- StoreTransient  network/store unavailability (retried by the executor)
- StoreContention local lock contention between client sessions (never retried)
- InvalidState    caller error such as an item index outside the curriculum

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}
"""

import logging
from typing import Optional, Dict, Any
from fastapi import status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_REFERENCE = "INVALID_REFERENCE"
    DUPLICATE_REFERENCE = "DUPLICATE_REFERENCE"
    TIER_MISMATCH = "TIER_MISMATCH"

    NOT_FOUND = "NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    PROGRAM_NOT_FOUND = "PROGRAM_NOT_FOUND"
    COURSE_NOT_FOUND = "COURSE_NOT_FOUND"
    LESSON_NOT_FOUND = "LESSON_NOT_FOUND"
    QUIZ_NOT_FOUND = "QUIZ_NOT_FOUND"
    QUESTION_NOT_FOUND = "QUESTION_NOT_FOUND"

    INVALID_STATE = "INVALID_STATE"
    ITEM_INDEX_OUT_OF_RANGE = "ITEM_INDEX_OUT_OF_RANGE"
    STALE_REFERENCE = "STALE_REFERENCE"

    STORE_CONTENTION = "STORE_CONTENTION"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class APIError(Exception):
    """Base exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(status_code=self.status_code, content=self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result


class BadRequestError(APIError):
    """400 Bad Request - Invalid input"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Bad Request",
            message=message,
            code=code,
            details=details
        )


class NotFoundError(APIError):
    """404 Not Found - Resource does not exist or is soft-deleted"""
    def __init__(self, resource: str, identifier: Any = None, code: str = ErrorCode.NOT_FOUND):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Not Found",
            message=message,
            code=code
        )


class InvalidStateError(APIError):
    """400 Bad Request - Operation is not valid for the current state"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_STATE, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Invalid State",
            message=message,
            code=code,
            details=details
        )


class StaleReferenceError(APIError):
    """409 Conflict - A curriculum reference no longer resolves to a live item"""
    def __init__(self, reference: str, course_id: Optional[str] = None):
        self.reference = reference
        self.course_id = course_id
        details = {"reference": reference}
        if course_id:
            details["course_id"] = course_id
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error="Stale Reference",
            message=f"Curriculum reference '{reference}' does not resolve to a live item",
            code=ErrorCode.STALE_REFERENCE,
            details=details
        )


class StoreContentionError(APIError):
    """409 Conflict - Store rejected the operation because another client session holds it"""
    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error="Store Contention",
            message=(
                f"Store persistence error: {message}. "
                "Another session is holding the store; close other sessions and try again."
            ),
            code=ErrorCode.STORE_CONTENTION,
            details={"operation": operation} if operation else None
        )


class StoreTransientError(APIError):
    """503 Service Unavailable - Store unreachable after the retry budget"""
    def __init__(self, message: str = "The content store is temporarily unavailable", operation: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error="Service Unavailable",
            message=message,
            code=ErrorCode.STORE_UNAVAILABLE,
            details={"operation": operation} if operation else None
        )


# Errors describing the caller's request rather than the store; never retried.
DOMAIN_ERRORS = (BadRequestError, NotFoundError, InvalidStateError, StaleReferenceError)


def get_error_summary() -> Dict[str, Any]:
    """Return summary of error handling system for documentation"""
    return {
        "version": "1.0",
        "service": "coursecore-error-handler",
        "response_structure": {
            "success": "boolean (always false for errors)",
            "error": "string (error type)",
            "message": "string (human-readable)",
            "code": "string (machine-readable)",
            "details": "object (optional)"
        },
        "status_codes": {
            "400": "Invalid input or invalid state",
            "404": "Resource does not exist or is soft-deleted",
            "409": "Stale reference or store contention",
            "422": "Validation error (Pydantic)",
            "503": "Store unavailable after retries",
            "500": "Internal error"
        },
        "error_codes": [
            attr for attr in dir(ErrorCode)
            if not attr.startswith('_')
        ]
    }
