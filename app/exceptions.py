# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Errors should tell HOW to fix, not just WHAT failed.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class SamveraException(Exception):
    """
    Base exception for the Samvera API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "SAMVERA_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Tenancy & Authorization Exceptions
# =============================================================================

class OrgNotFoundError(SamveraException):
    """Raised when the caller's organization can't be resolved."""

    def __init__(self, user_id: str | None = None):
        super().__init__(
            message="Organization not found for user",
            code="ORG_NOT_FOUND",
            status_code=400,
            suggestion="Ask an administrator to attach your account to an organization",
            details={"user_id": user_id} if user_id else None,
        )


class InsufficientRoleError(SamveraException):
    """Raised when the caller holds none of the roles a route requires."""

    def __init__(self, required: list[str], actual: list[str]):
        super().__init__(
            message=f"One of roles [{', '.join(required)}] required",
            code="INSUFFICIENT_ROLE",
            status_code=403,
            suggestion="Switch to an account with the required role",
            details={"required_roles": required, "user_roles": actual},
        )


class OrgMismatchError(SamveraException):
    """Raised when a record belongs to a different organization."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"Unauthorized: {resource} belongs to a different organization",
            code="ORG_MISMATCH",
            status_code=403,
            details={"resource": resource, "id": resource_id},
        )


class NotAuthorError(SamveraException):
    """Raised when only the author (or an admin) may change a record."""

    def __init__(self, resource: str, resource_id: str, action: str = "edit"):
        super().__init__(
            message=f"Unauthorized: You can only {action} your own {resource}s",
            code="NOT_AUTHOR",
            status_code=403,
            details={"resource": resource, "id": resource_id},
        )


# =============================================================================
# Resource Exceptions
# =============================================================================

class ResourceNotFoundError(SamveraException):
    """Raised when a record doesn't exist, is soft-deleted, or isn't visible."""

    def __init__(self, resource: str, resource_id: str | None = None):
        super().__init__(
            message=f"{resource.replace('_', ' ').capitalize()} not found",
            code=f"{resource.upper()}_NOT_FOUND",
            status_code=404,
            suggestion=f"Check that the {resource} id is correct and hasn't been deleted",
            details={"id": resource_id} if resource_id else None,
        )


class InvalidRequestError(SamveraException):
    """Raised for requests that pass schema validation but can't be served."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="INVALID_REQUEST",
            status_code=400,
            details=details,
        )


class StoryItemsError(SamveraException):
    """
    Raised when a story was saved but its items were not.

    The saved story travels in details so the client can retry the items
    against it instead of creating a duplicate.
    """

    def __init__(self, story: dict[str, Any], error: Exception | str):
        super().__init__(
            message=f"Failed to save story items: {error}",
            code="STORY_ITEMS_FAILED",
            status_code=500,
            suggestion="Retry POST /stories/{id}/items with the same items",
            details={"story": story},
        )


class DatabaseError(SamveraException):
    """
    Raised when a Supabase call fails.

    Network failures map to 503 with retryable=True so clients can retry;
    everything else is a 500.
    """

    def __init__(self, action: str, error: Exception | str, retryable: bool = False):
        if retryable:
            super().__init__(
                message="Network error. Please check your connection and try again.",
                code="DATABASE_UNAVAILABLE",
                status_code=503,
                suggestion="Retry the request in a few seconds",
                details={"action": action, "retryable": True},
            )
        else:
            super().__init__(
                message=f"Failed to {action}: {error}",
                code="DATABASE_ERROR",
                status_code=500,
                suggestion="Try again later or contact support if the issue persists",
                details={"action": action},
            )
        self.retryable = retryable

    @classmethod
    def from_exception(cls, action: str, error: Exception) -> "DatabaseError":
        """Build from a client exception, classifying network failures."""
        from lib.supabase_client import is_network_error

        return cls(action, error, retryable=is_network_error(error))


# =============================================================================
# Exception Handlers
# =============================================================================

async def samvera_exception_handler(
    request: Request,
    exc: SamveraException
) -> JSONResponse:
    """
    Convert SamveraException to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors.

    Invalid bodies and query parameters are client errors (400), reported
    with the same shape as InvalidRequestError plus the field errors.
    """
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Invalid request",
            "code": "INVALID_REQUEST",
            "errors": jsonable_encoder(exc.errors()),
        }
    )
