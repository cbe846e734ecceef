"""Domain exceptions for the academy service.

Defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns. Presentation
layer maps them to HTTP responses in exception handlers.
"""

from typing import Any


class AcademyException(Exception):
    """Base exception for all academy application errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body used by the HTTP exception handler."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class BadRequestException(AcademyException):
    """Raised when input is malformed (e.g. invalid code format or UUID)."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the failure.
            field: Optional field or attribute that failed validation.
            details: Optional extra context merged into details.
        """
        merged = dict(details or {})
        if field:
            merged["field"] = field
        super().__init__(message, "BAD_REQUEST", merged)


class AuthenticationException(AcademyException):
    """Raised when the request carries no valid authenticated principal."""

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class ForbiddenException(AcademyException):
    """Raised when the caller is authenticated but the scope or data violates policy.

    Covers tenant/year ownership, enrollment and score-bound violations.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "FORBIDDEN", details)


class NotFoundException(AcademyException):
    """Raised when a referenced entity or human-facing code does not resolve."""

    def __init__(self, resource_type: str, identifier: str, message: str | None = None) -> None:
        """Initialize with resource type and the identifier that failed.

        Args:
            resource_type: Type of resource (e.g. 'student', 'course').
            identifier: The id or code that was not found.
            message: Optional override of the default message.
        """
        super().__init__(
            message or f"{resource_type} not found: {identifier}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "identifier": identifier},
        )


class ConflictException(AcademyException):
    """Raised on a uniqueness violation not absorbed by an upsert (e.g. overlapping years)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "CONFLICT", details)


class CacheUnavailableException(AcademyException):
    """Raised by a cache backend on timeout or lost connection.

    The cache-aside store treats it as a miss; it never reaches callers of the store.
    """

    def __init__(self, operation: str, key: str | None = None) -> None:
        details: dict[str, Any] = {"operation": operation}
        if key is not None:
            details["key"] = key
        super().__init__(
            f"Cache unavailable during {operation}",
            "CACHE_UNAVAILABLE",
            details,
        )
