"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error responses across the REST API and WebSocket consumers
- Machine-readable error codes for client handling
- A fixed mapping from error category to HTTP status

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Rejected input (empty body, unknown emoji, blank group name)
    ├── PermissionDeniedError - Caller may not act on the target (non-sender delete)
    ├── NotFoundError - Referenced conversation, message or user does not exist
    └── TransientStoreError - Database unavailable or timed out

Usage:
    from core.exceptions import PermissionDeniedError, ValidationError

    # Raise with message only
    raise ValidationError("Message body cannot be empty")

    # Raise with error code for client handling
    raise PermissionDeniedError(
        "You can only delete your own messages",
        error_code="PERMISSION_DENIED",
    )

    # Convert to dict for API response
    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.status_code)

Note:
    Services return ServiceResult for expected failures; these exceptions
    are raised at the view boundary (ServiceResult.unwrap) and by
    BaseService.atomic for storage outages. The DRF exception handler in
    core.views renders them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Provides a consistent interface for error handling across the application.
    All custom exceptions should inherit from this class.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, metadata, etc.)
        status_code: HTTP status used when rendered by the API

    Example:
        try:
            message = MessageService.send(conversation_id, user, body).unwrap()
        except ValidationError as e:
            logger.warning(f"Rejected message: {e.error_code}")
            return Response(e.to_dict(), status=e.status_code)
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 400

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
                "error": "Message not found",
                "error_code": "MESSAGE_NOT_FOUND",
                "details": {"message_id": 123}
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
    - Empty or whitespace-only message bodies
    - Emoji outside the allowed reaction set
    - Blank group names
    - Direct conversations with yourself

    Example:
        raise ValidationError("Invalid emoji", error_code="INVALID_EMOJI")

    Note:
        For DRF serializer validation, use DRF's built-in validation.
        Use this for service-layer validation logic.
    """

    default_error_code: str = "VALIDATION_ERROR"
    status_code: int = 400


class NotFoundError(BaseApplicationError):
    """
    Raised when a mutation references a record that does not exist.

    Example:
        raise NotFoundError(
            f"Message {message_id} not found",
            error_code="MESSAGE_NOT_FOUND",
            details={"message_id": message_id},
        )

    Note:
        Reads return None or empty results for missing records.
        Use NotFoundError where the caller asked to change something.
    """

    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the caller may not act on the target.

    Use for:
    - Deleting a message someone else sent
    - Acting in a conversation you are not a member of

    Example:
        if message.sender_id != requester.id:
            raise PermissionDeniedError(
                "You can only delete your own messages",
                error_code="PERMISSION_DENIED",
            )

    Note:
        For authentication failures (missing/invalid token), use DRF's
        AuthenticationFailed. Use this for authorization failures.
    """

    default_error_code: str = "PERMISSION_DENIED"
    status_code: int = 403


class TransientStoreError(BaseApplicationError):
    """
    Raised when the database is unavailable or times out.

    BaseService.atomic converts OperationalError and InterfaceError into
    this exception. Nothing in the service layer retries; the client is
    expected to offer a manual retry with the same payload.

    Example:
        raise TransientStoreError(
            "The data store is temporarily unavailable",
            details={"service": "MessageService"},
        )
    """

    default_error_code: str = "STORE_UNAVAILABLE"
    status_code: int = 503
