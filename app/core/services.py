"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, business rules)
    - Exceptions: Use for unexpected failures (storage outages, bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class UserDirectoryService(BaseService):
        @classmethod
        def upsert_user(cls, external_auth_id: str, name: str) -> ServiceResult[User]:
            if not external_auth_id:
                return ServiceResult.failure(
                    "External auth id is required",
                    error_code="EXTERNAL_ID_REQUIRED",
                )

            with cls.atomic():
                user, _ = User.objects.update_or_create(
                    external_auth_id=external_auth_id,
                    defaults={"name": name},
                )

            cls.get_logger().info(f"Upserted user {user.id}")
            return ServiceResult.success(user)

    # In view
    result = UserDirectoryService.upsert_user(external_auth_id, name)
    user = result.unwrap()  # Raises core.exceptions.ValidationError on failure

Related:
    - core.exceptions: Error taxonomy raised by unwrap() and atomic()
    - core.views.api_exception_handler: Renders raised errors for DRF
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import InterfaceError, OperationalError, transaction

from core.exceptions import TransientStoreError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Generator, Mapping
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
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures

    Usage:
        # Success case
        message = Message.objects.create(conversation=conversation, body=body)
        return ServiceResult.success(message)

        # Failure case
        return ServiceResult.failure("Message body cannot be empty", "EMPTY_BODY")

        # Check result
        result = MessageService.send(conversation_id, sender, body)
        if result.success:
            message = result.data
        else:
            print(f"Error: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

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
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)

        Returns:
            ServiceResult with success=False and error details

        Example:
            return ServiceResult.failure("Message not found", "MESSAGE_NOT_FOUND")
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Returns:
            Dict with success status and data or error details
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def unwrap(
        self,
        error_classes: Mapping[str, type[BaseApplicationError]] | None = None,
    ) -> T | None:
        """
        Return the data, or raise the matching application error.

        Lets views hand expected failures to the DRF exception handler
        instead of building error responses by hand.

        Args:
            error_classes: Maps error codes to exception classes. Codes
                that are not listed raise ValidationError.

        Returns:
            The result data when successful

        Raises:
            BaseApplicationError: Subclass chosen from error_classes

        Example:
            message = MessageService.send(conversation_id, user, body).unwrap(
                {"NOT_A_MEMBER": PermissionDeniedError}
            )
        """
        if self.success:
            return self.data

        error_class = (error_classes or {}).get(self.error_code or "", ValidationError)
        details = {"errors": self.errors} if self.errors else None
        raise error_class(
            self.error or "Request failed",
            error_code=self.error_code,
            details=details,
        )

    def __bool__(self) -> bool:
        """
        Allow using result in boolean context.

        Example:
            result = ReactionService.toggle(message_id, user, "👍")
            if result:  # Same as: if result.success
                print("Toggled!")
        """
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Usage:
        class ConversationService(BaseService):
            @classmethod
            def create_group(cls, name: str, creator: User) -> ServiceResult[Conversation]:
                with cls.atomic():
                    conversation = Conversation.objects.create(is_group=True, name=name)
                    Membership.objects.create(conversation=conversation, user=creator)

                cls.get_logger().info(f"Created group {conversation.id}")
                return ServiceResult.success(conversation)

    Design Notes:
        - Use @classmethod (no instance state)
        - Services should be stateless
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.

        Returns:
            Logger instance for this service
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        All database operations within this context manager are
        wrapped in a transaction. If any operation fails, all
        changes are rolled back. Nested use creates a savepoint, so
        a caller can recover from an IntegrityError raised inside
        without poisoning an outer transaction.

        Storage outages (connection lost, timeouts) are re-raised as
        TransientStoreError. No retry is attempted here.

        Yields:
            None

        Raises:
            TransientStoreError: The database was unavailable

        Example:
            with cls.atomic():
                conversation = Conversation.objects.create(is_group=False)
                Membership.objects.create(conversation=conversation, user=user)
                # If the membership insert fails, the conversation is rolled back
        """
        try:
            with transaction.atomic():
                yield
        except (OperationalError, InterfaceError) as exc:
            cls.get_logger().error(f"Database unavailable: {exc}", exc_info=True)
            raise TransientStoreError(
                "The data store is temporarily unavailable",
                details={"service": cls.__name__},
            ) from exc
