"""
Core Application - Infrastructure & Base Classes

This app contains infrastructure code shared by the domain apps:

- Generic, reusable base classes (no domain-specific logic)
- Clear extension points for domain apps
- Infrastructure concerns separated from business logic

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Input validation failures (400)
    - PermissionDeniedError: Authorization failures (403)
    - NotFoundError: Resource not found (404)
    - TransientStoreError: Database unavailable (503)

Views (import from core.views):
    - health_check: Liveness/readiness probe
    - api_exception_handler: DRF exception handler for the error taxonomy

Usage:
    from core.models import BaseModel
    from core.model_mixins import SoftDeleteMixin
    from core.services import BaseService, ServiceResult
    from core.exceptions import ValidationError, NotFoundError

Note:
    - Business logic should NOT go here. Extend core classes in your domain apps.
    - Django models and model mixins are NOT imported here to avoid AppRegistryNotReady
      errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

# Exceptions (no Django dependencies)
from .exceptions import (
    BaseApplicationError,
    NotFoundError,
    PermissionDeniedError,
    TransientStoreError,
    ValidationError,
)

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "TransientStoreError",
]
