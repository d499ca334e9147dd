"""
Tests for ServiceResult and BaseService in core/services.py.

This module tests:
- success()/failure() constructors and truthiness
- unwrap() mapping error codes to application exceptions
- BaseService.atomic() translating storage outages
"""

import pytest
from django.db import OperationalError

from core.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    TransientStoreError,
    ValidationError,
)
from core.services import BaseService, ServiceResult


class ExampleService(BaseService):
    pass


# =============================================================================
# ServiceResult
# =============================================================================


class TestServiceResult:
    def test_success_carries_data(self):
        result = ServiceResult.success({"id": 1})

        assert result.success is True
        assert result.data == {"id": 1}
        assert result.error is None
        assert bool(result) is True

    def test_failure_carries_error_code(self):
        result = ServiceResult.failure("Message not found", error_code="MESSAGE_NOT_FOUND")

        assert result.success is False
        assert result.data is None
        assert result.error == "Message not found"
        assert result.error_code == "MESSAGE_NOT_FOUND"
        assert bool(result) is False

    def test_to_response(self):
        assert ServiceResult.success(3).to_response() == {"success": True, "data": 3}
        assert ServiceResult.failure("Nope", "NOPE").to_response() == {
            "success": False,
            "error": "Nope",
            "error_code": "NOPE",
        }


class TestUnwrap:
    def test_returns_data_on_success(self):
        assert ServiceResult.success("ok").unwrap() == "ok"

    def test_mapped_code_raises_mapped_error(self):
        result = ServiceResult.failure("Not yours", error_code="NOT_A_MEMBER")

        with pytest.raises(PermissionDeniedError) as exc_info:
            result.unwrap({"NOT_A_MEMBER": PermissionDeniedError})

        assert exc_info.value.error_code == "NOT_A_MEMBER"
        assert exc_info.value.status_code == 403

    def test_unmapped_code_raises_validation_error(self):
        result = ServiceResult.failure("Empty", error_code="EMPTY_BODY")

        with pytest.raises(ValidationError) as exc_info:
            result.unwrap({"MESSAGE_NOT_FOUND": NotFoundError})

        assert exc_info.value.error_code == "EMPTY_BODY"
        assert exc_info.value.status_code == 400

    def test_field_errors_become_details(self):
        result = ServiceResult.failure("Bad", "BAD", errors={"body": ["required"]})

        with pytest.raises(ValidationError) as exc_info:
            result.unwrap()

        assert exc_info.value.details == {"errors": {"body": ["required"]}}


# =============================================================================
# BaseService
# =============================================================================


class TestBaseService:
    def test_logger_is_named_after_service(self):
        assert ExampleService.get_logger().name == f"{__name__}.ExampleService"

    def test_atomic_translates_operational_error(self, db):
        with pytest.raises(TransientStoreError) as exc_info:
            with ExampleService.atomic():
                raise OperationalError("connection lost")

        assert exc_info.value.status_code == 503
        assert exc_info.value.details == {"service": "ExampleService"}

    def test_atomic_lets_other_errors_through(self, db):
        with pytest.raises(ValueError):
            with ExampleService.atomic():
                raise ValueError("boom")
