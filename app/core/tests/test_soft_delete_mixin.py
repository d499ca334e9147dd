"""
Tests for SoftDeleteMixin in core/model_mixins.py.

This module tests:
- soft_delete() sets is_deleted and deleted_at
- soft_delete() is one-way and idempotent
- Soft-deleted rows stay visible to the default manager

Message is the concrete model used for these tests.
"""

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone

import pytest
from freezegun import freeze_time

from chat.models import Message
from chat.tests.factories import MessageFactory

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def message(db):
    return MessageFactory(body="soft delete me")


# =============================================================================
# soft_delete() Tests
# =============================================================================


class TestSoftDelete:
    """Tests for the soft_delete() method."""

    def test_soft_delete_sets_is_deleted_true(self, message):
        assert message.is_deleted is False

        message.soft_delete()

        assert message.is_deleted is True

    def test_soft_delete_sets_deleted_at(self, message):
        assert message.deleted_at is None

        with freeze_time(T0):
            message.soft_delete()

        assert message.deleted_at == T0

    def test_soft_delete_persists_to_database(self, message):
        message.soft_delete()

        fresh = Message.objects.get(pk=message.pk)
        assert fresh.is_deleted is True
        assert fresh.deleted_at is not None

    def test_soft_delete_returns_whether_it_changed(self, message):
        assert message.soft_delete() is True
        assert message.soft_delete() is False

    def test_soft_delete_is_idempotent(self, message):
        with freeze_time(T0):
            message.soft_delete()
        with freeze_time(T0 + timedelta(days=1)):
            message.soft_delete()

        message.refresh_from_db()
        assert message.deleted_at == T0

    def test_soft_delete_keeps_row_in_default_manager(self, message):
        message.soft_delete()

        assert Message.objects.filter(pk=message.pk).exists()

    def test_soft_delete_keeps_created_at(self, message):
        created_at = message.created_at

        message.soft_delete()
        message.refresh_from_db()

        assert message.created_at == created_at
