"""
Tests for TypingService and the typing cleanup task.

Expiry is evaluated when reading, so these tests move the clock with
freezegun instead of sleeping.
"""

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone

from freezegun import freeze_time

from chat.constants import TYPING_CONFIG
from chat.models import TypingIndicator
from chat.services import TypingService
from chat.tasks import purge_stale_typing_indicators
from chat.tests.factories import TypingIndicatorFactory
from users.tests.factories import UserFactory

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=dt_timezone.utc)
EXPIRY = timedelta(milliseconds=TYPING_CONFIG.EXPIRY_MS)


# =============================================================================
# TestSetTyping
# =============================================================================


class TestSetTyping:
    """Tests for TypingService.set_typing()."""

    def test_member_becomes_typer(self, direct_conversation, alice, bob):
        result = TypingService.set_typing(direct_conversation.id, alice)

        assert result.success
        assert TypingService.list_active_typers(direct_conversation.id, bob) == ["Alice"]

    def test_repeated_calls_refresh_single_row(self, direct_conversation, alice):
        with freeze_time(T0):
            TypingService.set_typing(direct_conversation.id, alice)
        with freeze_time(T0 + timedelta(milliseconds=500)):
            TypingService.set_typing(direct_conversation.id, alice)

        indicator = TypingIndicator.objects.get(conversation=direct_conversation, user=alice)
        assert indicator.updated_at == T0 + timedelta(milliseconds=500)

    def test_non_member_is_rejected(self, direct_conversation, outsider):
        result = TypingService.set_typing(direct_conversation.id, outsider)

        assert result.error_code == "NOT_A_MEMBER"
        assert not TypingIndicator.objects.exists()


# =============================================================================
# TestListActiveTypers
# =============================================================================


class TestListActiveTypers:
    """Tests for TypingService.list_active_typers()."""

    def test_viewer_never_sees_themselves(self, direct_conversation, alice):
        TypingService.set_typing(direct_conversation.id, alice)

        assert TypingService.list_active_typers(direct_conversation.id, alice) == []

    def test_active_just_before_expiry(self, direct_conversation, alice, bob):
        with freeze_time(T0):
            TypingService.set_typing(direct_conversation.id, alice)

        with freeze_time(T0 + EXPIRY - timedelta(milliseconds=1)):
            assert TypingService.list_active_typers(direct_conversation.id, bob) == ["Alice"]

    def test_expired_at_exactly_expiry(self, direct_conversation, alice, bob):
        with freeze_time(T0):
            TypingService.set_typing(direct_conversation.id, alice)

        with freeze_time(T0 + EXPIRY):
            assert TypingService.list_active_typers(direct_conversation.id, bob) == []

    def test_lists_several_typers_oldest_first(self, group_conversation, alice, bob, carol):
        with freeze_time(T0):
            TypingService.set_typing(group_conversation.id, bob)
        with freeze_time(T0 + timedelta(milliseconds=300)):
            TypingService.set_typing(group_conversation.id, carol)

        with freeze_time(T0 + timedelta(milliseconds=600)):
            assert TypingService.list_active_typers(group_conversation.id, alice) == [
                "Bob",
                "Carol",
            ]

    def test_nameless_typer_is_someone(self, direct_conversation, alice):
        nameless = UserFactory(name="")
        TypingIndicatorFactory(conversation=direct_conversation, user=nameless)

        assert TypingService.list_active_typers(direct_conversation.id, alice) == [
            TYPING_CONFIG.UNKNOWN_TYPER_NAME
        ]

    def test_other_conversations_are_separate(
        self, direct_conversation, group_conversation, alice, carol
    ):
        TypingService.set_typing(group_conversation.id, alice)

        assert TypingService.list_active_typers(direct_conversation.id, carol) == []


# =============================================================================
# TestNextExpiry
# =============================================================================


class TestNextExpiry:
    """Tests for TypingService.next_expiry()."""

    def test_none_when_nobody_is_typing(self, direct_conversation, alice):
        assert TypingService.next_expiry(direct_conversation.id, alice) is None

    def test_oldest_visible_indicator_expires_first(self, group_conversation, alice, bob, carol):
        with freeze_time(T0):
            TypingService.set_typing(group_conversation.id, bob)
        with freeze_time(T0 + timedelta(milliseconds=800)):
            TypingService.set_typing(group_conversation.id, carol)

            assert TypingService.next_expiry(group_conversation.id, alice) == T0 + EXPIRY

    def test_ignores_viewer_and_expired_rows(self, group_conversation, alice, bob, carol):
        with freeze_time(T0):
            TypingService.set_typing(group_conversation.id, bob)
        with freeze_time(T0 + EXPIRY):
            TypingService.set_typing(group_conversation.id, alice)
        with freeze_time(T0 + EXPIRY + timedelta(milliseconds=100)):
            TypingService.set_typing(group_conversation.id, carol)

            # Bob's row has expired and Alice is the viewer
            assert TypingService.next_expiry(group_conversation.id, alice) == (
                T0 + EXPIRY + timedelta(milliseconds=100) + EXPIRY
            )


# =============================================================================
# TestClearTyping
# =============================================================================


class TestClearTyping:
    """Tests for TypingService.clear_typing()."""

    def test_removes_indicator(self, direct_conversation, alice, bob):
        TypingService.set_typing(direct_conversation.id, alice)

        result = TypingService.clear_typing(direct_conversation.id, alice)

        assert result.data is True
        assert TypingService.list_active_typers(direct_conversation.id, bob) == []

    def test_clearing_when_not_typing_is_a_no_op(
        self, direct_conversation, alice, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks() as callbacks:
            result = TypingService.clear_typing(direct_conversation.id, alice)

        assert result.success
        assert result.data is False
        assert callbacks == []


# =============================================================================
# TestPurgeStale
# =============================================================================


class TestPurgeStale:
    """Tests for TypingService.purge_stale() and its Celery task."""

    def test_deletes_only_expired_rows(self, group_conversation, alice, bob):
        with freeze_time(T0):
            TypingService.set_typing(group_conversation.id, alice)
        with freeze_time(T0 + timedelta(seconds=2)):
            TypingService.set_typing(group_conversation.id, bob)

        with freeze_time(T0 + timedelta(seconds=3)):
            deleted = TypingService.purge_stale()

        assert deleted == 1
        assert list(TypingIndicator.objects.values_list("user_id", flat=True)) == [bob.id]

    def test_task_returns_deleted_count(self, direct_conversation, alice):
        with freeze_time(T0):
            TypingService.set_typing(direct_conversation.id, alice)

        with freeze_time(T0 + timedelta(minutes=1)):
            assert purge_stale_typing_indicators() == 1

        assert not TypingIndicator.objects.exists()
