"""
Tests for ReactionService.

Covers:
- Toggle add / replace / remove semantics
- Allowed emoji validation
- Grouping for display (order, counts, reacted_by_me, names)
- The concurrent first-reaction race
"""

from unittest.mock import patch

import pytest

from chat.models import Reaction
from chat.services import MessageService, ReactionService
from chat.tests.factories import MessageFactory, ReactionFactory


@pytest.fixture
def message(group_conversation, alice):
    return MessageFactory(conversation=group_conversation, sender=alice, body="lunch?")


# =============================================================================
# TestToggle
# =============================================================================


class TestToggle:
    """Tests for ReactionService.toggle()."""

    def test_adds_reaction(self, message, bob):
        result = ReactionService.toggle(message.id, bob, "👍")

        assert result.success
        assert result.data.emoji == "👍"
        assert Reaction.objects.filter(message=message, user=bob).count() == 1

    def test_same_emoji_removes_reaction(self, message, bob):
        ReactionService.toggle(message.id, bob, "👍")

        result = ReactionService.toggle(message.id, bob, "👍")

        assert result.success
        assert result.data is None
        assert not Reaction.objects.filter(message=message, user=bob).exists()

    def test_different_emoji_replaces_reaction(self, message, bob):
        ReactionService.toggle(message.id, bob, "👍")

        result = ReactionService.toggle(message.id, bob, "❤️")

        assert result.success
        reactions = list(Reaction.objects.filter(message=message, user=bob))
        assert [r.emoji for r in reactions] == ["❤️"]

    def test_rejects_emoji_outside_set(self, message, bob):
        result = ReactionService.toggle(message.id, bob, "🔥")

        assert result.error_code == "INVALID_EMOJI"
        assert not Reaction.objects.exists()

    def test_missing_message(self, bob):
        assert ReactionService.toggle(999999, bob, "👍").error_code == "MESSAGE_NOT_FOUND"

    def test_deleted_message_can_still_be_reacted_to(self, message, alice, bob):
        MessageService.soft_delete(message.id, alice)

        assert ReactionService.toggle(message.id, bob, "😢").success

    def test_users_react_independently(self, message, alice, bob, carol):
        ReactionService.toggle(message.id, alice, "😂")
        ReactionService.toggle(message.id, bob, "😂")
        ReactionService.toggle(message.id, carol, "😮")

        assert Reaction.objects.filter(message=message).count() == 3

    def test_concurrent_first_reaction_updates_winner(self, message, bob):
        """
        Another request inserted bob's reaction after our lookup.

        The insert hits the unique constraint; the existing row takes
        the requested emoji instead of failing.
        """
        winner = ReactionFactory(message=message, user=bob, emoji="👍")

        with patch.object(
            ReactionService,
            "_current_reaction",
            side_effect=[None, Reaction.objects.get(pk=winner.pk)],
        ):
            result = ReactionService.toggle(message.id, bob, "❤️")

        assert result.success
        winner.refresh_from_db()
        assert winner.emoji == "❤️"
        assert Reaction.objects.filter(message=message, user=bob).count() == 1

    def test_publishes_message_topic(
        self, message, bob, django_capture_on_commit_callbacks
    ):
        with patch("chat.events._group_send") as group_send:
            with django_capture_on_commit_callbacks(execute=True):
                ReactionService.toggle(message.id, bob, "👍")

        group_send.assert_called_once_with(
            f"conversation_{message.conversation_id}",
            {
                "type": "conversation.changed",
                "conversation_id": message.conversation_id,
                "topics": ["messages"],
            },
        )


# =============================================================================
# TestGroupReactions
# =============================================================================


class TestGroupReactions:
    """Tests for ReactionService.group_reactions()."""

    def test_groups_in_fixed_emoji_order(self, message, alice, bob, carol):
        ReactionFactory(message=message, user=alice, emoji="😢")
        ReactionFactory(message=message, user=bob, emoji="👍")
        ReactionFactory(message=message, user=carol, emoji="😢")

        groups = ReactionService.group_reactions(message.reactions.all(), viewer=alice)

        assert [g.emoji for g in groups] == ["👍", "😢"]
        assert [g.count for g in groups] == [1, 2]

    def test_reacted_by_me_is_per_viewer(self, message, alice, bob):
        ReactionFactory(message=message, user=alice, emoji="❤️")

        as_alice = ReactionService.group_reactions(message.reactions.all(), viewer=alice)
        as_bob = ReactionService.group_reactions(message.reactions.all(), viewer=bob)

        assert as_alice[0].reacted_by_me is True
        assert as_bob[0].reacted_by_me is False

    def test_user_names_listed(self, message, alice, bob):
        ReactionFactory(message=message, user=alice, emoji="👍")
        ReactionFactory(message=message, user=bob, emoji="👍")

        group = ReactionService.group_reactions(message.reactions.all())[0]

        assert group.user_names == ["Alice", "Bob"]
        assert group.reacted_by_me is False

    def test_no_reactions_no_groups(self, message):
        assert ReactionService.group_reactions(message.reactions.all()) == []

    def test_listed_messages_carry_groups(self, message, alice, bob):
        ReactionService.toggle(message.id, bob, "😮")

        listed = MessageService.list_for_conversation(message.conversation_id, viewer=bob)[0]

        assert len(listed.reactions) == 1
        assert listed.reactions[0].emoji == "😮"
        assert listed.reactions[0].reacted_by_me is True
