"""
Chat system service layer.

This module provides the business logic for the chat system, encapsulating
all operations on conversations, messages, reactions and typing indicators.

Services:
    ConversationService: Direct/group creation, sidebar listing, read cursors
    MessageService: Send, list and soft delete messages
    ReactionService: Single-reaction toggle and grouping for display
    TypingService: Ephemeral typing indicators with read-time expiry

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - Unexpected failures raise exceptions
    - Every mutation runs in one transaction and publishes a change
      event after commit (chat.events)
    - Queries recompute derived state (unread counts, reaction groups,
      active typers) on every call; nothing derived is stored

Usage:
    from chat.services import ConversationService, MessageService

    # Open (or reuse) a direct conversation
    conversation = ConversationService.get_or_create_direct(alice, bob).data

    # Send a message
    result = MessageService.send(conversation.id, alice, "hi")

    # Bob's sidebar
    for item in ConversationService.list_for_user(bob):
        print(item.conversation.id, item.unread_count)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

from django.db import IntegrityError
from django.db.models import Max, Min
from django.utils import timezone

from core.services import BaseService, ServiceResult
from users.models import User

from chat import events
from chat.constants import MESSAGE_CONFIG, REACTION_CONFIG, TYPING_CONFIG
from chat.models import (
    Conversation,
    DirectConversationPair,
    Membership,
    Message,
    Reaction,
    TypingIndicator,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

logger = logging.getLogger(__name__)

UNKNOWN_USER_NAME = "Unknown"


# =============================================================================
# Read Models
# =============================================================================


@dataclass
class ConversationDetail:
    """A conversation with its members."""

    conversation: Conversation
    members: list[User]

    @property
    def member_count(self) -> int:
        return len(self.members)


@dataclass
class EnrichedConversation(ConversationDetail):
    """
    One row of a user's conversation list.

    Attributes:
        latest_message: Highest (created_at, id) message, deleted or not
        unread_count: Messages from others newer than the read cursor
    """

    latest_message: Message | None = None
    unread_count: int = 0

    @property
    def last_activity_at(self) -> datetime:
        if self.latest_message is not None:
            return self.latest_message.created_at
        return self.conversation.created_at


@dataclass
class ReactionGroup:
    """All reactions with one emoji on a message, as seen by a viewer."""

    emoji: str
    count: int
    reacted_by_me: bool
    user_names: list[str] = field(default_factory=list)


@dataclass
class EnrichedMessage:
    """
    A message ready for display.

    body is the display body: the placeholder for deleted messages.
    """

    id: int
    conversation_id: int
    sender: User
    body: str
    is_deleted: bool
    created_at: datetime
    reactions: list[ReactionGroup] = field(default_factory=list)


# =============================================================================
# ConversationService
# =============================================================================


class ConversationService(BaseService):
    """
    Service for conversation lifecycle and sidebar queries.

    Methods:
        get_or_create_direct: Find or create the direct conversation for a pair
        create_group: Create a named group conversation
        list_for_user: Sidebar rows with latest message and unread count
        mark_read: Advance the caller's read cursor
        get_by_id: Conversation with members
        get_unread_count: Unread count for one membership
        is_member: Membership check
    """

    @classmethod
    def _find_direct(cls, user_lower_id: int, user_higher_id: int) -> Conversation | None:
        pair = (
            DirectConversationPair.objects.select_related("conversation")
            .filter(user_lower_id=user_lower_id, user_higher_id=user_higher_id)
            .first()
        )
        return pair.conversation if pair else None

    @classmethod
    def get_or_create_direct(
        cls,
        user_a: User,
        user_b: User,
    ) -> ServiceResult[Conversation]:
        """
        Find or create the direct conversation between two users.

        Direct conversations are unique per user pair. Calling from either
        side, any number of times, returns the same conversation.

        Implementation:
            1. Validate users are different
            2. Canonicalize order (lower user_id first)
            3. Look up existing DirectConversationPair
            4. If not found, create conversation, pair and both memberships
               in one transaction
            5. If the pair insert loses a concurrent race, the savepoint is
               rolled back and the winner's conversation is returned

        Args:
            user_a: One participant
            user_b: The other participant

        Returns:
            ServiceResult with Conversation (existing or new)

        Error codes:
            SAME_USER: Cannot create direct conversation with yourself
        """
        if user_a.id == user_b.id:
            return ServiceResult.failure(
                "Cannot create a direct conversation with yourself",
                error_code="SAME_USER",
            )

        user_lower_id, user_higher_id = sorted((user_a.id, user_b.id))

        existing = cls._find_direct(user_lower_id, user_higher_id)
        if existing is not None:
            return ServiceResult.success(existing)

        now = timezone.now()
        try:
            with cls.atomic():
                conversation = Conversation.objects.create(is_group=False)
                DirectConversationPair.objects.create(
                    conversation=conversation,
                    user_lower_id=user_lower_id,
                    user_higher_id=user_higher_id,
                )
                Membership.objects.bulk_create(
                    [
                        Membership(conversation=conversation, user_id=user_id, last_read_at=now)
                        for user_id in (user_lower_id, user_higher_id)
                    ]
                )
        except IntegrityError:
            winner = cls._find_direct(user_lower_id, user_higher_id)
            if winner is None:
                raise
            cls.get_logger().info(
                f"Lost direct conversation race for users {user_lower_id} and "
                f"{user_higher_id}; using conversation {winner.id}"
            )
            return ServiceResult.success(winner)

        events.broadcast_inboxes([user_lower_id, user_higher_id])

        cls.get_logger().info(
            f"Created direct conversation {conversation.id} "
            f"between users {user_lower_id} and {user_higher_id}"
        )
        return ServiceResult.success(conversation)

    @classmethod
    def create_group(
        cls,
        name: str,
        creator: User,
        member_ids: Iterable[int],
    ) -> ServiceResult[Conversation]:
        """
        Create a named group conversation.

        The creator is always a member. Duplicate ids and the creator's own
        id are collapsed.

        Args:
            name: Group name (trimmed, required)
            creator: User creating the group
            member_ids: Other members

        Returns:
            ServiceResult with the new Conversation

        Error codes:
            NAME_REQUIRED: Group name is blank
            NOT_ENOUGH_MEMBERS: Fewer than two distinct members in total
            USER_NOT_FOUND: A member id does not exist
        """
        name = (name or "").strip()
        if not name:
            return ServiceResult.failure(
                "Group name is required",
                error_code="NAME_REQUIRED",
            )

        others = [uid for uid in dict.fromkeys(member_ids) if uid != creator.id]
        if len(others) < 1:
            return ServiceResult.failure(
                "A group needs at least two members",
                error_code="NOT_ENOUGH_MEMBERS",
            )

        found = set(User.objects.filter(pk__in=others).values_list("pk", flat=True))
        missing = [uid for uid in others if uid not in found]
        if missing:
            return ServiceResult.failure(
                f"Unknown users: {', '.join(str(uid) for uid in missing)}",
                error_code="USER_NOT_FOUND",
            )

        now = timezone.now()
        member_list = [creator.id, *others]
        with cls.atomic():
            conversation = Conversation.objects.create(is_group=True, name=name)
            Membership.objects.bulk_create(
                [
                    Membership(conversation=conversation, user_id=user_id, last_read_at=now)
                    for user_id in member_list
                ]
            )

        events.broadcast_inboxes(member_list)

        cls.get_logger().info(
            f"Created group conversation {conversation.id} "
            f"'{name}' with {len(member_list)} members"
        )
        return ServiceResult.success(conversation)

    @classmethod
    def list_for_user(cls, user: User) -> list[EnrichedConversation]:
        """
        Build a user's conversation list.

        Each row carries the members, the latest message (soft-deleted
        messages included) and the unread count. Rows are sorted by the
        latest message time, falling back to the conversation's creation
        time, newest first.

        Args:
            user: The viewing user

        Returns:
            List of EnrichedConversation
        """
        memberships = Membership.objects.filter(user=user).select_related("conversation")

        rows = []
        for membership in memberships:
            conversation = membership.conversation
            latest = (
                Message.objects.filter(conversation=conversation)
                .select_related("sender")
                .order_by("-created_at", "-id")
                .first()
            )
            rows.append(
                EnrichedConversation(
                    conversation=conversation,
                    members=cls._members_of(conversation.id),
                    latest_message=latest,
                    unread_count=cls._count_unread(membership),
                )
            )

        rows.sort(key=lambda row: (row.last_activity_at, row.conversation.id), reverse=True)
        return rows

    @classmethod
    def mark_read(cls, user: User, conversation_id: int) -> ServiceResult[Membership]:
        """
        Mark a conversation as read for a user.

        The cursor moves to now, or to the latest message time if that is
        later, and never backwards.

        Args:
            user: The reader
            conversation_id: Conversation to mark as read

        Returns:
            ServiceResult with the updated Membership

        Error codes:
            NOT_A_MEMBER: User is not in this conversation
        """
        with cls.atomic():
            membership = (
                Membership.objects.select_for_update()
                .filter(user=user, conversation_id=conversation_id)
                .first()
            )
            if membership is None:
                return ServiceResult.failure(
                    "You are not a member of this conversation",
                    error_code="NOT_A_MEMBER",
                )

            candidates = [timezone.now(), membership.last_read_at]
            latest_at = cls._latest_message_at(conversation_id)
            if latest_at is not None:
                candidates.append(latest_at)
            cursor = max(candidates)

            if cursor != membership.last_read_at:
                membership.last_read_at = cursor
                membership.save(update_fields=["last_read_at", "updated_at"])

        events.broadcast_inboxes([user.id])

        cls.get_logger().debug(f"User {user.id} read conversation {conversation_id}")
        return ServiceResult.success(membership)

    @classmethod
    def get_by_id(cls, conversation_id: int) -> ConversationDetail | None:
        """Return the conversation with its members, or None."""
        conversation = Conversation.objects.filter(pk=conversation_id).first()
        if conversation is None:
            return None
        return ConversationDetail(
            conversation=conversation,
            members=cls._members_of(conversation.id),
        )

    @classmethod
    def get_unread_count(cls, user: User, conversation_id: int) -> int:
        """
        Count unread messages for a user in a conversation.

        Unread messages are those created after the user's last_read_at
        by someone else.

        Returns:
            Number of unread messages (0 if user is not a member)
        """
        membership = Membership.objects.filter(user=user, conversation_id=conversation_id).first()
        if membership is None:
            return 0
        return cls._count_unread(membership)

    @classmethod
    def is_member(cls, user: User, conversation_id: int) -> bool:
        return Membership.objects.filter(user=user, conversation_id=conversation_id).exists()

    @classmethod
    def member_ids(cls, conversation_id: int) -> list[int]:
        return list(
            Membership.objects.filter(conversation_id=conversation_id).values_list(
                "user_id", flat=True
            )
        )

    @classmethod
    def _members_of(cls, conversation_id: int) -> list[User]:
        return list(User.objects.filter(memberships__conversation_id=conversation_id))

    @classmethod
    def _count_unread(cls, membership: Membership) -> int:
        return (
            Message.objects.filter(
                conversation_id=membership.conversation_id,
                created_at__gt=membership.last_read_at,
            )
            .exclude(sender_id=membership.user_id)
            .count()
        )

    @classmethod
    def _latest_message_at(cls, conversation_id: int) -> datetime | None:
        return Message.objects.filter(conversation_id=conversation_id).aggregate(
            latest=Max("created_at")
        )["latest"]


# =============================================================================
# MessageService
# =============================================================================


class MessageService(BaseService):
    """
    Service for message operations.

    Methods:
        send: Append a message
        list_for_conversation: Ordered messages with reactions for display
        soft_delete: Hide a message's body, sender only
    """

    @classmethod
    def send(
        cls,
        conversation_id: int,
        sender: User,
        body: str,
    ) -> ServiceResult[Message]:
        """
        Send a message to a conversation.

        The body is stored as given. created_at is strictly greater than
        every earlier message in the conversation: the conversation row is
        locked while it is assigned. Sending also clears the sender's
        typing indicator.

        Args:
            conversation_id: Target conversation
            sender: User sending the message
            body: Message text

        Returns:
            ServiceResult with new Message

        Error codes:
            EMPTY_BODY: Body is empty or whitespace
            BODY_TOO_LONG: Body exceeds MESSAGE_CONFIG.MAX_BODY_LENGTH
            CONVERSATION_NOT_FOUND: No such conversation
            NOT_A_MEMBER: Sender is not in the conversation
        """
        if not body or not body.strip():
            return ServiceResult.failure(
                "Message body cannot be empty",
                error_code="EMPTY_BODY",
            )
        if len(body) > MESSAGE_CONFIG.MAX_BODY_LENGTH:
            return ServiceResult.failure(
                f"Message body cannot exceed {MESSAGE_CONFIG.MAX_BODY_LENGTH} characters",
                error_code="BODY_TOO_LONG",
            )

        with cls.atomic():
            conversation = (
                Conversation.objects.select_for_update().filter(pk=conversation_id).first()
            )
            if conversation is None:
                return ServiceResult.failure(
                    "Conversation not found",
                    error_code="CONVERSATION_NOT_FOUND",
                )
            if not ConversationService.is_member(sender, conversation_id):
                return ServiceResult.failure(
                    "You are not a member of this conversation",
                    error_code="NOT_A_MEMBER",
                )

            created_at = timezone.now()
            latest_at = ConversationService._latest_message_at(conversation_id)
            if latest_at is not None and created_at <= latest_at:
                created_at = latest_at + timedelta(microseconds=1)

            message = Message.objects.create(
                conversation=conversation,
                sender=sender,
                body=body,
                created_at=created_at,
            )
            TypingIndicator.objects.filter(conversation=conversation, user=sender).delete()

        events.broadcast_conversation(
            conversation_id, events.TOPIC_MESSAGES, events.TOPIC_TYPING
        )
        events.broadcast_inboxes(ConversationService.member_ids(conversation_id))

        cls.get_logger().debug(
            f"User {sender.id} sent message {message.id} to conversation {conversation_id}"
        )
        return ServiceResult.success(message)

    @classmethod
    def list_for_conversation(
        cls,
        conversation_id: int,
        viewer: User | None = None,
    ) -> list[EnrichedMessage]:
        """
        List a conversation's messages for display, oldest first.

        Deleted messages are included with the placeholder body. Reactions
        are grouped by emoji; reacted_by_me is computed for viewer.

        Args:
            conversation_id: Conversation to list
            viewer: User the reaction flags are computed for

        Returns:
            List of EnrichedMessage (empty for a missing conversation)
        """
        messages = (
            Message.objects.filter(conversation_id=conversation_id)
            .select_related("sender")
            .prefetch_related("reactions__user")
            .order_by("created_at", "id")
        )

        return [cls.enrich(message, viewer) for message in messages]

    @classmethod
    def enrich(cls, message: Message, viewer: User | None = None) -> EnrichedMessage:
        """Project one message for display, reactions included."""
        return EnrichedMessage(
            id=message.id,
            conversation_id=message.conversation_id,
            sender=message.sender,
            body=message.get_display_body(),
            is_deleted=message.is_deleted,
            created_at=message.created_at,
            reactions=ReactionService.group_reactions(message.reactions.all(), viewer),
        )

    @classmethod
    def get_by_id(cls, message_id: int) -> Message | None:
        return Message.objects.filter(pk=message_id).first()

    @classmethod
    def soft_delete(cls, message_id: int, requester: User) -> ServiceResult[Message]:
        """
        Soft delete a message.

        Only the sender may delete. Deleting an already deleted message
        succeeds without changing it.

        Args:
            message_id: Message to delete
            requester: User asking for the delete

        Returns:
            ServiceResult with the Message

        Error codes:
            MESSAGE_NOT_FOUND: No such message
            PERMISSION_DENIED: Requester is not the sender
        """
        with cls.atomic():
            message = Message.objects.select_for_update().filter(pk=message_id).first()
            if message is None:
                return ServiceResult.failure(
                    "Message not found",
                    error_code="MESSAGE_NOT_FOUND",
                )
            if message.sender_id != requester.id:
                return ServiceResult.failure(
                    "You can only delete your own messages",
                    error_code="PERMISSION_DENIED",
                )
            changed = message.soft_delete()

        if changed:
            events.broadcast_conversation(message.conversation_id, events.TOPIC_MESSAGES)
            events.broadcast_inboxes(ConversationService.member_ids(message.conversation_id))
            cls.get_logger().info(f"User {requester.id} deleted message {message.id}")

        return ServiceResult.success(message)


# =============================================================================
# ReactionService
# =============================================================================


class ReactionService(BaseService):
    """
    Service for message reactions.

    Each user has at most one reaction per message.

    Methods:
        toggle: Add, replace or remove the caller's reaction
        group_reactions: Group reactions by emoji for display
    """

    @classmethod
    def _current_reaction(cls, message_id: int, user_id: int) -> Reaction | None:
        return (
            Reaction.objects.select_for_update()
            .filter(message_id=message_id, user_id=user_id)
            .first()
        )

    @classmethod
    def toggle(
        cls,
        message_id: int,
        user: User,
        emoji: str,
    ) -> ServiceResult[Reaction | None]:
        """
        Toggle a reaction on a message.

        Same emoji as the current reaction removes it. A different emoji
        replaces it. No reaction yet adds one. A concurrent insert for the
        same (message, user) that wins the race is updated instead.

        Args:
            message_id: Message to react to
            user: Reacting user
            emoji: One of REACTION_CONFIG.ALLOWED_EMOJIS

        Returns:
            ServiceResult with the Reaction, or None when it was removed

        Error codes:
            INVALID_EMOJI: Emoji is not in the allowed set
            MESSAGE_NOT_FOUND: No such message
        """
        if emoji not in REACTION_CONFIG.ALLOWED_EMOJIS:
            return ServiceResult.failure(
                f"Reaction must be one of {' '.join(REACTION_CONFIG.ALLOWED_EMOJIS)}",
                error_code="INVALID_EMOJI",
            )

        with cls.atomic():
            message = Message.objects.filter(pk=message_id).first()
            if message is None:
                return ServiceResult.failure(
                    "Message not found",
                    error_code="MESSAGE_NOT_FOUND",
                )

            reaction = cls._current_reaction(message.id, user.id)
            if reaction is not None and reaction.emoji == emoji:
                reaction.delete()
                reaction = None
            elif reaction is not None:
                reaction.emoji = emoji
                reaction.save(update_fields=["emoji", "updated_at"])
            else:
                try:
                    with cls.atomic():
                        reaction = Reaction.objects.create(message=message, user=user, emoji=emoji)
                except IntegrityError:
                    reaction = cls._current_reaction(message.id, user.id)
                    reaction.emoji = emoji
                    reaction.save(update_fields=["emoji", "updated_at"])

        events.broadcast_conversation(message.conversation_id, events.TOPIC_MESSAGES)

        cls.get_logger().debug(
            f"User {user.id} toggled {emoji} on message {message_id}: "
            f"{'removed' if reaction is None else 'set'}"
        )
        return ServiceResult.success(reaction)

    @classmethod
    def group_reactions(
        cls,
        reactions: Iterable[Reaction],
        viewer: User | None = None,
    ) -> list[ReactionGroup]:
        """
        Group reactions by emoji for display.

        Groups are ordered by the fixed emoji order and empty groups are
        omitted.

        Args:
            reactions: Reactions of one message (user preloaded)
            viewer: User the reacted_by_me flag is computed for

        Returns:
            List of ReactionGroup
        """
        viewer_id = viewer.id if viewer is not None else None
        buckets: dict[str, list[Reaction]] = {emoji: [] for emoji in REACTION_CONFIG.ALLOWED_EMOJIS}
        for reaction in reactions:
            buckets.setdefault(reaction.emoji, []).append(reaction)

        return [
            ReactionGroup(
                emoji=emoji,
                count=len(group),
                reacted_by_me=any(r.user_id == viewer_id for r in group),
                user_names=[r.user.name or UNKNOWN_USER_NAME for r in group],
            )
            for emoji, group in buckets.items()
            if group
        ]


# =============================================================================
# TypingService
# =============================================================================


class TypingService(BaseService):
    """
    Service for typing indicators.

    A user is typing while their indicator is younger than
    TYPING_CONFIG.EXPIRY_MS. Expiry is evaluated when reading; stale
    rows need no cleanup to disappear.

    Clients should send set_typing at most once per
    TYPING_CONFIG.DEBOUNCE_MS of keystrokes, and clear_typing after
    EXPIRY_MS of inactivity. Sending a message clears it automatically.

    Methods:
        set_typing: Refresh the caller's indicator
        clear_typing: Remove the caller's indicator
        list_active_typers: Names of users currently typing
        next_expiry: When the oldest visible indicator stops being visible
        purge_stale: Delete expired rows
    """

    @classmethod
    def _cutoff(cls) -> datetime:
        return timezone.now() - timedelta(milliseconds=TYPING_CONFIG.EXPIRY_MS)

    @classmethod
    def _active_indicators(cls, conversation_id: int, excluding_user: User | None = None):
        indicators = TypingIndicator.objects.filter(
            conversation_id=conversation_id,
            updated_at__gt=cls._cutoff(),
        )
        if excluding_user is not None:
            indicators = indicators.exclude(user_id=excluding_user.id)
        return indicators

    @classmethod
    def set_typing(cls, conversation_id: int, user: User) -> ServiceResult[TypingIndicator]:
        """
        Mark a user as typing in a conversation.

        Error codes:
            NOT_A_MEMBER: User is not in the conversation
        """
        if not ConversationService.is_member(user, conversation_id):
            return ServiceResult.failure(
                "You are not a member of this conversation",
                error_code="NOT_A_MEMBER",
            )

        with cls.atomic():
            indicator, _ = TypingIndicator.objects.update_or_create(
                conversation_id=conversation_id,
                user=user,
                defaults={"updated_at": timezone.now()},
            )

        events.broadcast_conversation(conversation_id, events.TOPIC_TYPING)
        return ServiceResult.success(indicator)

    @classmethod
    def clear_typing(cls, conversation_id: int, user: User) -> ServiceResult[bool]:
        """
        Remove a user's typing indicator.

        Returns:
            ServiceResult with True if an indicator was removed
        """
        with cls.atomic():
            deleted, _ = TypingIndicator.objects.filter(
                conversation_id=conversation_id, user=user
            ).delete()

        if deleted:
            events.broadcast_conversation(conversation_id, events.TOPIC_TYPING)
        return ServiceResult.success(bool(deleted))

    @classmethod
    def list_active_typers(
        cls,
        conversation_id: int,
        excluding_user: User | None = None,
    ) -> list[str]:
        """
        Names of users typing in a conversation right now.

        Args:
            conversation_id: Conversation to check
            excluding_user: Usually the viewer, who never sees themselves

        Returns:
            Display names, oldest indicator first
        """
        indicators = (
            cls._active_indicators(conversation_id, excluding_user)
            .select_related("user")
            .order_by("updated_at", "id")
        )
        return [
            indicator.user.name or TYPING_CONFIG.UNKNOWN_TYPER_NAME
            for indicator in indicators
        ]

    @classmethod
    def next_expiry(
        cls,
        conversation_id: int,
        excluding_user: User | None = None,
    ) -> datetime | None:
        """
        When the oldest visible indicator stops being visible.

        Live subscribers use this to refresh their typers list when a
        client goes quiet without clearing its indicator.

        Returns:
            The expiry instant, or None when nobody is typing
        """
        oldest = cls._active_indicators(conversation_id, excluding_user).aggregate(
            oldest=Min("updated_at")
        )["oldest"]
        if oldest is None:
            return None
        return oldest + timedelta(milliseconds=TYPING_CONFIG.EXPIRY_MS)

    @classmethod
    def purge_stale(cls) -> int:
        """
        Delete expired indicators.

        Returns:
            Number of rows deleted
        """
        with cls.atomic():
            deleted, _ = TypingIndicator.objects.filter(updated_at__lte=cls._cutoff()).delete()

        if deleted:
            cls.get_logger().info(f"Purged {deleted} stale typing indicators")
        return deleted
