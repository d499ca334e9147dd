"""
Chat system models.

This module defines the data models for the chat system supporting:
- Direct (1:1) conversations between exactly two users
- Named group conversations with two or more members

Models:
    Conversation: Container for messages between members
    DirectConversationPair: Helper for enforcing uniqueness of direct conversations
    Membership: User membership in a conversation with a read cursor
    Message: Individual message within a conversation
    Reaction: A user's single emoji reaction to a message
    TypingIndicator: Ephemeral "is typing" marker per (conversation, user)

Design Decisions:
    - Unread counts are derived from Membership.last_read_at, never stored
    - Messages are append-only; deletion is a one-way soft delete
    - One reaction per (message, user); changing emoji replaces the row
    - Typing expiry is evaluated at read time from updated_at
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from core.model_mixins import SoftDeleteMixin
from core.models import BaseModel

from chat.constants import MESSAGE_CONFIG


class ReactionEmoji(models.TextChoices):
    """
    Fixed reaction set, in display order.

    Reaction groups are always presented in this order.
    """

    THUMBS_UP = "👍", "Thumbs up"
    HEART = "❤️", "Heart"
    LAUGH = "😂", "Laugh"
    WOW = "😮", "Wow"
    SAD = "😢", "Sad"


class Conversation(BaseModel):
    """
    A conversation between two or more users.

    Conversation Types:
        Direct (is_group=False): Exactly 2 members, no name.
            Unique per user pair (enforced via DirectConversationPair).

        Group (is_group=True): 2+ members, non-empty name.

    Conversations are never archived or deleted.

    Fields:
        is_group: Whether this is a named group conversation
        name: Group name (empty string for direct conversations)

    Relationships:
        memberships: Membership records for this conversation
        messages: Message records for this conversation
        direct_pair: DirectConversationPair for direct conversations
    """

    is_group = models.BooleanField(
        default=False,
        help_text="Whether this is a named group conversation",
    )

    name = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Group name (empty for direct conversations)",
    )

    class Meta:
        db_table = "chat_conversation"
        ordering = ["-created_at"]
        constraints = [
            # Groups are named, direct conversations are not
            models.CheckConstraint(
                condition=(
                    (Q(is_group=True) & ~Q(name=""))
                    | (Q(is_group=False) & Q(name=""))
                ),
                name="chat_conversation_name_iff_group",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        if self.is_group:
            return f"Group: {self.name}"
        return f"Direct({self.pk})"


class DirectConversationPair(models.Model):
    """
    Enforces uniqueness of direct conversations between two users.

    This helper table stores user pairs in canonical order (lower user_id first)
    so there can only be one direct conversation between any pair, regardless
    of who opens it or how many times.

    Fields:
        conversation: The direct conversation (OneToOne, serves as PK)
        user_lower: User with lower ID
        user_higher: User with higher ID

    Constraints:
        - UniqueConstraint(user_lower, user_higher): One conversation per pair
        - CheckConstraint(user_lower_id < user_higher_id): Enforce canonical order
    """

    conversation = models.OneToOneField(
        Conversation,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="direct_pair",
        help_text="The direct conversation this pair represents",
    )

    user_lower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with lower ID in this conversation pair",
    )

    user_higher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with higher ID in this conversation pair",
    )

    class Meta:
        db_table = "chat_direct_conversation_pair"
        constraints = [
            models.UniqueConstraint(
                fields=["user_lower", "user_higher"],
                name="unique_direct_conversation_pair",
            ),
            models.CheckConstraint(
                condition=Q(user_lower_id__lt=F("user_higher_id")),
                name="user_lower_less_than_higher",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        return f"DirectPair({self.user_lower_id}, {self.user_higher_id})"


class Membership(BaseModel):
    """
    A user's membership in a conversation.

    last_read_at is the read cursor: messages from other members created
    after it are unread. It only moves forward, and only through
    ConversationService.mark_read.

    Fields:
        conversation: The conversation
        user: The member
        last_read_at: Read cursor (starts at join time)
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="memberships",
        help_text="Conversation this membership belongs to",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="memberships",
        help_text="Member user",
    )

    last_read_at = models.DateTimeField(
        default=timezone.now,
        help_text="Messages created after this are unread",
    )

    class Meta:
        db_table = "chat_membership"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["conversation", "user"],
                name="unique_conversation_membership",
            ),
        ]
        indexes = [
            # Sidebar: a user's conversations
            models.Index(
                fields=["user", "conversation"],
                name="chat_membership_user_idx",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        return f"Membership(user={self.user_id}, conversation={self.conversation_id})"


class Message(SoftDeleteMixin, BaseModel):
    """
    A message within a conversation.

    Messages are append-only. Deleting flips is_deleted once and stamps
    deleted_at; the body is kept but never shown again.

    created_at is assigned by MessageService.send so it is strictly
    increasing within a conversation. Ties in ordering fall back to id.

    Fields:
        conversation: Parent conversation
        sender: Author
        body: Text as submitted
        created_at: Ordering timestamp
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Conversation this message belongs to",
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
        help_text="User who sent this message",
    )

    body = models.TextField(
        help_text="Message text as submitted",
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="Ordering timestamp, strictly increasing per conversation",
    )

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["conversation", "created_at", "id"],
                name="chat_msg_conv_created_idx",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        return f"Message({self.pk}) in Conversation({self.conversation_id})"

    def get_display_body(self) -> str:
        """
        Return the text to show for this message.

        Deleted messages show a fixed placeholder; the stored body is
        never returned for them.
        """
        if self.is_deleted:
            return MESSAGE_CONFIG.DELETED_PLACEHOLDER
        return self.body


class Reaction(BaseModel):
    """
    A user's reaction to a message.

    At most one row per (message, user): toggling the same emoji removes
    it, toggling a different emoji replaces it.

    Fields:
        message: The message reacted to
        user: The reacting user
        emoji: One of ReactionEmoji
    """

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="reactions",
        help_text="Message this reaction belongs to",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reactions",
        help_text="User who reacted",
    )

    emoji = models.CharField(
        max_length=8,
        choices=ReactionEmoji.choices,
        help_text="Reaction emoji",
    )

    class Meta:
        db_table = "chat_reaction"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user"],
                name="unique_reaction_per_user_message",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        return f"Reaction({self.emoji}) by User({self.user_id}) on Message({self.message_id})"


class TypingIndicator(models.Model):
    """
    Marks a user as typing in a conversation.

    The row is active only while updated_at is within the typing expiry
    window. Stale rows are invisible to readers and removed by
    clear_typing, the next message send or the periodic purge task.

    Fields:
        conversation: The conversation
        user: The typing user
        updated_at: Last keystroke heartbeat
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="typing_indicators",
        help_text="Conversation the user is typing in",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="typing_indicators",
        help_text="User who is typing",
    )

    updated_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="Last typing heartbeat",
    )

    class Meta:
        db_table = "chat_typing_indicator"
        constraints = [
            models.UniqueConstraint(
                fields=["conversation", "user"],
                name="unique_typing_indicator",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        return f"Typing(user={self.user_id}, conversation={self.conversation_id})"
