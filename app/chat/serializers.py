"""
Serializers for chat API.

This module provides DRF serializers for:
- Conversations (list rows and detail, from the service read models)
- Conversation creation (direct or group)
- Messages with grouped reactions
- Reaction toggles and typing state

Read serializers take the dataclasses returned by chat.services
(EnrichedConversation, ConversationDetail, EnrichedMessage), not model
instances. The same serializers build WebSocket snapshots.

Related files:
    - views.py: REST endpoints
    - consumers.py: WebSocket snapshots
"""

from rest_framework import serializers

from users.serializers import UserSerializer

# =============================================================================
# Message Serializers
# =============================================================================


class ReactionGroupSerializer(serializers.Serializer):
    """All reactions with one emoji, as seen by the requesting user."""

    emoji = serializers.CharField()
    count = serializers.IntegerField()
    reacted_by_me = serializers.BooleanField()
    user_names = serializers.ListField(child=serializers.CharField())


class MessageSerializer(serializers.Serializer):
    """
    Serializer for EnrichedMessage.

    body is the display body: deleted messages carry the placeholder,
    never the original text.
    """

    id = serializers.IntegerField()
    conversation_id = serializers.IntegerField()
    sender = UserSerializer()
    body = serializers.CharField()
    is_deleted = serializers.BooleanField()
    created_at = serializers.DateTimeField()
    reactions = ReactionGroupSerializer(many=True)


class LatestMessageSerializer(serializers.Serializer):
    """Preview of a conversation's latest message (Message instance)."""

    id = serializers.IntegerField()
    sender_id = serializers.IntegerField()
    sender_name = serializers.CharField(source="sender.name")
    body = serializers.CharField(source="get_display_body")
    is_deleted = serializers.BooleanField()
    created_at = serializers.DateTimeField()


class MessageCreateSerializer(serializers.Serializer):
    """
    Request body for sending a message.

    Whitespace is preserved; emptiness and length are checked by
    MessageService so the error codes are uniform across REST and sockets.
    """

    body = serializers.CharField(allow_blank=True, trim_whitespace=False)


class ReactionToggleSerializer(serializers.Serializer):
    """Request body for toggling a reaction."""

    emoji = serializers.CharField(max_length=16)


# =============================================================================
# Conversation Serializers
# =============================================================================


class ConversationDetailSerializer(serializers.Serializer):
    """
    Serializer for ConversationDetail.

    display_name is the group name, or for direct conversations the
    other member's name as seen by the requesting user (context "user").
    """

    id = serializers.IntegerField(source="conversation.id")
    is_group = serializers.BooleanField(source="conversation.is_group")
    name = serializers.CharField(source="conversation.name")
    display_name = serializers.SerializerMethodField()
    created_at = serializers.DateTimeField(source="conversation.created_at")
    members = UserSerializer(many=True)
    member_count = serializers.IntegerField()

    def get_display_name(self, obj) -> str:
        if obj.conversation.is_group:
            return obj.conversation.name

        viewer = self.context.get("user")
        others = [m for m in obj.members if viewer is None or m.id != viewer.id]
        return others[0].name if others else ""


class ConversationListSerializer(ConversationDetailSerializer):
    """Serializer for EnrichedConversation (one sidebar row)."""

    latest_message = LatestMessageSerializer(allow_null=True)
    unread_count = serializers.IntegerField()


class ConversationCreateSerializer(serializers.Serializer):
    """
    Request body for creating a conversation.

    Direct: {"user_id": 42}
    Group:  {"name": "Team", "member_ids": [42, 43]}
    """

    user_id = serializers.IntegerField(required=False)
    name = serializers.CharField(required=False, allow_blank=True, max_length=100)
    member_ids = serializers.ListField(
        child=serializers.IntegerField(),
        required=False,
    )

    def validate(self, attrs):
        has_direct = "user_id" in attrs
        has_group = "member_ids" in attrs or "name" in attrs
        if has_direct == has_group:
            raise serializers.ValidationError(
                "Provide user_id for a direct conversation, "
                "or name and member_ids for a group."
            )
        attrs["is_group"] = has_group
        return attrs


class MarkReadResponseSerializer(serializers.Serializer):
    """Response for marking a conversation read."""

    conversation_id = serializers.IntegerField()
    last_read_at = serializers.DateTimeField()


class TypingSerializer(serializers.Serializer):
    """Names of the users currently typing."""

    typers = serializers.ListField(child=serializers.CharField())
