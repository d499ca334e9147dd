"""
Permission classes for chat API.

This module provides DRF permission classes for the chat system:
- IsConversationMember: User has a membership in the conversation
- IsMessageSender: User sent the message

Design Decisions:
    - Permissions check against Membership, not the conversation row
    - Each class carries a machine-readable `code`; chat views render
      denials as {"error", "error_code"} through core.exceptions
    - Services repeat the checks, so socket frames get the same rules
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

from chat.models import Conversation, Message, Membership

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsConversationMember(permissions.BasePermission):
    """
    Allows access only to members of the conversation.

    This is the base permission for every conversation-scoped endpoint.
    """

    message = "You are not a member of this conversation."
    code = "NOT_A_MEMBER"

    def has_object_permission(
        self, request: Request, view: APIView, obj: Conversation | Message
    ) -> bool:
        if not request.user.is_authenticated:
            return False

        conversation_id = obj.conversation_id if isinstance(obj, Message) else obj.pk
        return Membership.objects.filter(
            conversation_id=conversation_id,
            user=request.user,
        ).exists()


class IsMessageSender(permissions.BasePermission):
    """Allows access only to the sender of the message."""

    message = "You can only delete your own messages."
    code = "PERMISSION_DENIED"

    def has_object_permission(self, request: Request, view: APIView, obj: Message) -> bool:
        return obj.sender_id == request.user.id
