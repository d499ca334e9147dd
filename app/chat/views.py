"""
ViewSets for chat API.

This module provides REST API endpoints for the chat system:
- ConversationViewSet: Sidebar list, create, detail, read cursor, typing
- MessageViewSet: Message operations (nested under conversation)

URL Structure:
    /api/v1/chat/conversations/                          GET, POST
    /api/v1/chat/conversations/{id}/                     GET
    /api/v1/chat/conversations/{id}/read/                POST
    /api/v1/chat/conversations/{id}/typing/              GET, POST, DELETE
    /api/v1/chat/conversations/{id}/messages/            GET, POST
    /api/v1/chat/conversations/{id}/messages/{pk}/       DELETE
    /api/v1/chat/conversations/{id}/messages/{pk}/reactions/toggle/ POST

Design Decisions:
    - All operations use service layer for business logic
    - Service failures are raised with ServiceResult.unwrap(CHAT_ERRORS)
      and rendered by core.views.api_exception_handler
    - Permission denials are raised as core.exceptions.PermissionDeniedError
      so every error body carries an error_code
    - Lists are not paginated
"""

from __future__ import annotations

from drf_spectacular.utils import (
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import NotFoundError, PermissionDeniedError
from users.services import UserDirectoryService

from chat.models import Conversation, Message
from chat.permissions import IsConversationMember, IsMessageSender
from chat.serializers import (
    ConversationCreateSerializer,
    ConversationDetailSerializer,
    ConversationListSerializer,
    MarkReadResponseSerializer,
    MessageCreateSerializer,
    MessageSerializer,
    ReactionToggleSerializer,
    TypingSerializer,
)
from chat.services import (
    ConversationService,
    MessageService,
    ReactionService,
    TypingService,
)

CHAT_ERRORS = {
    "NOT_A_MEMBER": PermissionDeniedError,
    "PERMISSION_DENIED": PermissionDeniedError,
    "CONVERSATION_NOT_FOUND": NotFoundError,
    "MESSAGE_NOT_FOUND": NotFoundError,
    "USER_NOT_FOUND": NotFoundError,
}


class ConversationScopedMixin:
    """
    Resolves and authorizes the conversation named in the URL.

    Attributes:
        conversation_url_kwarg: URL kwarg holding the conversation id
    """

    conversation_url_kwarg = "pk"

    def get_conversation(self) -> Conversation:
        """
        Return the conversation from the URL after checking membership.

        Raises:
            NotFoundError: CONVERSATION_NOT_FOUND
            PermissionDeniedError: NOT_A_MEMBER
        """
        conversation = Conversation.objects.filter(
            pk=self.kwargs[self.conversation_url_kwarg]
        ).first()
        if conversation is None:
            raise NotFoundError(
                "Conversation not found",
                error_code="CONVERSATION_NOT_FOUND",
            )
        self.check_object_permissions(self.request, conversation)
        return conversation

    def permission_denied(self, request, message=None, code=None):
        """Raise denials for authenticated users as PermissionDeniedError."""
        if request.authenticators and not request.successful_authenticator:
            super().permission_denied(request, message=message, code=code)
        raise PermissionDeniedError(
            str(message or "You do not have permission to perform this action."),
            error_code=code or "PERMISSION_DENIED",
        )


@extend_schema_view(
    list=extend_schema(
        operation_id="list_conversations",
        summary="List conversations",
        description=(
            "The current user's conversations, most recent activity first, "
            "with members, latest message preview and unread count."
        ),
        responses={200: ConversationListSerializer(many=True)},
        tags=["Chat - Conversations"],
    ),
    create=extend_schema(
        operation_id="create_conversation",
        summary="Create conversation",
        description=(
            "Direct: {\"user_id\"} returns the existing conversation with "
            "that user when there is one. Group: {\"name\", \"member_ids\"}."
        ),
        request=ConversationCreateSerializer,
        responses={201: ConversationDetailSerializer},
        tags=["Chat - Conversations"],
    ),
    retrieve=extend_schema(
        operation_id="get_conversation",
        summary="Get conversation",
        responses={200: ConversationDetailSerializer},
        tags=["Chat - Conversations"],
    ),
)
class ConversationViewSet(ConversationScopedMixin, viewsets.GenericViewSet):
    """
    ViewSet for conversation operations.

    list:
        Get all conversations for the current user with unread counts
        and the latest message preview.

    create:
        Create a new conversation (direct or group).
        For direct: returns existing if found, creates if not.

    retrieve:
        Get conversation details including all members.

    read:
        Mark the conversation as read.

    typing:
        GET the active typers, POST to mark yourself typing,
        DELETE to clear it.
    """

    permission_classes = [IsAuthenticated, IsConversationMember]
    serializer_class = ConversationDetailSerializer
    lookup_value_regex = r"\d+"

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context["user"] = self.request.user
        return context

    def list(self, request):
        """List the current user's conversations."""
        rows = ConversationService.list_for_user(request.user)
        serializer = ConversationListSerializer(
            rows, many=True, context=self.get_serializer_context()
        )
        return Response(serializer.data)

    def create(self, request):
        """Create a conversation (direct or group)."""
        serializer = ConversationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data["is_group"]:
            conversation = ConversationService.create_group(
                name=data.get("name", ""),
                creator=request.user,
                member_ids=data.get("member_ids", []),
            ).unwrap(CHAT_ERRORS)
        else:
            other_user = UserDirectoryService.get_by_id(data["user_id"])
            if other_user is None:
                raise NotFoundError("User not found", error_code="USER_NOT_FOUND")
            conversation = ConversationService.get_or_create_direct(
                request.user, other_user
            ).unwrap(CHAT_ERRORS)

        detail = ConversationService.get_by_id(conversation.id)
        return Response(
            ConversationDetailSerializer(detail, context=self.get_serializer_context()).data,
            status=status.HTTP_201_CREATED,
        )

    def retrieve(self, request, pk=None):
        """Get a conversation with its members."""
        conversation = self.get_conversation()
        detail = ConversationService.get_by_id(conversation.id)
        return Response(
            ConversationDetailSerializer(detail, context=self.get_serializer_context()).data
        )

    @extend_schema(
        operation_id="mark_conversation_read",
        summary="Mark conversation as read",
        request=None,
        responses={200: MarkReadResponseSerializer},
        tags=["Chat - Conversations"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        """Mark conversation as read."""
        conversation = self.get_conversation()
        membership = ConversationService.mark_read(request.user, conversation.id).unwrap(
            CHAT_ERRORS
        )
        return Response(
            MarkReadResponseSerializer(
                {"conversation_id": conversation.id, "last_read_at": membership.last_read_at}
            ).data
        )

    @extend_schema(
        operation_id="conversation_typing",
        summary="Typing indicator",
        description=(
            "GET lists who is typing (never including you). POST marks you as "
            "typing for the next 2 seconds; send it at most every 500 ms while "
            "typing. DELETE clears it."
        ),
        request=None,
        responses={
            200: TypingSerializer,
            204: OpenApiResponse(description="Typing state updated"),
        },
        tags=["Chat - Conversations"],
    )
    @action(detail=True, methods=["get", "post", "delete"])
    def typing(self, request, pk=None):
        """Read or update the typing indicator."""
        conversation = self.get_conversation()

        if request.method == "POST":
            TypingService.set_typing(conversation.id, request.user).unwrap(CHAT_ERRORS)
            return Response(status=status.HTTP_204_NO_CONTENT)
        if request.method == "DELETE":
            TypingService.clear_typing(conversation.id, request.user).unwrap(CHAT_ERRORS)
            return Response(status=status.HTTP_204_NO_CONTENT)

        typers = TypingService.list_active_typers(conversation.id, excluding_user=request.user)
        return Response(TypingSerializer({"typers": typers}).data)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_messages",
        summary="List messages",
        description=(
            "All messages oldest first. Deleted messages are included with "
            "the placeholder body."
        ),
        responses={200: MessageSerializer(many=True)},
        tags=["Chat - Messages"],
    ),
    create=extend_schema(
        operation_id="send_message",
        summary="Send message",
        request=MessageCreateSerializer,
        responses={
            201: MessageSerializer,
            400: OpenApiResponse(description="Empty or too long body"),
            403: OpenApiResponse(description="Not a member"),
        },
        tags=["Chat - Messages"],
    ),
    destroy=extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        responses={
            204: OpenApiResponse(description="Message deleted"),
            403: OpenApiResponse(description="Not the sender"),
            404: OpenApiResponse(description="Message not found"),
        },
        tags=["Chat - Messages"],
    ),
)
class MessageViewSet(ConversationScopedMixin, viewsets.GenericViewSet):
    """
    ViewSet for message operations within a conversation.

    list:
        Get all messages in the conversation, oldest first.

    create:
        Send a message to the conversation.

    destroy:
        Soft delete a message. Users can only delete their own messages.

    toggle_reaction:
        Add, replace or remove your reaction on a message.
    """

    permission_classes = [IsAuthenticated, IsConversationMember]
    serializer_class = MessageSerializer
    conversation_url_kwarg = "conversation_pk"

    def get_message(self, conversation: Conversation) -> Message:
        """
        Return the message from the URL within the conversation.

        Raises:
            NotFoundError: MESSAGE_NOT_FOUND
        """
        message = Message.objects.filter(
            pk=self.kwargs["pk"],
            conversation=conversation,
        ).first()
        if message is None:
            raise NotFoundError("Message not found", error_code="MESSAGE_NOT_FOUND")
        return message

    def list(self, request, conversation_pk=None):
        """List messages with grouped reactions."""
        conversation = self.get_conversation()
        messages = MessageService.list_for_conversation(conversation.id, viewer=request.user)
        return Response(MessageSerializer(messages, many=True).data)

    def create(self, request, conversation_pk=None):
        """Send a message."""
        conversation = self.get_conversation()

        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        message = MessageService.send(
            conversation.id,
            request.user,
            serializer.validated_data["body"],
        ).unwrap(CHAT_ERRORS)

        return Response(
            MessageSerializer(MessageService.enrich(message, request.user)).data,
            status=status.HTTP_201_CREATED,
        )

    def destroy(self, request, conversation_pk=None, pk=None):
        """Soft delete a message."""
        conversation = self.get_conversation()
        message = self.get_message(conversation)

        if not IsMessageSender().has_object_permission(request, self, message):
            self.permission_denied(
                request,
                message=IsMessageSender.message,
                code=IsMessageSender.code,
            )

        MessageService.soft_delete(message.id, request.user).unwrap(CHAT_ERRORS)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="toggle_reaction",
        summary="Toggle reaction",
        description=(
            "Same emoji as your current reaction removes it, a different "
            "emoji replaces it. Allowed: 👍 ❤️ 😂 😮 😢."
        ),
        request=ReactionToggleSerializer,
        responses={
            200: MessageSerializer,
            400: OpenApiResponse(description="Emoji not allowed"),
        },
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["post"], url_path="reactions/toggle")
    def toggle_reaction(self, request, conversation_pk=None, pk=None):
        """
        Toggle a reaction on a message.

        POST /api/v1/chat/conversations/{conversation_id}/messages/{id}/reactions/toggle/
        """
        conversation = self.get_conversation()
        message = self.get_message(conversation)

        serializer = ReactionToggleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ReactionService.toggle(
            message.id,
            request.user,
            serializer.validated_data["emoji"],
        ).unwrap(CHAT_ERRORS)

        message.refresh_from_db()
        return Response(MessageSerializer(MessageService.enrich(message, request.user)).data)
