"""
WebSocket consumers for the chat application.

This module implements the WebSocket consumers for real-time chat,
handling connection management, client commands and snapshot pushes.
State lives in the database; sockets receive fresh snapshots built by
the service layer whenever chat.events reports a change.

Consumers:
    InboxConsumer: The user's socket (presence, conversation list)
    ChatConsumer: A conversation socket (messages, typing, commands)

Authentication:
    Users are authenticated via JWT (see chat.middleware).
    The JWTAuthMiddleware attaches the user to self.scope["user"].

Close Codes:
    4001: Not authenticated
    4003: Not a member of the conversation
    4004: Conversation does not exist

Channel Groups:
    user_<id>: joined by InboxConsumer
    conversation_<id>: joined by ChatConsumer

Message Types (from client, ChatConsumer):
    - message: {"type": "message", "body": "Hello!"}
    - typing: {"type": "typing"}  (at most every 500 ms while typing)
    - stop_typing: {"type": "stop_typing"}
    - read: {"type": "read"}
    - reaction: {"type": "reaction", "message_id": 1, "emoji": "👍"}
    - delete: {"type": "delete", "message_id": 1}

Message Types (from client, InboxConsumer):
    - heartbeat: {"type": "heartbeat"}  (refreshes last_seen)

Message Types (to client):
    - messages: {"type": "messages", "conversation_id": 1, "messages": [...]}
    - typing: {"type": "typing", "conversation_id": 1, "typers": ["Ada"]}
      (re-sent when the oldest visible indicator expires)
    - conversations: {"type": "conversations", "conversations": [...]}
    - error: {"type": "error", "error": "...", "error_code": "..."}

Frames that are not JSON objects, or whose fields have the wrong type,
are answered with an INVALID_FRAME error. The socket stays open.
"""

from __future__ import annotations

import asyncio
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.utils import timezone

from core.exceptions import BaseApplicationError, ValidationError
from core.services import ServiceResult
from users.services import PresenceService

from chat import events
from chat.constants import PRESENCE_CONFIG
from chat.middleware import JWT_SUBPROTOCOL
from chat.serializers import ConversationListSerializer, MessageSerializer
from chat.services import (
    ConversationService,
    MessageService,
    ReactionService,
    TypingService,
)

logger = logging.getLogger(__name__)

CLOSE_UNAUTHENTICATED = 4001
CLOSE_NOT_A_MEMBER = 4003
CLOSE_NOT_FOUND = 4004


def frame_text(content: dict, key: str) -> str:
    """
    Read an optional text field from a client frame.

    Raises:
        ValidationError: The field is present but not a string
    """
    value = content.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"'{key}' must be a string", error_code="INVALID_FRAME")
    return value


class AuthenticatedJsonConsumer(AsyncJsonWebsocketConsumer):
    """
    Base consumer with the shared connection plumbing.

    Echoes the "jwt" subprotocol when the client used it to send the
    token, which browsers require to complete the handshake.

    Subclasses implement handle_frame. Malformed frames and application
    errors raised while handling one are answered with an error frame.
    """

    handlers: dict[str, str] = {}

    @classmethod
    async def decode_json(cls, text_data):
        try:
            return await super().decode_json(text_data)
        except ValueError:
            # Reported as INVALID_FRAME by receive_json
            return None

    async def receive_json(self, content, **kwargs):
        """
        Validate the frame shape and dispatch it to handle_frame.

        Args:
            content: Parsed JSON message from client
        """
        if not isinstance(content, dict):
            await self.send_error("Frames must be JSON objects", "INVALID_FRAME")
            return

        frame_type = content.get("type")
        if not isinstance(frame_type, str) or frame_type not in self.handlers:
            await self.send_error(f"Unknown message type: {frame_type}", "UNKNOWN_TYPE")
            return

        try:
            await self.handle_frame(frame_type, content)
        except BaseApplicationError as exc:
            logger.warning(f"User {self.user.id} {frame_type} frame failed: {exc}")
            await self.send_error(exc.message, exc.error_code)

    async def handle_frame(self, frame_type: str, content: dict):
        raise NotImplementedError

    @property
    def user(self):
        return self.scope.get("user")

    def is_authenticated(self) -> bool:
        return bool(self.user and self.user.is_authenticated)

    async def accept_connection(self):
        subprotocols = self.scope.get("subprotocols") or []
        if subprotocols and subprotocols[0] == JWT_SUBPROTOCOL:
            await self.accept(subprotocol=JWT_SUBPROTOCOL)
        else:
            await self.accept()

    async def send_error(self, error: str, error_code: str | None = None):
        await self.send_json({"type": "error", "error": error, "error_code": error_code})


class InboxConsumer(AuthenticatedJsonConsumer):
    """
    WebSocket consumer for a user's inbox.

    Handles:
        - Marking the user online on connect and offline on disconnect
        - Pushing the conversation list on connect and on every change
        - Heartbeats that refresh last_seen
    """

    group_name: str | None = None
    handlers = {"heartbeat": "_handle_heartbeat"}

    async def connect(self):
        """
        Handle WebSocket connection.

        Rejects anonymous users, joins the user's group, sets presence
        and sends the first conversation list.
        """
        if not self.is_authenticated():
            logger.warning("Rejected unauthenticated inbox connection")
            await self.close(code=CLOSE_UNAUTHENTICATED)
            return

        self.group_name = events.user_group(self.user.id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept_connection()

        await database_sync_to_async(PresenceService.set_online_status)(self.user.id, True)
        await self.send_conversations()
        logger.info(f"User {self.user.id} connected inbox")

    async def disconnect(self, close_code):
        """Leave the group and mark the user offline."""
        if not self.group_name:
            return

        await self.channel_layer.group_discard(self.group_name, self.channel_name)
        await database_sync_to_async(PresenceService.set_online_status)(self.user.id, False)
        logger.info(f"User {self.user.id} disconnected inbox ({close_code})")

    async def handle_frame(self, frame_type: str, content: dict):
        await getattr(self, self.handlers[frame_type])(content)

    async def _handle_heartbeat(self, content):
        """Refresh last_seen and tell the client how often to beat."""
        await database_sync_to_async(PresenceService.set_online_status)(self.user.id, True)
        await self.send_json(
            {
                "type": "heartbeat",
                "interval_seconds": PRESENCE_CONFIG.HEARTBEAT_INTERVAL_SECONDS,
            }
        )

    async def conversations_changed(self, event):
        """Handle conversations.changed events from the channel layer."""
        await self.send_conversations()

    async def send_conversations(self):
        conversations = await self._conversations_snapshot()
        await self.send_json({"type": "conversations", "conversations": conversations})

    @database_sync_to_async
    def _conversations_snapshot(self) -> list[dict]:
        rows = ConversationService.list_for_user(self.user)
        return ConversationListSerializer(rows, many=True, context={"user": self.user}).data


class ChatConsumer(AuthenticatedJsonConsumer):
    """
    WebSocket consumer for one conversation.

    Handles:
        - Connection authentication and membership checks
        - Joining/leaving the conversation channel group
        - Client commands (send, typing, read, reaction, delete)
        - Pushing message and typing snapshots on change

    Attributes:
        conversation_id: ID of the connected conversation
        room_group_name: Channel layer group name for the conversation
    """

    handlers = {
        "message": "_handle_message",
        "typing": "_handle_typing",
        "stop_typing": "_handle_stop_typing",
        "read": "_handle_read",
        "reaction": "_handle_reaction",
        "delete": "_handle_delete",
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.conversation_id: int | None = None
        self.room_group_name: str | None = None
        self._typing_refresh: asyncio.Task | None = None

    async def connect(self):
        """
        Handle WebSocket connection.

        Validates:
            1. User is authenticated
            2. Conversation exists
            3. User is a member of the conversation

        On success, joins the channel group, accepts the connection and
        sends the current messages and typers.
        """
        self.conversation_id = self.scope["url_route"]["kwargs"]["conversation_id"]

        if not self.is_authenticated():
            logger.warning(
                f"Rejected unauthenticated connection to conversation {self.conversation_id}"
            )
            await self.close(code=CLOSE_UNAUTHENTICATED)
            return

        detail = await database_sync_to_async(ConversationService.get_by_id)(
            self.conversation_id
        )
        if detail is None:
            logger.warning(
                f"User {self.user.id} tried to connect to non-existent "
                f"conversation {self.conversation_id}"
            )
            await self.close(code=CLOSE_NOT_FOUND)
            return

        if not any(member.id == self.user.id for member in detail.members):
            logger.warning(
                f"User {self.user.id} is not a member of "
                f"conversation {self.conversation_id}"
            )
            await self.close(code=CLOSE_NOT_A_MEMBER)
            return

        self.room_group_name = events.conversation_group(self.conversation_id)
        await self.channel_layer.group_add(self.room_group_name, self.channel_name)
        await self.accept_connection()

        await self.send_messages()
        await self.send_typers()
        logger.info(f"User {self.user.id} connected to conversation {self.conversation_id}")

    async def disconnect(self, close_code):
        """
        Handle WebSocket disconnection.

        Leaves the channel group and clears the user's typing indicator.
        """
        if not self.room_group_name:
            return

        if self._typing_refresh is not None:
            self._typing_refresh.cancel()
        await self.channel_layer.group_discard(self.room_group_name, self.channel_name)
        await database_sync_to_async(TypingService.clear_typing)(self.conversation_id, self.user)
        logger.info(
            f"User {self.user.id} disconnected from conversation {self.conversation_id}"
        )

    async def handle_frame(self, frame_type: str, content: dict):
        """
        Run a client command.

        Failures are reported to this socket only; successes reach every
        subscriber through the change events.
        """
        handler = getattr(self, self.handlers[frame_type])
        result = await database_sync_to_async(handler)(content)
        if not result.success:
            await self.send_error(result.error, result.error_code)

    def _handle_message(self, content):
        return MessageService.send(self.conversation_id, self.user, frame_text(content, "body"))

    def _handle_typing(self, content):
        return TypingService.set_typing(self.conversation_id, self.user)

    def _handle_stop_typing(self, content):
        return TypingService.clear_typing(self.conversation_id, self.user)

    def _handle_read(self, content):
        return ConversationService.mark_read(self.user, self.conversation_id)

    def _handle_reaction(self, content):
        emoji = frame_text(content, "emoji")
        not_found = self._check_message_in_conversation(content.get("message_id"))
        if not_found is not None:
            return not_found
        return ReactionService.toggle(content["message_id"], self.user, emoji)

    def _handle_delete(self, content):
        not_found = self._check_message_in_conversation(content.get("message_id"))
        if not_found is not None:
            return not_found
        return MessageService.soft_delete(content["message_id"], self.user)

    def _check_message_in_conversation(self, message_id):
        if not isinstance(message_id, int) or isinstance(message_id, bool):
            raise ValidationError("'message_id' must be an integer", error_code="INVALID_FRAME")
        message = MessageService.get_by_id(message_id)
        if message is None or message.conversation_id != self.conversation_id:
            return ServiceResult.failure("Message not found", error_code="MESSAGE_NOT_FOUND")
        return None

    async def conversation_changed(self, event):
        """
        Handle conversation.changed events from channel layer.

        Sends a fresh snapshot for each changed topic.
        """
        topics = event.get("topics", [])
        if events.TOPIC_MESSAGES in topics:
            await self.send_messages()
        if events.TOPIC_TYPING in topics:
            await self.send_typers()

    async def send_messages(self):
        messages = await self._messages_snapshot()
        await self.send_json(
            {
                "type": "messages",
                "conversation_id": self.conversation_id,
                "messages": messages,
            }
        )

    async def send_typers(self):
        """
        Send the typers snapshot.

        While someone is shown as typing, a refresh is scheduled for the
        instant their indicator expires. A client that goes quiet without
        sending stop_typing therefore still disappears from the list.
        """
        typers, expires_at = await self._typing_snapshot()
        await self.send_json(
            {
                "type": "typing",
                "conversation_id": self.conversation_id,
                "typers": typers,
            }
        )
        self._schedule_typing_refresh(expires_at)

    def _schedule_typing_refresh(self, expires_at):
        if self._typing_refresh is not None:
            self._typing_refresh.cancel()
            self._typing_refresh = None
        if expires_at is None:
            return

        delay = max((expires_at - timezone.now()).total_seconds(), 0)
        self._typing_refresh = asyncio.create_task(self._refresh_typers_after(delay))

    async def _refresh_typers_after(self, delay: float):
        await asyncio.sleep(delay)
        self._typing_refresh = None
        await self.send_typers()

    @database_sync_to_async
    def _typing_snapshot(self):
        return (
            TypingService.list_active_typers(self.conversation_id, self.user),
            TypingService.next_expiry(self.conversation_id, self.user),
        )

    @database_sync_to_async
    def _messages_snapshot(self) -> list[dict]:
        messages = MessageService.list_for_conversation(self.conversation_id, viewer=self.user)
        return MessageSerializer(messages, many=True).data
