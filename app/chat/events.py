"""
Change notifications for live chat subscribers.

Services call these helpers after a mutation. Delivery is deferred with
transaction.on_commit, so a subscriber that re-queries on the event
always sees the committed state. Events carry no data beyond what
changed; consumers rebuild their snapshot from the services.

Channel Groups:
    conversation_<id>: Conversation sockets (messages, typing)
    user_<id>: Inbox sockets (sidebar conversation list)

Event Types:
    conversation.changed: {"conversation_id": int, "topics": [str]}
        Topics are "messages" and/or "typing".
    conversations.changed: {}
        The recipient's conversation list needs refreshing.

Usage:
    from chat import events

    events.broadcast_conversation(conversation.id, events.TOPIC_MESSAGES)
    events.broadcast_inboxes(member_ids)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

TOPIC_MESSAGES = "messages"
TOPIC_TYPING = "typing"


def conversation_group(conversation_id: int) -> str:
    """Channel group for sockets watching a conversation."""
    return f"conversation_{conversation_id}"


def user_group(user_id: int) -> str:
    """Channel group for a user's inbox sockets."""
    return f"user_{user_id}"


def _group_send(group: str, event: dict) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    try:
        async_to_sync(channel_layer.group_send)(group, event)
    except Exception:
        # The write is already committed; subscribers catch up on the next event
        logger.exception(f"Failed to publish {event['type']} to {group}")


def broadcast_conversation(conversation_id: int, *topics: str) -> None:
    """
    Notify conversation sockets that some of its state changed.

    Args:
        conversation_id: The changed conversation
        *topics: Which snapshots to refresh (TOPIC_MESSAGES, TOPIC_TYPING)
    """
    event = {
        "type": "conversation.changed",
        "conversation_id": conversation_id,
        "topics": list(topics),
    }
    transaction.on_commit(lambda: _group_send(conversation_group(conversation_id), event))


def broadcast_inboxes(user_ids: Iterable[int]) -> None:
    """
    Notify users that their conversation list changed.

    Args:
        user_ids: Users whose sidebar should refresh
    """
    recipients = sorted(set(user_ids))

    def send() -> None:
        for user_id in recipients:
            _group_send(user_group(user_id), {"type": "conversations.changed"})

    transaction.on_commit(send)
