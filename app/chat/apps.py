"""
Chat application configuration.

This app provides the chat system with:
- Direct (1:1) and named group conversations
- Messages with soft deletion and emoji reactions
- Read tracking and derived unread counts
- Typing indicators and live updates over WebSockets
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"

    def ready(self):
        """Connect signal receivers."""
        from chat import signals  # noqa: F401
