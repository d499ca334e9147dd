"""
Chat app for real-time messaging.

This app handles:
- Conversations (direct and group)
- Message sending, history and soft deletion
- Emoji reactions (one per user per message)
- Read cursors and unread counts
- Typing indicators
- WebSocket live updates

Related apps:
    - users: User model, directory and presence

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for WebSocket handlers.
    See routing.py for WebSocket URL patterns.

Usage:
    from chat.services import ConversationService, MessageService

    # Open a direct conversation
    conversation = ConversationService.get_or_create_direct(user, other_user).data

    # Send message
    message = MessageService.send(conversation.id, user, "Hello!").data
"""
