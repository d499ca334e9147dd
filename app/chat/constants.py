"""
Constants and configuration for chat module features.

This module centralizes configuration values for:
- Message content limits and presentation
- The fixed reaction set
- Typing indicator timing
- Presence heartbeats for WebSocket clients

Import example:
    from chat.constants import MESSAGE_CONFIG, TYPING_CONFIG
"""

from typing import Final


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    MAX_BODY_LENGTH: Final[int] = 10000  # Characters

    # Shown in place of the body once a message is deleted
    DELETED_PLACEHOLDER: Final[str] = "This message was deleted"


# =============================================================================
# Reaction Configuration
# =============================================================================


class REACTION_CONFIG:
    """Configuration for message reactions."""

    # Display order matters: reaction groups are sorted by position here
    ALLOWED_EMOJIS: Final[tuple] = ("👍", "❤️", "😂", "😮", "😢")


# =============================================================================
# Typing Configuration
# =============================================================================


class TYPING_CONFIG:
    """Configuration for typing indicators."""

    # A typing row is visible while younger than this
    EXPIRY_MS: Final[int] = 2000

    # Clients send at most one typing frame per interval
    DEBOUNCE_MS: Final[int] = 500

    # Typers without a display name
    UNKNOWN_TYPER_NAME: Final[str] = "Someone"


# =============================================================================
# Presence Configuration
# =============================================================================


class PRESENCE_CONFIG:
    """Configuration for presence tracking."""

    # How often WebSocket clients should send a heartbeat frame
    HEARTBEAT_INTERVAL_SECONDS: Final[int] = 30
