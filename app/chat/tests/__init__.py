"""
Tests for chat app.

This package contains test modules for:
- test_models.py: Model constraints and display helpers
- test_services.py: ConversationService and MessageService tests
- test_reactions.py: ReactionService tests
- test_typing.py: TypingService and purge task tests
- test_views.py: REST API endpoint tests
- test_middleware.py: WebSocket JWT authentication
- test_consumers.py: WebSocket consumer tests
- test_integration.py: Two-user end-to-end journeys

Usage:
    pytest chat/tests/
    pytest chat/tests/test_consumers.py
"""
