"""
Test configuration and fixtures for chat tests.

This module provides:
- User fixtures (alice, bob, carol, outsider)
- Conversation fixtures (direct and group)
- API client helpers for authenticated requests

Usage:
    def test_example(direct_conversation, alice_client):
        response = alice_client.get(f"/api/v1/chat/conversations/{direct_conversation.id}/")
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from chat.tests.factories import DirectConversationFactory, GroupConversationFactory
from users.tests.factories import UserFactory


def client_for(user) -> APIClient:
    """Return an API client carrying a JWT access token for user."""
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def alice(db):
    return UserFactory(name="Alice")


@pytest.fixture
def bob(db):
    return UserFactory(name="Bob")


@pytest.fixture
def carol(db):
    return UserFactory(name="Carol")


@pytest.fixture
def outsider(db):
    """A user who is not a member of any test conversation."""
    return UserFactory(name="Mallory")


# =============================================================================
# Conversation Fixtures
# =============================================================================


@pytest.fixture
def direct_conversation(alice, bob):
    """Direct conversation between alice and bob."""
    return DirectConversationFactory(members=[alice, bob])


@pytest.fixture
def group_conversation(alice, bob, carol):
    """Group conversation "Weekend Plans" with alice, bob and carol."""
    return GroupConversationFactory(name="Weekend Plans", members=[alice, bob, carol])


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def alice_client(alice):
    return client_for(alice)


@pytest.fixture
def bob_client(bob):
    return client_for(bob)


@pytest.fixture
def outsider_client(outsider):
    return client_for(outsider)
