"""
Test configuration and fixtures for users tests.

Usage:
    def test_example(user, authenticated_client):
        response = authenticated_client.get("/api/v1/users/me/")
        assert response.status_code == 200
"""

import pytest
from django.test import override_settings
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from users.permissions import SYNC_SECRET_HEADER
from users.tests.factories import UserFactory

SYNC_SECRET = "test-sync-secret"


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """Create a basic synced user."""
    return UserFactory(name="Alice Anderson")


@pytest.fixture
def other_user(db):
    """Create a second synced user."""
    return UserFactory(name="Bob Brown")


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client(user):
    """API client carrying a JWT access token for `user`."""
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


@pytest.fixture
def sync_client():
    """API client presenting the identity sync secret."""
    client = APIClient()
    client.credentials(**{f"HTTP_{SYNC_SECRET_HEADER.upper().replace('-', '_')}": SYNC_SECRET})
    with override_settings(IDENTITY_SYNC_SECRET=SYNC_SECRET):
        yield client
