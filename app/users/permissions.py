"""
Permission classes for the identity sync endpoints.

HasIdentitySyncSecret guards the endpoints the identity provider bridge
calls. The shared secret is configured with IDENTITY_SYNC_SECRET; when it
is unset every request is refused.
"""

from __future__ import annotations

import hmac
import logging
from typing import TYPE_CHECKING

from django.conf import settings
from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView

logger = logging.getLogger(__name__)

SYNC_SECRET_HEADER = "X-Identity-Sync-Secret"


class HasIdentitySyncSecret(permissions.BasePermission):
    """Allows access only to callers presenting the identity sync secret."""

    message = "Invalid or missing identity sync secret."

    def has_permission(self, request: Request, view: APIView) -> bool:
        expected = getattr(settings, "IDENTITY_SYNC_SECRET", "")
        if not expected:
            logger.warning("IDENTITY_SYNC_SECRET is not configured; refusing sync call")
            return False

        provided = request.headers.get(SYNC_SECRET_HEADER, "")
        return hmac.compare_digest(provided.encode(), expected.encode())
