"""
User directory and presence service layer.

Services:
    UserDirectoryService: Upsert from the identity provider, lookups, listing, search
    PresenceService: Online flag and last-seen timestamp

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - Reads referencing missing users return None or empty lists
    - upsert_user is the only ingress point for identity-provider data

Usage:
    from users.services import PresenceService, UserDirectoryService

    result = UserDirectoryService.upsert_user(
        external_auth_id="user_2abc",
        name="Ada Lovelace",
        email="ada@example.com",
        avatar_url="https://img.example.com/ada.png",
    )
    user = result.data

    PresenceService.set_online_status(user.id, True)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import IntegrityError
from django.utils import timezone

from core.services import BaseService, ServiceResult
from users.models import User
from users.signals import presence_changed

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

# Identity provider events that carry a user profile
USER_SYNC_EVENTS = frozenset({"user.created", "user.updated"})

ANONYMOUS_NAME = "Anonymous"


class UserDirectoryService(BaseService):
    """
    Service for user directory operations.

    Methods:
        upsert_user: Create or refresh a user keyed on external_auth_id
        sync_from_event: Apply an identity provider user event
        get_by_external_id: Point lookup by external id
        get_by_id: Point lookup by primary key
        list_excluding: Everyone except the caller, for discovery
        search_by_name: Case-insensitive substring search on name
    """

    PROFILE_FIELDS = ("name", "email", "avatar_url")

    @classmethod
    def upsert_user(
        cls,
        external_auth_id: str,
        name: str = "",
        email: str = "",
        avatar_url: str = "",
    ) -> ServiceResult[User]:
        """
        Create or update a user keyed on external_auth_id.

        On create the user starts offline with last_seen=now. On update
        only the profile fields are refreshed; presence is left alone.
        Calling again with unchanged data writes nothing.

        Two concurrent first syncs for the same id race on the unique
        constraint; the loser re-reads the winner's row and updates it.

        Args:
            external_auth_id: Identifier from the identity provider
            name: Display name
            email: Primary email (may be blank)
            avatar_url: Profile image URL (may be blank)

        Returns:
            ServiceResult with the User

        Error codes:
            EXTERNAL_ID_REQUIRED: external_auth_id is blank
        """
        external_auth_id = (external_auth_id or "").strip()
        if not external_auth_id:
            return ServiceResult.failure(
                "External auth id is required",
                error_code="EXTERNAL_ID_REQUIRED",
            )

        profile = {
            "name": (name or "").strip(),
            "email": User.objects.normalize_email(email or ""),
            "avatar_url": avatar_url or "",
        }

        user = cls.get_by_external_id(external_auth_id)
        if user is None:
            try:
                with cls.atomic():
                    user = User.objects.create_user(
                        external_auth_id=external_auth_id,
                        is_online=False,
                        last_seen=timezone.now(),
                        **profile,
                    )
                cls.get_logger().info(
                    f"Created user {user.id} for external id {external_auth_id}"
                )
                return ServiceResult.success(user)
            except IntegrityError:
                # Lost the race with a concurrent sync for the same id
                user = User.objects.get(external_auth_id=external_auth_id)

        changed = [
            field for field, value in profile.items() if getattr(user, field) != value
        ]
        if changed:
            for field in changed:
                setattr(user, field, profile[field])
            with cls.atomic():
                user.save(update_fields=[*changed, "updated_at"])
            cls.get_logger().info(f"Refreshed {', '.join(changed)} for user {user.id}")

        return ServiceResult.success(user)

    @classmethod
    def sync_from_event(cls, payload: dict[str, Any]) -> ServiceResult[User | None]:
        """
        Apply a user event from the identity provider's webhook.

        Handles ``user.created`` and ``user.updated``; other event types
        succeed with None so the provider does not retry them.

        Payload shape:
            {
                "type": "user.created",
                "data": {
                    "id": "user_2abc",
                    "first_name": "Ada",
                    "last_name": "Lovelace",
                    "email_addresses": [{"email_address": "ada@example.com"}],
                    "image_url": "https://img.example.com/ada.png"
                }
            }

        Args:
            payload: Decoded webhook body

        Returns:
            ServiceResult with the User, or None for ignored events

        Error codes:
            EXTERNAL_ID_REQUIRED: data.id missing on a user event
        """
        event_type = payload.get("type")
        if event_type not in USER_SYNC_EVENTS:
            cls.get_logger().debug(f"Ignoring identity event {event_type!r}")
            return ServiceResult.success(None)

        data = payload.get("data") or {}
        full_name = f"{data.get('first_name') or ''} {data.get('last_name') or ''}"
        addresses = data.get("email_addresses") or []
        email = addresses[0].get("email_address", "") if addresses else ""

        return cls.upsert_user(
            external_auth_id=data.get("id") or "",
            name=full_name.strip() or ANONYMOUS_NAME,
            email=email,
            avatar_url=data.get("image_url") or "",
        )

    @classmethod
    def get_by_external_id(cls, external_auth_id: str) -> User | None:
        """Return the user with this external id, or None."""
        return User.objects.filter(external_auth_id=external_auth_id).first()

    @classmethod
    def get_by_id(cls, user_id: int) -> User | None:
        """Return the user with this primary key, or None."""
        return User.objects.filter(pk=user_id).first()

    @classmethod
    def list_excluding(cls, self_id: int) -> list[User]:
        """
        List every user except the caller, ordered by name.

        Args:
            self_id: The caller's user id

        Returns:
            List of users
        """
        return list(User.objects.exclude(pk=self_id).order_by("name", "id"))

    @classmethod
    def search_by_name(cls, term: str, self_id: int) -> list[User]:
        """
        Case-insensitive substring search on name, excluding the caller.

        A blank term returns the same list as list_excluding, so a cleared
        search box shows the full directory.

        Args:
            term: Search text
            self_id: The caller's user id

        Returns:
            List of matching users ordered by name
        """
        term = (term or "").strip()
        if not term:
            return cls.list_excluding(self_id)

        return list(
            User.objects.exclude(pk=self_id)
            .filter(name__icontains=term)
            .order_by("name", "id")
        )


class PresenceService(BaseService):
    """
    Service for the per-user online flag.

    Presence is a single mutable flag per user with no session table.
    Multiple sessions for one user are not distinguished: whichever
    connect or disconnect happens last decides the flag.

    Methods:
        set_online_status: Set is_online and refresh last_seen
    """

    @classmethod
    def set_online_status(cls, user_id: int, is_online: bool) -> ServiceResult[User]:
        """
        Set a user's online flag and refresh last_seen.

        last_seen is refreshed on every call, including repeated calls
        with the same value, so it doubles as a heartbeat.

        Args:
            user_id: The user to update
            is_online: New online flag

        Returns:
            ServiceResult with the refreshed User

        Error codes:
            USER_NOT_FOUND: No user with this id
        """
        now = timezone.now()
        with cls.atomic():
            updated = User.objects.filter(pk=user_id).update(
                is_online=is_online,
                last_seen=now,
                updated_at=now,
            )

        if not updated:
            return ServiceResult.failure(
                "User not found",
                error_code="USER_NOT_FOUND",
            )

        user = User.objects.get(pk=user_id)
        presence_changed.send(sender=User, user=user)

        cls.get_logger().debug(
            f"User {user_id} is now {'online' if is_online else 'offline'}"
        )
        return ServiceResult.success(user)
