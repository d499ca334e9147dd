"""
User directory models.

This module defines the project user model:
- User: Person synced from the external identity provider, with presence state

Related files:
    - managers.py: UserManager keyed on external_auth_id
    - services.py: UserDirectoryService and PresenceService

Invariants:
    - Exactly one User per external_auth_id (unique constraint)
    - is_online/last_seen are a single global flag per user; the last
      writer wins across sessions
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models
from django.utils import timezone

from users.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom user model keyed on the identity provider's user id.

    Profile fields (name, email, avatar) are owned by the identity
    provider and refreshed on every sync. Presence fields are owned by
    PresenceService.

    Fields:
        external_auth_id: Stable identifier from the identity provider
        name: Display name ("Anonymous" when the provider has none)
        email: Primary email address, may be blank
        avatar_url: Profile image URL, may be blank
        is_online: Whether the user currently has a live session
        last_seen: Refreshed on every presence update
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user was first synced
        updated_at: When the user record was last modified
    """

    external_auth_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stable user identifier issued by the identity provider",
    )
    name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Display name",
    )
    email = models.EmailField(
        max_length=254,
        blank=True,
        help_text="Primary email address from the identity provider",
    )
    avatar_url = models.URLField(
        max_length=1024,
        blank=True,
        help_text="Profile image URL from the identity provider",
    )

    # Presence
    is_online = models.BooleanField(
        default=False,
        help_text="Whether the user currently has a live session",
    )
    last_seen = models.DateTimeField(
        default=timezone.now,
        help_text="Last presence update",
    )

    # Account status flags
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    # Timestamps
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user was first synced",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "external_auth_id"
    EMAIL_FIELD = "email"
    REQUIRED_FIELDS = ["name"]

    objects = UserManager()

    class Meta:
        db_table = "users_user"
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["name", "id"]
        indexes = [
            models.Index(fields=["name"], name="users_user_name_idx"),
        ]

    def __str__(self):
        """Return the display name, falling back to the external id."""
        return self.name or self.external_auth_id

    def get_full_name(self):
        """Return the display name."""
        return self.name

    def get_short_name(self):
        """Return the first word of the display name."""
        return self.name.split(" ")[0] if self.name else ""
