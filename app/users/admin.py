"""
Django admin configuration for the users app.

Synced users are read-mostly: profile fields belong to the identity
provider and presence belongs to PresenceService.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from users.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin configuration for User model."""

    list_display = (
        "name",
        "external_auth_id",
        "email",
        "is_online",
        "last_seen",
        "is_staff",
    )
    list_filter = (
        "is_online",
        "is_active",
        "is_staff",
        "is_superuser",
    )
    search_fields = ("name", "email", "external_auth_id")
    ordering = ("name",)
    readonly_fields = ("last_seen", "date_joined", "updated_at", "last_login")

    fieldsets = (
        (None, {"fields": ("external_auth_id", "password")}),
        ("Profile", {"fields": ("name", "email", "avatar_url")}),
        ("Presence", {"fields": ("is_online", "last_seen")}),
        (
            "Status",
            {"fields": ("is_active", "is_staff", "is_superuser")},
        ),
        (
            "Permissions",
            {"fields": ("groups", "user_permissions")},
        ),
        (
            "Important dates",
            {"fields": ("date_joined", "updated_at", "last_login")},
        ),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("external_auth_id", "name", "password1", "password2"),
            },
        ),
    )
