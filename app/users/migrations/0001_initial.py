"""
Create the user directory.

Changes:
    - Create User keyed on external_auth_id with presence fields
    - Index name for directory ordering and search
"""

from django.db import migrations, models
import django.utils.timezone

import users.managers


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                (
                    "last_login",
                    models.DateTimeField(
                        blank=True, null=True, verbose_name="last login"
                    ),
                ),
                (
                    "is_superuser",
                    models.BooleanField(
                        default=False,
                        help_text="Designates that this user has all permissions without explicitly assigning them.",
                        verbose_name="superuser status",
                    ),
                ),
                (
                    "external_auth_id",
                    models.CharField(
                        max_length=255,
                        unique=True,
                        help_text="Stable user identifier issued by the identity provider",
                    ),
                ),
                (
                    "name",
                    models.CharField(
                        max_length=255,
                        blank=True,
                        help_text="Display name",
                    ),
                ),
                (
                    "email",
                    models.EmailField(
                        max_length=254,
                        blank=True,
                        help_text="Primary email address from the identity provider",
                    ),
                ),
                (
                    "avatar_url",
                    models.URLField(
                        max_length=1024,
                        blank=True,
                        help_text="Profile image URL from the identity provider",
                    ),
                ),
                (
                    "is_online",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the user currently has a live session",
                    ),
                ),
                (
                    "last_seen",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        help_text="Last presence update",
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        default=True,
                        help_text="Whether this user account is active. Deselect instead of deleting.",
                    ),
                ),
                (
                    "is_staff",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the user can access the admin site.",
                    ),
                ),
                (
                    "date_joined",
                    models.DateTimeField(
                        auto_now_add=True,
                        help_text="When the user was first synced",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="When the user record was last modified",
                    ),
                ),
                (
                    "groups",
                    models.ManyToManyField(
                        blank=True,
                        help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.group",
                        verbose_name="groups",
                    ),
                ),
                (
                    "user_permissions",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Specific permissions for this user.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.permission",
                        verbose_name="user permissions",
                    ),
                ),
            ],
            options={
                "verbose_name": "user",
                "verbose_name_plural": "users",
                "db_table": "users_user",
                "ordering": ["name", "id"],
                "indexes": [
                    models.Index(fields=["name"], name="users_user_name_idx"),
                ],
            },
            managers=[
                ("objects", users.managers.UserManager()),
            ],
        ),
    ]
