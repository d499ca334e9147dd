"""
Tests for the User model and UserManager.
"""

import pytest
from django.db import IntegrityError

from users.models import User
from users.tests.factories import UserFactory


class TestUserManager:
    """Tests for UserManager.create_user() and create_superuser()."""

    def test_create_user_sets_unusable_password_without_password(self, db):
        user = User.objects.create_user(external_auth_id="user_abc", name="Ada")

        assert user.pk is not None
        assert not user.has_usable_password()

    def test_create_user_normalizes_email_domain(self, db):
        user = User.objects.create_user(
            external_auth_id="user_abc", email="ada@EXAMPLE.COM"
        )

        assert user.email == "ada@example.com"

    def test_create_user_requires_external_auth_id(self, db):
        with pytest.raises(ValueError):
            User.objects.create_user(external_auth_id="")

    def test_create_superuser_has_usable_password(self, db):
        admin = User.objects.create_superuser(
            external_auth_id="admin", password="AdminPass123!"
        )

        assert admin.is_staff
        assert admin.is_superuser
        assert admin.check_password("AdminPass123!")

    def test_create_superuser_rejects_is_staff_false(self, db):
        with pytest.raises(ValueError):
            User.objects.create_superuser(
                external_auth_id="admin", password="x", is_staff=False
            )


class TestUserModel:
    """Tests for User fields and constraints."""

    def test_new_user_starts_offline(self, db):
        user = UserFactory()

        assert user.is_online is False
        assert user.last_seen is not None

    def test_external_auth_id_is_unique(self, db):
        UserFactory(external_auth_id="user_dup")

        with pytest.raises(IntegrityError):
            UserFactory(external_auth_id="user_dup")

    def test_str_falls_back_to_external_id(self, db):
        named = UserFactory(name="Ada Lovelace")
        unnamed = UserFactory(name="", external_auth_id="user_nameless")

        assert str(named) == "Ada Lovelace"
        assert str(unnamed) == "user_nameless"

    def test_short_name_is_first_word(self, db):
        user = UserFactory(name="Ada Lovelace")

        assert user.get_short_name() == "Ada"
        assert user.get_full_name() == "Ada Lovelace"

    def test_default_ordering_is_by_name(self, db):
        UserFactory(name="Charlie")
        UserFactory(name="Alice")
        UserFactory(name="Bob")

        names = list(User.objects.values_list("name", flat=True))

        assert names == sorted(names)
