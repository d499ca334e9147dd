"""
Custom user manager for externally identified users.

Users are keyed on the identifier issued by the external identity
provider. Regular users never get a usable password; only admin
accounts created with createsuperuser can log in to the Django admin.

Related files:
    - models.py: User model that uses this manager
    - services.py: UserDirectoryService.upsert_user (the normal creation path)
"""

from django.contrib.auth.models import BaseUserManager


class UserManager(BaseUserManager):
    """
    Custom manager for User model keyed on external_auth_id.

    Usage:
        # Create a synced user (no password)
        user = User.objects.create_user(
            external_auth_id="user_2abc",
            name="Ada Lovelace",
            email="ada@example.com",
        )

        # Create an admin account
        admin = User.objects.create_superuser(
            external_auth_id="admin",
            password="adminpassword",
        )
    """

    def create_user(self, external_auth_id, password=None, **extra_fields):
        """
        Create and save a user with the given external identifier.

        Args:
            external_auth_id: Identifier from the identity provider (required)
            password: Optional password (admin accounts only)
            **extra_fields: Additional fields to set on the user

        Returns:
            User: The created user instance

        Raises:
            ValueError: If external_auth_id is not provided
        """
        if not external_auth_id:
            raise ValueError("The external_auth_id field must be set")

        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)

        email = extra_fields.pop("email", "")
        if email:
            email = self.normalize_email(email)

        user = self.model(external_auth_id=external_auth_id, email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            # Synced users authenticate through the identity provider
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_superuser(self, external_auth_id, password=None, **extra_fields):
        """
        Create and save a superuser.

        Args:
            external_auth_id: Login identifier for the admin account
            password: Admin password (required for admin login)
            **extra_fields: Additional fields to set on the user

        Returns:
            User: The created superuser instance

        Raises:
            ValueError: If is_staff or is_superuser is not True
        """
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self.create_user(external_auth_id, password, **extra_fields)
