"""
Serializers for the user directory.

This module provides DRF serializers for:
- User (read operations, also embedded in chat payloads)
- Identity sync requests (upsert from the identity provider bridge)
- Presence updates
- Identity provider webhook events

Related files:
    - views.py: Views that use these serializers
    - services.py: UserDirectoryService and PresenceService
"""

from rest_framework import serializers

from users.models import User
from users.services import USER_SYNC_EVENTS


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for User model (read operations).

    Used for directory listings and embedded in conversation and
    message payloads.
    """

    class Meta:
        model = User
        fields = [
            "id",
            "external_auth_id",
            "name",
            "email",
            "avatar_url",
            "is_online",
            "last_seen",
        ]
        read_only_fields = fields


class UserSyncSerializer(serializers.Serializer):
    """
    Request body for POST /api/v1/users/sync/.

    Field names mirror the identity provider's profile.
    """

    external_auth_id = serializers.CharField(max_length=255)
    name = serializers.CharField(max_length=255, allow_blank=True, required=False, default="")
    email = serializers.CharField(max_length=254, allow_blank=True, required=False, default="")
    avatar_url = serializers.CharField(
        max_length=1024, allow_blank=True, required=False, default=""
    )


class UserSyncResponseSerializer(serializers.Serializer):
    """Response for a successful sync: the user and a JWT pair for the client."""

    user = UserSerializer()
    access = serializers.CharField()
    refresh = serializers.CharField()


class PresenceSetSerializer(serializers.Serializer):
    """Request body for POST /api/v1/users/me/presence/."""

    is_online = serializers.BooleanField()


class IdentityEmailAddressSerializer(serializers.Serializer):
    email_address = serializers.CharField(allow_blank=True, required=False, default="")


class IdentityUserDataSerializer(serializers.Serializer):
    """The ``data`` object of a user.created / user.updated event."""

    id = serializers.CharField(max_length=255, allow_blank=True, required=False, default="")
    first_name = serializers.CharField(
        allow_blank=True, allow_null=True, required=False, default=""
    )
    last_name = serializers.CharField(
        allow_blank=True, allow_null=True, required=False, default=""
    )
    email_addresses = IdentityEmailAddressSerializer(many=True, required=False, default=list)
    image_url = serializers.CharField(
        max_length=1024, allow_blank=True, allow_null=True, required=False, default=""
    )


class IdentityEventSerializer(serializers.Serializer):
    """
    Request body for POST /api/v1/users/webhook/.

    Only user events have their ``data`` validated; other event types
    are passed through so they can be acknowledged and ignored.
    """

    type = serializers.CharField(allow_blank=True, required=False, default="")
    data = serializers.JSONField(required=False, default=dict)

    def validate(self, attrs):
        if attrs["type"] in USER_SYNC_EVENTS:
            data = IdentityUserDataSerializer(data=attrs["data"])
            if not data.is_valid():
                raise serializers.ValidationError({"data": data.errors})
            attrs["data"] = data.validated_data
        return attrs
