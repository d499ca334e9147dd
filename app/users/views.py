"""
Views for the user directory, presence and identity sync.

Endpoints:
    POST /api/v1/users/sync/           Upsert a user from the identity bridge, returns JWT pair
    POST /api/v1/users/webhook/        Identity provider user events
    GET  /api/v1/users/                Directory (everyone except you), ?search=term
    GET  /api/v1/users/me/             Current user
    POST /api/v1/users/me/presence/    Set online/offline
    GET  /api/v1/users/{id}/           User detail

Design Decisions:
    - Sync endpoints authenticate with a shared secret, not a user token
    - All operations go through the service layer
    - Service failures are raised via ServiceResult.unwrap() and rendered
      by core.views.api_exception_handler
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from core.exceptions import NotFoundError
from users.models import User
from users.permissions import HasIdentitySyncSecret
from users.serializers import (
    IdentityEventSerializer,
    PresenceSetSerializer,
    UserSerializer,
    UserSyncResponseSerializer,
    UserSyncSerializer,
)
from users.services import PresenceService, UserDirectoryService

USER_ERRORS = {"USER_NOT_FOUND": NotFoundError}


class UserSyncView(APIView):
    """
    Upsert a user on behalf of the identity provider bridge.

    Called on sign-in and profile change. Returns the user and a fresh
    JWT pair the client uses for the REST API and WebSockets.
    """

    authentication_classes = []
    permission_classes = [HasIdentitySyncSecret]

    @extend_schema(
        operation_id="sync_user",
        summary="Sync user from identity provider",
        request=UserSyncSerializer,
        responses={
            200: UserSyncResponseSerializer,
            400: OpenApiResponse(description="Missing external_auth_id"),
            403: OpenApiResponse(description="Invalid sync secret"),
        },
        tags=["Users"],
    )
    def post(self, request):
        """Upsert the user and issue tokens."""
        serializer = UserSyncSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = UserDirectoryService.upsert_user(**serializer.validated_data).unwrap()

        refresh = RefreshToken.for_user(user)
        return Response(
            {
                "user": UserSerializer(user).data,
                "access": str(refresh.access_token),
                "refresh": str(refresh),
            }
        )


class IdentityWebhookView(APIView):
    """
    Receive user events from the identity provider.

    user.created and user.updated upsert the user; other event types are
    acknowledged and ignored.
    """

    authentication_classes = []
    permission_classes = [HasIdentitySyncSecret]

    @extend_schema(
        operation_id="identity_webhook",
        summary="Identity provider webhook",
        request=IdentityEventSerializer,
        responses={
            200: OpenApiResponse(description="Event applied or ignored"),
            400: OpenApiResponse(description="Malformed event or user event without an id"),
            403: OpenApiResponse(description="Invalid sync secret"),
        },
        tags=["Users"],
    )
    def post(self, request):
        """Apply a user event."""
        serializer = IdentityEventSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = UserDirectoryService.sync_from_event(serializer.validated_data).unwrap()
        if user is None:
            return Response({"status": "ignored"})
        return Response({"status": "synced", "user": UserSerializer(user).data})


@extend_schema_view(
    list=extend_schema(
        operation_id="list_users",
        summary="List or search users",
        parameters=[
            OpenApiParameter(
                "search",
                OpenApiTypes.STR,
                description="Case-insensitive substring match on name",
            )
        ],
        tags=["Users"],
    ),
    retrieve=extend_schema(
        operation_id="get_user",
        summary="Get user",
        tags=["Users"],
    ),
)
class UserViewSet(viewsets.GenericViewSet):
    """
    ViewSet for the user directory.

    list:
        Everyone except the current user, ordered by name.
        With ?search=term, only names containing term (case-insensitive).

    retrieve:
        A single user.

    me:
        The current user.

    presence:
        Set the current user's online flag.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = UserSerializer
    queryset = User.objects.all()
    lookup_value_regex = r"\d+"

    def list(self, request):
        """List users, optionally filtered by ?search=."""
        term = request.query_params.get("search")
        if term is None:
            users = UserDirectoryService.list_excluding(request.user.id)
        else:
            users = UserDirectoryService.search_by_name(term, request.user.id)
        return Response(UserSerializer(users, many=True).data)

    def retrieve(self, request, pk=None):
        """Get a single user."""
        user = UserDirectoryService.get_by_id(pk)
        if user is None:
            raise NotFoundError("User not found", error_code="USER_NOT_FOUND")
        return Response(UserSerializer(user).data)

    @extend_schema(
        operation_id="get_current_user",
        summary="Get current user",
        tags=["Users"],
    )
    @action(detail=False, methods=["get"])
    def me(self, request):
        """Return the current user."""
        return Response(UserSerializer(request.user).data)

    @extend_schema(
        operation_id="set_presence",
        summary="Set online status",
        description=(
            "Set the current user's online flag. last_seen is refreshed on "
            "every call. WebSocket clients do not need this: connecting and "
            "disconnecting the inbox socket sets it automatically."
        ),
        request=PresenceSetSerializer,
        responses={200: UserSerializer},
        tags=["Users"],
    )
    @action(detail=False, methods=["post"], url_path="me/presence")
    def presence(self, request):
        """Set the current user's online flag."""
        serializer = PresenceSetSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = PresenceService.set_online_status(
            request.user.id,
            serializer.validated_data["is_online"],
        ).unwrap(USER_ERRORS)

        return Response(UserSerializer(user).data, status=status.HTTP_200_OK)
