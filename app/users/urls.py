"""
URL configuration for the users API.

URL Structure:
    /sync/               POST  Identity bridge upsert (shared secret)
    /webhook/            POST  Identity provider events (shared secret)
    /token/refresh/      POST  Refresh JWT access token
    /                    GET   Directory listing / ?search=
    /me/                 GET   Current user
    /me/presence/        POST  Set online flag
    /{id}/               GET   User detail

All URLs are prefixed with /api/v1/users/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from users.views import IdentityWebhookView, UserSyncView, UserViewSet

router = DefaultRouter()
router.include_root_view = False
router.register(r"", UserViewSet, basename="user")

app_name = "users"

urlpatterns = [
    path("sync/", UserSyncView.as_view(), name="sync"),
    path("webhook/", IdentityWebhookView.as_view(), name="webhook"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("", include(router.urls)),
]
