"""
URL configuration for the chat engine.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/users/                 - User directory and identity sync
        sync/                      - Upsert from identity provider, returns JWT pair
        webhook/                   - Identity provider user.created/user.updated events
        token/refresh/             - Refresh an access token
        me/                        - Current user
        me/presence/               - Set online/offline
        {id}/                      - User detail
    /api/v1/chat/                  - Chat endpoints
        conversations/             - Conversation list/create
        conversations/{id}/        - Conversation detail
        conversations/{id}/read/   - Mark conversation as read
        conversations/{id}/typing/ - Active typers / set / clear typing
        conversations/{id}/messages/ - Message list/send
        conversations/{id}/messages/{pk}/ - Message delete
        conversations/{id}/messages/{pk}/reactions/toggle/ - Toggle reaction

WebSocket routes live in chat.routing.

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # User directory, presence and identity sync
    path("users/", include("users.urls")),
    # Chat
    path("chat/", include("chat.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Chat Engine Admin"
admin.site.site_title = "Chat Engine"
admin.site.index_title = "Conversations, messages and users"
