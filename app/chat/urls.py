"""
URL configuration for chat API.

URL Structure:
    Conversations:
        /conversations/                          GET, POST
        /conversations/{id}/                     GET
        /conversations/{id}/read/                POST
        /conversations/{id}/typing/              GET, POST, DELETE

    Messages:
        /conversations/{id}/messages/            GET, POST
        /conversations/{id}/messages/{pk}/       DELETE

    Reactions:
        /conversations/{id}/messages/{pk}/reactions/toggle/ POST

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from chat.views import ConversationViewSet, MessageViewSet

# Main router for conversations
router = DefaultRouter()
router.include_root_view = False
router.register(r"conversations", ConversationViewSet, basename="conversation")

app_name = "chat"

urlpatterns = [
    path("", include(router.urls)),
    # Nested routes for messages
    path(
        "conversations/<int:conversation_pk>/messages/",
        MessageViewSet.as_view({"get": "list", "post": "create"}),
        name="conversation-message-list",
    ),
    path(
        "conversations/<int:conversation_pk>/messages/<int:pk>/",
        MessageViewSet.as_view({"delete": "destroy"}),
        name="conversation-message-detail",
    ),
    # Reaction routes
    path(
        "conversations/<int:conversation_pk>/messages/<int:pk>/reactions/toggle/",
        MessageViewSet.as_view({"post": "toggle_reaction"}),
        name="conversation-message-reaction-toggle",
    ),
]
