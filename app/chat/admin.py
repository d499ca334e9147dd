"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Conversation management
- Membership viewing
- Message moderation
"""

from django.contrib import admin

from chat.models import (
    Conversation,
    DirectConversationPair,
    Membership,
    Message,
    Reaction,
    TypingIndicator,
)


class MembershipInline(admin.TabularInline):
    """Inline display of members in conversation admin."""

    model = Membership
    extra = 0
    readonly_fields = ["last_read_at", "created_at"]
    raw_id_fields = ["user"]


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    """Admin interface for Conversation model."""

    list_display = ["id", "is_group", "name", "created_at"]
    list_filter = ["is_group", "created_at"]
    search_fields = ["name", "id"]
    readonly_fields = ["created_at", "updated_at"]
    inlines = [MembershipInline]
    ordering = ["-created_at"]


@admin.register(DirectConversationPair)
class DirectConversationPairAdmin(admin.ModelAdmin):
    """Admin interface for DirectConversationPair model."""

    list_display = ["conversation", "user_lower", "user_higher"]
    raw_id_fields = ["conversation", "user_lower", "user_higher"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = ["id", "conversation", "sender", "is_deleted", "created_at"]
    list_filter = ["is_deleted", "created_at"]
    search_fields = ["body"]
    readonly_fields = ["created_at", "updated_at", "deleted_at"]
    raw_id_fields = ["conversation", "sender"]
    ordering = ["-created_at"]


@admin.register(Reaction)
class ReactionAdmin(admin.ModelAdmin):
    """Admin interface for Reaction model."""

    list_display = ["id", "message", "user", "emoji", "updated_at"]
    list_filter = ["emoji"]
    raw_id_fields = ["message", "user"]


@admin.register(TypingIndicator)
class TypingIndicatorAdmin(admin.ModelAdmin):
    """Admin interface for TypingIndicator model."""

    list_display = ["id", "conversation", "user", "updated_at"]
    raw_id_fields = ["conversation", "user"]
