"""
Tests for chat API views.

Covers:
- Conversation list/create/detail, read cursor and typing endpoints
- Message list/send/delete and reaction toggles
- Membership and sender permissions
- Error bodies ({"error", "error_code"}) for service failures
"""

import pytest
from rest_framework import status

from chat.constants import MESSAGE_CONFIG
from chat.models import Conversation, Message
from chat.services import ConversationService, MessageService
from chat.tests.factories import DirectConversationFactory, MessageFactory

CONVERSATIONS_URL = "/api/v1/chat/conversations/"


def conversation_url(conversation_id):
    return f"{CONVERSATIONS_URL}{conversation_id}/"


def messages_url(conversation_id):
    return f"{conversation_url(conversation_id)}messages/"


def message_url(conversation_id, message_id):
    return f"{messages_url(conversation_id)}{message_id}/"


def toggle_url(conversation_id, message_id):
    return f"{message_url(conversation_id, message_id)}reactions/toggle/"


# =============================================================================
# Authentication
# =============================================================================


class TestAuthenticationRequired:
    @pytest.mark.parametrize(
        "method,url",
        [
            ("get", CONVERSATIONS_URL),
            ("post", CONVERSATIONS_URL),
            ("get", conversation_url(1)),
            ("get", messages_url(1)),
            ("post", messages_url(1)),
        ],
    )
    def test_unauthenticated_requests_are_rejected(self, api_client, db, method, url):
        response = getattr(api_client, method)(url, {}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# Conversations
# =============================================================================


class TestConversationList:
    def test_lists_own_conversations_with_preview(self, alice_client, alice, bob):
        conversation = DirectConversationFactory(members=[alice, bob])
        MessageService.send(conversation.id, bob, "hey alice")

        response = alice_client.get(CONVERSATIONS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1
        row = response.data[0]
        assert row["id"] == conversation.id
        assert row["is_group"] is False
        assert row["display_name"] == "Bob"
        assert row["member_count"] == 2
        assert row["latest_message"]["body"] == "hey alice"
        assert row["latest_message"]["sender_name"] == "Bob"
        assert row["unread_count"] == 1

    def test_deleted_latest_message_shows_placeholder(self, alice_client, alice, bob):
        conversation = DirectConversationFactory(members=[alice, bob])
        message = MessageService.send(conversation.id, bob, "never mind").data
        MessageService.soft_delete(message.id, bob)

        row = alice_client.get(CONVERSATIONS_URL).data[0]

        assert row["latest_message"]["is_deleted"] is True
        assert row["latest_message"]["body"] == MESSAGE_CONFIG.DELETED_PLACEHOLDER

    def test_empty_list(self, alice_client):
        response = alice_client.get(CONVERSATIONS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data == []


class TestConversationCreate:
    def test_create_direct(self, alice_client, alice, bob):
        response = alice_client.post(CONVERSATIONS_URL, {"user_id": bob.id}, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["is_group"] is False
        assert response.data["display_name"] == "Bob"
        assert {m["id"] for m in response.data["members"]} == {alice.id, bob.id}

    def test_create_direct_twice_returns_same_conversation(self, alice_client, bob_client, alice, bob):
        first = alice_client.post(CONVERSATIONS_URL, {"user_id": bob.id}, format="json")
        second = bob_client.post(CONVERSATIONS_URL, {"user_id": alice.id}, format="json")

        assert first.data["id"] == second.data["id"]
        assert Conversation.objects.count() == 1

    def test_create_direct_with_self_is_rejected(self, alice_client, alice):
        response = alice_client.post(CONVERSATIONS_URL, {"user_id": alice.id}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "SAME_USER"

    def test_create_direct_with_unknown_user(self, alice_client):
        response = alice_client.post(CONVERSATIONS_URL, {"user_id": 999999}, format="json")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "USER_NOT_FOUND"

    def test_create_group(self, alice_client, alice, bob, carol):
        response = alice_client.post(
            CONVERSATIONS_URL,
            {"name": "Weekend", "member_ids": [bob.id, carol.id]},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["is_group"] is True
        assert response.data["name"] == "Weekend"
        assert response.data["display_name"] == "Weekend"
        assert response.data["member_count"] == 3

    def test_create_group_without_name(self, alice_client, bob):
        response = alice_client.post(
            CONVERSATIONS_URL, {"name": "", "member_ids": [bob.id]}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "NAME_REQUIRED"

    def test_create_group_with_too_few_members(self, alice_client, alice):
        response = alice_client.post(
            CONVERSATIONS_URL, {"name": "Me", "member_ids": []}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "NOT_ENOUGH_MEMBERS"

    def test_direct_and_group_fields_together_are_rejected(self, alice_client, bob):
        response = alice_client.post(
            CONVERSATIONS_URL,
            {"user_id": bob.id, "name": "Both", "member_ids": [bob.id]},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert not Conversation.objects.exists()


class TestConversationDetail:
    def test_member_gets_detail(self, alice_client, group_conversation):
        response = alice_client.get(conversation_url(group_conversation.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["name"] == "Weekend Plans"
        assert response.data["member_count"] == 3

    def test_non_member_is_forbidden(self, outsider_client, group_conversation):
        response = outsider_client.get(conversation_url(group_conversation.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_A_MEMBER"

    def test_missing_conversation(self, alice_client):
        response = alice_client.get(conversation_url(999999))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "CONVERSATION_NOT_FOUND"


class TestMarkRead:
    def test_marks_read(self, alice_client, alice, bob, direct_conversation):
        MessageService.send(direct_conversation.id, bob, "unread")

        response = alice_client.post(f"{conversation_url(direct_conversation.id)}read/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["conversation_id"] == direct_conversation.id
        assert response.data["last_read_at"]
        assert ConversationService.get_unread_count(alice, direct_conversation.id) == 0

    def test_non_member_cannot_mark_read(self, outsider_client, direct_conversation):
        response = outsider_client.post(f"{conversation_url(direct_conversation.id)}read/")

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestTyping:
    def test_typing_round_trip(self, alice_client, bob_client, direct_conversation):
        url = f"{conversation_url(direct_conversation.id)}typing/"

        assert alice_client.post(url).status_code == status.HTTP_204_NO_CONTENT
        assert bob_client.get(url).data == {"typers": ["Alice"]}
        # Never see yourself
        assert alice_client.get(url).data == {"typers": []}

        assert alice_client.delete(url).status_code == status.HTTP_204_NO_CONTENT
        assert bob_client.get(url).data == {"typers": []}

    def test_non_member_cannot_type(self, outsider_client, direct_conversation):
        url = f"{conversation_url(direct_conversation.id)}typing/"

        response = outsider_client.post(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_A_MEMBER"


# =============================================================================
# Messages
# =============================================================================


class TestMessageList:
    def test_lists_messages_oldest_first(self, alice_client, alice, bob, direct_conversation):
        MessageService.send(direct_conversation.id, alice, "first")
        MessageService.send(direct_conversation.id, bob, "second")

        response = alice_client.get(messages_url(direct_conversation.id))

        assert response.status_code == status.HTTP_200_OK
        assert [m["body"] for m in response.data] == ["first", "second"]
        assert response.data[0]["sender"]["name"] == "Alice"

    def test_deleted_body_never_returned(self, alice_client, alice, direct_conversation):
        message = MessageService.send(direct_conversation.id, alice, "top secret").data
        MessageService.soft_delete(message.id, alice)

        response = alice_client.get(messages_url(direct_conversation.id))

        assert response.data[0]["body"] == MESSAGE_CONFIG.DELETED_PLACEHOLDER
        assert "top secret" not in str(response.content)

    def test_non_member_is_forbidden(self, outsider_client, direct_conversation):
        response = outsider_client.get(messages_url(direct_conversation.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestMessageCreate:
    def test_sends_message(self, alice_client, direct_conversation):
        response = alice_client.post(
            messages_url(direct_conversation.id), {"body": "hello bob"}, format="json"
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["body"] == "hello bob"
        assert response.data["reactions"] == []
        assert Message.objects.filter(conversation=direct_conversation).count() == 1

    def test_whitespace_body_is_rejected(self, alice_client, direct_conversation):
        response = alice_client.post(
            messages_url(direct_conversation.id), {"body": "   "}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "EMPTY_BODY"

    def test_overlong_body_is_rejected(self, alice_client, direct_conversation):
        body = "a" * (MESSAGE_CONFIG.MAX_BODY_LENGTH + 1)

        response = alice_client.post(
            messages_url(direct_conversation.id), {"body": body}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "BODY_TOO_LONG"

    def test_non_member_cannot_send(self, outsider_client, direct_conversation):
        response = outsider_client.post(
            messages_url(direct_conversation.id), {"body": "hi"}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert not Message.objects.exists()


class TestMessageDelete:
    def test_sender_deletes(self, alice_client, alice, direct_conversation):
        message = MessageService.send(direct_conversation.id, alice, "oops").data

        response = alice_client.delete(message_url(direct_conversation.id, message.id))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        message.refresh_from_db()
        assert message.is_deleted is True

    def test_other_member_cannot_delete(self, bob_client, alice, direct_conversation):
        message = MessageService.send(direct_conversation.id, alice, "mine").data

        response = bob_client.delete(message_url(direct_conversation.id, message.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "PERMISSION_DENIED"

    def test_message_from_other_conversation_is_not_found(
        self, alice_client, alice, direct_conversation, group_conversation
    ):
        message = MessageFactory(conversation=group_conversation, sender=alice)

        response = alice_client.delete(message_url(direct_conversation.id, message.id))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "MESSAGE_NOT_FOUND"


class TestReactionToggle:
    def test_toggle_adds_then_removes(self, bob_client, alice, direct_conversation):
        message = MessageService.send(direct_conversation.id, alice, "react to me").data
        url = toggle_url(direct_conversation.id, message.id)

        added = bob_client.post(url, {"emoji": "👍"}, format="json")
        removed = bob_client.post(url, {"emoji": "👍"}, format="json")

        assert added.status_code == status.HTTP_200_OK
        assert added.data["reactions"] == [
            {"emoji": "👍", "count": 1, "reacted_by_me": True, "user_names": ["Bob"]}
        ]
        assert removed.data["reactions"] == []

    def test_invalid_emoji(self, bob_client, alice, direct_conversation):
        message = MessageService.send(direct_conversation.id, alice, "hi").data

        response = bob_client.post(
            toggle_url(direct_conversation.id, message.id), {"emoji": "🍕"}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_EMOJI"

    def test_non_member_cannot_react(self, outsider_client, alice, direct_conversation):
        message = MessageService.send(direct_conversation.id, alice, "hi").data

        response = outsider_client.post(
            toggle_url(direct_conversation.id, message.id), {"emoji": "👍"}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
