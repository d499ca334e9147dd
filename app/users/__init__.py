"""
Users app: the directory of people who can chat.

This app handles:
- The project user model, keyed on the identity provider's user id
- Upsert from the identity provider (sync endpoint and webhook)
- Directory listing and name search
- The online flag and last-seen timestamp

Related apps:
    - chat: Conversations, messages and live updates between users

Usage:
    from users.services import UserDirectoryService, PresenceService

    user = UserDirectoryService.upsert_user("user_2abc", name="Ada").data
    PresenceService.set_online_status(user.id, True)
"""
