"""
Signal receivers for the chat app.

Receivers:
    refresh_inboxes_on_presence_change: When a user goes online or offline,
        everyone who shares a conversation with them gets a sidebar refresh.

Connected in ChatConfig.ready().
"""

import logging

from django.dispatch import receiver

from users.signals import presence_changed

from chat import events
from chat.models import Membership

logger = logging.getLogger(__name__)


@receiver(presence_changed)
def refresh_inboxes_on_presence_change(sender, user, **kwargs):
    """Notify the user's conversation partners that their presence changed."""
    partner_ids = set(
        Membership.objects.filter(conversation__memberships__user=user)
        .exclude(user=user)
        .values_list("user_id", flat=True)
    )
    if partner_ids:
        events.broadcast_inboxes(partner_ids)
        logger.debug(f"Presence of user {user.id} pushed to {len(partner_ids)} partners")
