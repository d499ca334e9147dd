"""
Signals emitted by the users app.

Signals:
    presence_changed: Sent after a user's is_online/last_seen changed.
        Receivers get ``user`` (the refreshed User instance). The chat
        app listens to push fresh sidebars to the user's conversations.

Usage:
    from django.dispatch import receiver
    from users.signals import presence_changed

    @receiver(presence_changed)
    def on_presence_changed(sender, user, **kwargs):
        ...
"""

from django.dispatch import Signal

presence_changed = Signal()
