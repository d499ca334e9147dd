"""
Celery tasks for chat app.

This module defines periodic maintenance tasks:
- Typing indicator cleanup

Typing expiry is evaluated at read time, so the purge only keeps the
table small; nothing depends on it running.

Related files:
    - services.py: TypingService
    - config/settings.py: CELERY_BEAT_SCHEDULE

Usage:
    from chat.tasks import purge_stale_typing_indicators

    purge_stale_typing_indicators.delay()
"""

import logging

from celery import shared_task

from chat.services import TypingService

logger = logging.getLogger(__name__)


@shared_task
def purge_stale_typing_indicators() -> int:
    """
    Delete expired typing indicators.

    Returns:
        Number of indicators deleted
    """
    deleted = TypingService.purge_stale()
    logger.debug(f"purge_stale_typing_indicators removed {deleted} rows")
    return deleted
