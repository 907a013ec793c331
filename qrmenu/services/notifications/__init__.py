"""
Notification Service Factory

Returns the notification feed shared by all requests.
"""

import logging
from functools import lru_cache

from qrmenu.core.config import get_settings
from qrmenu.services.notifications.base import (
    ADMIN_CHANNEL,
    BaseNotificationService,
    Notification,
)
from qrmenu.services.notifications.feed import InMemoryNotificationFeed

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_service() -> BaseNotificationService:
    """Get the configured notification service."""
    settings = get_settings()
    logger.info("Notification Service: Using InMemoryNotificationFeed")
    return InMemoryNotificationFeed(max_per_channel=settings.notification_feed_size)


def reset_notification_service() -> None:
    """Clear the cached service instance."""
    get_notification_service.cache_clear()


__all__ = [
    "get_notification_service",
    "reset_notification_service",
    "ADMIN_CHANNEL",
    "BaseNotificationService",
    "InMemoryNotificationFeed",
    "Notification",
]
