"""
In-Memory Notification Feed

Keeps the most recent notifications of each channel in a bounded
deque. Clients poll ``drain`` to show and acknowledge them.
"""

import logging
from collections import defaultdict, deque
from typing import Deque, Dict, List

from qrmenu.services.notifications.base import BaseNotificationService, Notification

logger = logging.getLogger(__name__)


class InMemoryNotificationFeed(BaseNotificationService):
    """Bounded per-channel notification queues."""

    def __init__(self, max_per_channel: int = 50):
        self.max_per_channel = max_per_channel
        self._channels: Dict[str, Deque[Notification]] = defaultdict(
            lambda: deque(maxlen=self.max_per_channel)
        )
        logger.info(f"InMemoryNotificationFeed initialized (max_per_channel={max_per_channel})")

    @property
    def provider_name(self) -> str:
        return "memory"

    def publish(self, channel: str, notification: Notification) -> None:
        self._channels[channel].append(notification)
        log = logger.warning if notification.variant == "destructive" else logger.info
        log(f"[{channel}] {notification.title}: {notification.description}")

    def drain(self, channel: str) -> List[Notification]:
        queue = self._channels.pop(channel, None)
        return list(queue) if queue else []

    def pending(self, channel: str) -> int:
        queue = self._channels.get(channel)
        return len(queue) if queue else 0
