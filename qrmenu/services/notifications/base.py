"""
Notification Service Abstract Base Class

User-facing notifications ("Added to order", "Order placed
successfully!") are published to a channel (a table id, or
``ADMIN_CHANNEL`` for staff) and collected until the client reads them.

Publishing is fire-and-forget: callers never wait for delivery and a
failed publish never fails the operation that triggered it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List

# Channels starting with this prefix are never table ids
RESERVED_CHANNEL_PREFIX = "@"
ADMIN_CHANNEL = f"{RESERVED_CHANNEL_PREFIX}admin"


@dataclass(frozen=True)
class Notification:
    """A short message shown to the user, toast-style."""
    title: str
    description: str = ""
    variant: str = "default"  # "default" or "destructive"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "title": self.title,
            "description": self.description,
            "variant": self.variant,
            "created_at": self.created_at,
        }


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    def publish(self, channel: str, notification: Notification) -> None:
        """Queue ``notification`` on ``channel`` without waiting."""
        pass

    @abstractmethod
    def drain(self, channel: str) -> List[Notification]:
        """Return and forget the notifications queued on ``channel``."""
        pass
