"""
Checkout Service

Turns a table's draft into a stored order.

The order (and its id) is built once, then written with bounded
retries: transient data source failures are retried with exponential
backoff, permanent ones are not. Because every attempt writes the same
id, a retry after an ambiguous failure cannot create a second order.
The draft is only cleared once the write succeeded.
"""

import asyncio
import logging
from typing import Optional

from qrmenu.core.exceptions import (
    EmptyOrderError,
    SubmissionFailedError,
    SubmissionInProgressError,
    TransientDataSourceError,
)
from qrmenu.schemas import Order
from qrmenu.services.cart import OrderDraft
from qrmenu.services.notifications.base import ADMIN_CHANNEL, BaseNotificationService, Notification
from qrmenu.services.repository.base import BaseRepository

logger = logging.getLogger(__name__)


class CheckoutService:
    """
    Submits drafts to the order repository.

    Attributes:
        max_attempts: Total write attempts per submission
        backoff_seconds: Delay before the first retry, doubled each time
        backoff_max_seconds: Upper bound for a single delay
    """

    def __init__(
        self,
        repository: BaseRepository[Order],
        notifier: Optional[BaseNotificationService] = None,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
        backoff_max_seconds: float = 4.0,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.repository = repository
        self.notifier = notifier
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.backoff_max_seconds = backoff_max_seconds

    def backoff_delay(self, attempt: int) -> float:
        """Delay after failed ``attempt`` (1-based)."""
        return min(self.backoff_seconds * 2 ** (attempt - 1), self.backoff_max_seconds)

    async def place_order(self, draft: OrderDraft, table_id: str) -> Order:
        """
        Submit ``draft`` for ``table_id``.

        Raises:
            EmptyOrderError: Nothing to order
            SubmissionInProgressError: The draft is already being submitted
            SubmissionFailedError: Retries exhausted
            DataSourceError: Permanent storage failure
        """
        try:
            async with draft.submitting(table_id) as order:
                logger.info(
                    f"Placing order {order.id} for table {table_id} "
                    f"({len(order.items)} lines, ${order.total:.2f})"
                )
                stored = await self._store(order)
        except EmptyOrderError:
            self._publish(table_id, Notification(
                title="Cannot place order",
                description="Your order is empty",
                variant="destructive",
            ))
            raise
        except SubmissionInProgressError:
            raise
        except TransientDataSourceError as e:
            self._publish_failure(table_id)
            raise SubmissionFailedError() from e
        except Exception:
            self._publish_failure(table_id)
            raise

        self._publish(table_id, Notification(
            title="Order placed successfully!",
            description=f"Your order #{stored.short_id} has been sent to the kitchen.",
        ))
        self._publish(ADMIN_CHANNEL, Notification(
            title=f"New order from table {table_id}",
            description=f"#{stored.short_id}: {len(stored.items)} items, ${stored.total:.2f}",
        ))
        return stored

    async def _store(self, order: Order) -> Order:
        attempt = 1
        while True:
            try:
                return await self.repository.upsert(order)
            except TransientDataSourceError as e:
                if attempt >= self.max_attempts:
                    logger.error(
                        f"Order {order.id} could not be stored after {attempt} attempts: {e}"
                    )
                    raise
                delay = self.backoff_delay(attempt)
                logger.warning(
                    f"Storing order {order.id} failed (attempt {attempt}/{self.max_attempts}), "
                    f"retrying in {delay:.2f}s: {e}"
                )
                await asyncio.sleep(delay)
                attempt += 1

    def _publish_failure(self, table_id: str) -> None:
        self._publish(table_id, Notification(
            title="Failed to place order",
            description="Please try again or call for assistance",
            variant="destructive",
        ))

    def _publish(self, channel: str, notification: Notification) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.publish(channel, notification)
        except Exception:
            logger.exception("Failed to publish checkout notification")
