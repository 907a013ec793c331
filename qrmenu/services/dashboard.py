"""
Admin Dashboard

Aggregated statistics for the dashboard header and the order board
used by the admin orders tab.

The board keeps a local copy of the orders and applies status changes
in two visible phases: the change is applied locally first, then the
authoritative result from the lifecycle controller replaces it, or the
previous value is restored if the controller rejects the change.
"""

import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel

from qrmenu.core.exceptions import OrderNotFoundError
from qrmenu.schemas import MenuItem, Order, OrderStatus, StatusFilter
from qrmenu.services.lifecycle import (
    OrderLifecycleController,
    aggregate_revenue,
    count_by_status,
    filter_by_status,
    sort_by_recency,
    transition,
)

logger = logging.getLogger(__name__)

RECENT_ORDERS_LIMIT = 10


class DashboardSummary(BaseModel):
    """Dashboard header statistics."""
    total_menu_items: int
    total_orders: int
    pending_orders: int
    preparing_orders: int
    delivered_orders: int
    cancelled_orders: int
    today_revenue: float
    recent_orders: List[Order]


def summarize(
    menu_items: Sequence[MenuItem],
    orders: Sequence[Order],
    today: Optional[date] = None,
    tz: tzinfo = timezone.utc,
) -> DashboardSummary:
    today = today or datetime.now(tz).date()
    return DashboardSummary(
        total_menu_items=len(menu_items),
        total_orders=len(orders),
        pending_orders=count_by_status(orders, OrderStatus.PENDING),
        preparing_orders=count_by_status(orders, OrderStatus.PREPARING),
        delivered_orders=count_by_status(orders, OrderStatus.DELIVERED),
        cancelled_orders=count_by_status(orders, OrderStatus.CANCELLED),
        today_revenue=aggregate_revenue(orders, today, tz),
        recent_orders=sort_by_recency(orders)[:RECENT_ORDERS_LIMIT],
    )


class OrderBoard:
    """
    Local view of the orders with optimistic status changes.

    Example:
        >>> board = OrderBoard(controller)
        >>> await board.refresh()
        >>> await board.change_status("order-3", OrderStatus.PREPARING)
        >>> board.view("preparing")
    """

    def __init__(self, controller: OrderLifecycleController):
        self.controller = controller
        self._orders: Dict[str, Order] = {}

    async def refresh(self) -> List[Order]:
        orders = await self.controller.list_orders()
        self._orders = {order.id: order for order in orders}
        return self.view()

    def get(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def view(self, status: StatusFilter = "all") -> List[Order]:
        return sort_by_recency(filter_by_status(self._orders.values(), status))

    async def change_status(self, order_id: str, new_status: OrderStatus) -> Order:
        """
        Apply ``new_status`` locally, then confirm with the controller.

        Invalid transitions are rejected before anything changes. The
        write is conditional on the version this board last saw, so a
        change made elsewhere since the last refresh fails with
        StaleWriteError. If the controller fails, the local entry is
        rolled back and the error re-raised.
        """
        previous = self.get(order_id)
        self._orders[order_id] = transition(previous, new_status, strict=self.controller.strict)

        try:
            confirmed = await self.controller.set_status(
                order_id, new_status, expected_version=previous.version,
            )
        except Exception as e:
            self._orders[order_id] = previous
            logger.warning(f"Rolled back status change of {order_id}: {e}")
            raise

        self._orders[order_id] = confirmed
        return confirmed
