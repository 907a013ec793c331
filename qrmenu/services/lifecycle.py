"""
Order Lifecycle

Status state machine for submitted orders plus the listing and
aggregation helpers used by the dashboard.

States:
    pending (initial) -> preparing -> delivered (terminal)
    pending / preparing -> cancelled (terminal)

Nothing leaves a terminal state. Between non-terminal states the
default rules are permissive: any target is accepted, including
``preparing -> pending`` and ``pending -> delivered``. Setting
``strict=True`` restricts changes to forward progression.
"""

import logging
from datetime import date, timezone, tzinfo
from typing import Iterable, List, Optional

from qrmenu.core.exceptions import InvalidTransitionError, OrderNotFoundError, StaleWriteError
from qrmenu.schemas import Order, OrderStatus, StatusFilter
from qrmenu.services.repository.base import BaseRepository

logger = logging.getLogger(__name__)


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Forward-only progression, only consulted in strict mode
FORWARD_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.PREPARING, OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
}


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def validate_transition(current: OrderStatus, new_status: OrderStatus, strict: bool = False) -> None:
    """
    Raise InvalidTransitionError unless ``current -> new_status`` is allowed.
    """
    if is_terminal(current):
        raise InvalidTransitionError(
            current.value,
            new_status.value,
            f"Order is already {current.value}; its status can no longer change",
        )
    if strict and new_status not in FORWARD_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, new_status.value)


def transition(order: Order, new_status: OrderStatus, strict: bool = False) -> Order:
    """Return a new snapshot of ``order`` with ``new_status`` and the next version."""
    validate_transition(order.status, new_status, strict=strict)
    return order.model_copy(update={"status": new_status, "version": order.version + 1})


# =============================================================================
# LISTING & AGGREGATION
# =============================================================================

def filter_by_status(orders: Iterable[Order], status: StatusFilter) -> List[Order]:
    """Orders with ``status`` (or all of them for "all"), input order kept."""
    if status == "all":
        return list(orders)
    status = OrderStatus(status)
    return [order for order in orders if order.status == status]


def sort_by_recency(orders: Iterable[Order]) -> List[Order]:
    """Newest first; orders with equal timestamps keep their input order."""
    return sorted(orders, key=lambda order: order.timestamp, reverse=True)


def count_by_status(orders: Iterable[Order], status: OrderStatus) -> int:
    return sum(1 for order in orders if order.status == status)


def aggregate_revenue(orders: Iterable[Order], day: date, tz: tzinfo = timezone.utc) -> float:
    """
    Sum of order totals placed on calendar ``day``.

    Timestamps are converted to ``tz`` before taking their date, so the
    boundary is midnight in that zone rather than a rolling 24 hours.
    """
    revenue = sum(
        order.total for order in orders
        if order.timestamp.astimezone(tz).date() == day
    )
    return round(revenue, 2)


# =============================================================================
# CONTROLLER
# =============================================================================

class OrderLifecycleController:
    """
    Reads and changes order statuses in the order repository.

    Status writes are conditional on the version that was read, so two
    admins changing the same order cannot silently overwrite each other:
    the second write fails with StaleWriteError. Callers holding an
    older snapshot (a dashboard tab) pass its version as
    ``expected_version`` to get the same protection across requests.

    Args:
        repository: Order repository
        strict: Only allow forward progression
    """

    def __init__(self, repository: BaseRepository[Order], strict: bool = False):
        self.repository = repository
        self.strict = strict

    async def get_order(self, order_id: str) -> Order:
        order = await self.repository.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def list_orders(self, status: StatusFilter = "all") -> List[Order]:
        orders = await self.repository.list()
        return sort_by_recency(filter_by_status(orders, status))

    async def set_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        expected_version: Optional[int] = None,
    ) -> Order:
        """
        Change an order's status.

        Args:
            order_id: Order to change
            new_status: Requested status
            expected_version: Version the caller last saw. When given,
                the change is refused if the order moved on since.

        Raises:
            OrderNotFoundError: Unknown ``order_id``
            StaleWriteError: The order changed since it was read
            InvalidTransitionError: The order is delivered or cancelled
        """
        current = await self.get_order(order_id)
        if expected_version is not None and current.version != expected_version:
            logger.info(
                f"Rejected stale status change of {order_id}: "
                f"caller saw version {expected_version}, stored is {current.version}"
            )
            raise StaleWriteError(order_id, expected_version, current.version)

        try:
            updated = transition(current, new_status, strict=self.strict)
        except InvalidTransitionError:
            logger.info(
                f"Rejected status change of {order_id}: "
                f"{current.status.value} -> {new_status.value}"
            )
            raise

        stored = await self.repository.upsert(updated, expected_version=current.version)
        logger.info(
            f"Order {order_id} status: {current.status.value} -> {new_status.value} "
            f"(version {stored.version})"
        )
        return stored

    async def revenue_for(self, day: date, tz: Optional[tzinfo] = None) -> float:
        orders = await self.repository.list()
        return aggregate_revenue(orders, day, tz or timezone.utc)
