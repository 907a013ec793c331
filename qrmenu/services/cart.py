"""
Order Draft (Cart)

Accumulates the items one table intends to order and turns them into
an immutable Order on submission.

A draft holds at most one line per menu item. Lines copy the item's
name and price when first added, so later menu edits never reach the
draft or the orders it produces.

Submission is guarded by an in-flight mark: while ``submitting`` is
active every other submit or mutation raises
SubmissionInProgressError, so a double click cannot create two orders
from the same draft.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Dict, List, Optional

from qrmenu.core.exceptions import EmptyOrderError, SubmissionInProgressError
from qrmenu.schemas import MenuItem, Order, OrderLineItem, OrderStatus, lines_total
from qrmenu.services.notifications.base import RESERVED_CHANNEL_PREFIX, Notification

logger = logging.getLogger(__name__)

Notifier = Callable[[Notification], None]


def generate_order_id() -> str:
    return f"order-{uuid.uuid4().hex[:12]}"


class OrderDraft:
    """
    Mutable pre-submission collection of order lines for one table.

    Args:
        notify: Optional callback receiving "item added" notifications.
            Called synchronously; exceptions it raises are logged and
            swallowed.

    Example:
        >>> draft = OrderDraft()
        >>> draft.add_item(curry, 2)
        >>> draft.compute_total()
        25.98
        >>> order = draft.submit("7")
    """

    def __init__(self, notify: Optional[Notifier] = None):
        self._lines: Dict[str, OrderLineItem] = {}
        self._notify = notify
        self._in_flight = False

    # =========================================================================
    # INSPECTION
    # =========================================================================

    @property
    def lines(self) -> List[OrderLineItem]:
        """Current lines, in the order they were first added."""
        return list(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def is_submitting(self) -> bool:
        return self._in_flight

    @property
    def item_count(self) -> int:
        """Number of units across all lines."""
        return sum(line.quantity for line in self._lines.values())

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._lines

    def get(self, item_id: str) -> Optional[OrderLineItem]:
        return self._lines.get(item_id)

    def compute_total(self) -> float:
        """Sum of price * quantity over all lines; 0 when empty."""
        return lines_total(self._lines.values())

    # =========================================================================
    # MUTATION
    # =========================================================================

    def add_item(self, menu_item: MenuItem, quantity: int = 1) -> None:
        """
        Add ``quantity`` units of ``menu_item``.

        Non-positive quantities are ignored. Adding an item that is
        already in the draft increases its quantity; the line keeps the
        name and price captured when it was first added.
        """
        self._ensure_idle()
        if quantity <= 0:
            return

        existing = self._lines.get(menu_item.id)
        if existing is not None:
            self._lines[menu_item.id] = existing.model_copy(
                update={"quantity": existing.quantity + quantity}
            )
        else:
            self._lines[menu_item.id] = OrderLineItem(
                item_id=menu_item.id,
                name=menu_item.name,
                price=menu_item.price,
                quantity=quantity,
            )

        self._emit(Notification(
            title="Added to order",
            description=f"{quantity} × {menu_item.name}",
        ))

    def update_quantity(self, item_id: str, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line."""
        self._ensure_idle()
        if quantity <= 0:
            self.remove_item(item_id)
            return

        existing = self._lines.get(item_id)
        if existing is not None:
            self._lines[item_id] = existing.model_copy(update={"quantity": quantity})

    def remove_item(self, item_id: str) -> None:
        self._ensure_idle()
        self._lines.pop(item_id, None)

    def clear(self) -> None:
        """Drop every line (explicit cancel)."""
        self._ensure_idle()
        self._lines.clear()

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    def submit(self, table_id: str) -> Order:
        """
        Freeze the draft into a pending Order and clear it.

        Raises:
            EmptyOrderError: The draft has no lines
            SubmissionInProgressError: A submission is already in flight
        """
        order = self._freeze(table_id)
        self._lines.clear()
        return order

    @asynccontextmanager
    async def submitting(self, table_id: str) -> AsyncIterator[Order]:
        """
        Two-phase submission.

        Yields the frozen order while the draft is marked in flight.
        The draft is cleared only if the block completes; if it raises
        (e.g. the order could not be stored) the lines stay as they were.

        Example:
            >>> async with draft.submitting("7") as order:
            ...     await repository.upsert(order)
        """
        order = self._freeze(table_id)
        self._in_flight = True
        try:
            yield order
        except BaseException:
            logger.debug(f"Submission of {order.id} aborted, draft kept")
            raise
        else:
            self._lines.clear()
        finally:
            self._in_flight = False

    def _freeze(self, table_id: str) -> Order:
        self._ensure_idle()
        if not self._lines:
            raise EmptyOrderError()

        items = tuple(self._lines.values())
        return Order(
            id=generate_order_id(),
            table_id=table_id,
            items=items,
            status=OrderStatus.PENDING,
            timestamp=datetime.now(timezone.utc),
            total=lines_total(items),
        )

    def _ensure_idle(self) -> None:
        if self._in_flight:
            raise SubmissionInProgressError()

    def _emit(self, notification: Notification) -> None:
        if self._notify is None:
            return
        try:
            self._notify(notification)
        except Exception:
            logger.exception("Failed to publish cart notification")


def normalize_table_id(table_id: str) -> str:
    """
    Strip surrounding whitespace; table ids must not be blank.

    Ids starting with ``@`` are reserved for staff notification channels.
    """
    cleaned = (table_id or "").strip()
    if not cleaned:
        raise ValueError("Table id must not be blank")
    if cleaned.startswith(RESERVED_CHANNEL_PREFIX):
        raise ValueError(f"Table ids must not start with '{RESERVED_CHANNEL_PREFIX}'")
    return cleaned


class DraftRegistry:
    """
    One draft per table session.

    Drafts live only in process memory. ``get`` creates a draft on
    first use, ``peek`` never does, and ``release`` forgets a draft once
    it is empty again, so only tables with something in their cart are
    held. ``notifier_for`` builds the notify callback handed to new
    drafts.
    """

    def __init__(self, notifier_for: Optional[Callable[[str], Notifier]] = None):
        self._drafts: Dict[str, OrderDraft] = {}
        self._notifier_for = notifier_for

    def peek(self, table_id: str) -> Optional[OrderDraft]:
        """The table's draft, or None if it has none."""
        return self._drafts.get(normalize_table_id(table_id))

    def get(self, table_id: str) -> OrderDraft:
        table_id = normalize_table_id(table_id)
        draft = self._drafts.get(table_id)
        if draft is None:
            notify = self._notifier_for(table_id) if self._notifier_for else None
            draft = OrderDraft(notify=notify)
            self._drafts[table_id] = draft
        return draft

    def discard(self, table_id: str) -> bool:
        """Forget a table's draft. Refuses while it is being submitted."""
        table_id = normalize_table_id(table_id)
        draft = self._drafts.get(table_id)
        if draft is None:
            return False
        if draft.is_submitting:
            raise SubmissionInProgressError()
        del self._drafts[table_id]
        return True

    def release(self, table_id: str) -> bool:
        """Forget the table's draft if it is empty and idle."""
        table_id = normalize_table_id(table_id)
        draft = self._drafts.get(table_id)
        if draft is None or not draft.is_empty or draft.is_submitting:
            return False
        del self._drafts[table_id]
        return True

    def __len__(self) -> int:
        return len(self._drafts)
