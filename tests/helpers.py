"""Builders and test doubles shared by the test modules."""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional

from qrmenu.core.exceptions import TransientDataSourceError
from qrmenu.schemas import MenuCategory, MenuItem, Order, OrderLineItem, OrderStatus, lines_total
from qrmenu.services.repository import BaseRepository


def make_item(item_id: str = "item-a", price: float = 12.99, name: Optional[str] = None,
              category: MenuCategory = MenuCategory.VEG) -> MenuItem:
    return MenuItem(id=item_id, name=name or f"Dish {item_id}", price=price, category=category)


def make_order(order_id: str, status: OrderStatus = OrderStatus.PENDING,
               timestamp: Optional[datetime] = None, price: float = 10.0,
               quantity: int = 1, table_id: str = "1") -> Order:
    items = (OrderLineItem(item_id="item-a", name="Dish", price=price, quantity=quantity),)
    return Order(
        id=order_id,
        table_id=table_id,
        items=items,
        status=status,
        timestamp=timestamp or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        total=lines_total(items),
    )


class FlakyRepository(BaseRepository):
    """Wraps a repository, failing the first ``failures`` upserts."""

    def __init__(self, inner: BaseRepository, failures: int = 0,
                 error: Exception = None, delay: float = 0.0):
        self.inner = inner
        self.failures = failures
        self.error = error or TransientDataSourceError("simulated outage")
        self.delay = delay
        self.upsert_calls = 0

    async def get(self, entity_id):
        return await self.inner.get(entity_id)

    async def list(self) -> List:
        return await self.inner.list()

    async def upsert(self, entity, expected_version=None):
        self.upsert_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures > 0:
            self.failures -= 1
            raise self.error
        return await self.inner.upsert(entity, expected_version=expected_version)

    async def delete(self, entity_id):
        return await self.inner.delete(entity_id)
