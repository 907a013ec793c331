"""
Demo data loaded into the in-memory data source.

Mirrors a small Indian restaurant: eight menu items, three orders
at different stages and the default display settings.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from qrmenu.schemas import (
    MenuCategory,
    MenuItem,
    Order,
    OrderLineItem,
    OrderStatus,
    RestaurantSettings,
    lines_total,
)

PLACEHOLDER_IMAGE = "/placeholder.svg?height=300&width=400"


def demo_menu_items() -> List[MenuItem]:
    rows = [
        ("item-1", "Vegetable Curry", "A delicious mix of seasonal vegetables in a rich curry sauce", 12.99, MenuCategory.VEG),
        ("item-2", "Paneer Tikka", "Grilled cottage cheese with spices and vegetables", 14.99, MenuCategory.VEG),
        ("item-3", "Chicken Biryani", "Fragrant rice dish with chicken and aromatic spices", 16.99, MenuCategory.NON_VEG),
        ("item-4", "Lamb Curry", "Tender pieces of lamb in a flavorful curry sauce", 18.99, MenuCategory.NON_VEG),
        ("item-5", "Papadum", "Crispy thin flatbread made from lentil flour", 3.99, MenuCategory.DRY),
        ("item-6", "Onion Bhaji", "Deep-fried onion fritters with spices", 5.99, MenuCategory.DRY),
        ("item-7", "Mango Lassi", "Refreshing yogurt drink with mango pulp", 4.99, MenuCategory.DRINKS),
        ("item-8", "Masala Chai", "Spiced tea with milk", 3.49, MenuCategory.DRINKS),
    ]
    return [
        MenuItem(
            id=item_id,
            name=name,
            description=description,
            price=price,
            category=category,
            image=PLACEHOLDER_IMAGE,
        )
        for item_id, name, description, price, category in rows
    ]


def _order(order_id, table_id, lines, status, timestamp) -> Order:
    items = tuple(
        OrderLineItem(item_id=item_id, name=name, price=price, quantity=quantity)
        for item_id, name, price, quantity in lines
    )
    return Order(
        id=order_id,
        table_id=table_id,
        items=items,
        status=status,
        timestamp=timestamp,
        total=lines_total(items),
    )


def demo_orders(now: Optional[datetime] = None) -> List[Order]:
    now = now or datetime.now(timezone.utc)
    return [
        _order(
            "order-1", "4",
            [("item-1", "Vegetable Curry", 12.99, 2), ("item-7", "Mango Lassi", 4.99, 2)],
            OrderStatus.DELIVERED,
            now - timedelta(hours=1),
        ),
        _order(
            "order-2", "2",
            [("item-3", "Chicken Biryani", 16.99, 1), ("item-6", "Onion Bhaji", 5.99, 1)],
            OrderStatus.PREPARING,
            now - timedelta(minutes=30),
        ),
        _order(
            "order-3", "7",
            [("item-4", "Lamb Curry", 18.99, 1), ("item-8", "Masala Chai", 3.49, 2)],
            OrderStatus.PENDING,
            now - timedelta(minutes=10),
        ),
    ]


def demo_settings() -> RestaurantSettings:
    return RestaurantSettings(
        menu_title="Spice Garden Restaurant",
        background_color="#ffffff",
        title_color="#4a2c2a",
        font_color="#333333",
    )
