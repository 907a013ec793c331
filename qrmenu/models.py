"""
SQLAlchemy Database Models

Tables backing the SQL data source. Order lines are stored as a JSON
string alongside the order; they are written once at submission and
never updated.
"""

from sqlalchemy import Column, DateTime, Enum, Float, Integer, String, Text

from qrmenu.database import Base
from qrmenu.schemas import MenuCategory, OrderStatus


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class MenuItemRow(Base):
    """Menu items offered to tables."""
    __tablename__ = "menu_items"

    id = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Float, nullable=False)
    category = Column(
        Enum(MenuCategory, values_callable=_enum_values, name="menu_category"),
        nullable=False,
        index=True,
    )
    image = Column(String(500), nullable=True)

    def __repr__(self):
        return f"<MenuItem {self.id} - {self.name} - {self.price:.2f}>"


class OrderRow(Base):
    """
    Submitted orders.

    ``version`` is bumped on every status change and checked by
    conditional updates so concurrent admins cannot overwrite each
    other silently.
    """
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True)
    table_id = Column(String(50), nullable=False, index=True)
    items = Column(Text, nullable=False)  # JSON string of order lines
    status = Column(
        Enum(OrderStatus, values_callable=_enum_values, name="order_status"),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    total = Column(Float, nullable=False)
    version = Column(Integer, nullable=False, default=1)

    def __repr__(self):
        return f"<Order {self.id} - table {self.table_id} - {self.status.value}>"


class RestaurantSettingsRow(Base):
    """Single-row table holding the menu display settings."""
    __tablename__ = "restaurant_settings"

    id = Column(Integer, primary_key=True, default=1)
    menu_title = Column(String(100), nullable=False)
    background_color = Column(String(7), nullable=False)
    title_color = Column(String(7), nullable=False)
    font_color = Column(String(7), nullable=False)
