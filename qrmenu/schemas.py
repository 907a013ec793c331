"""
Pydantic Schemas

Domain values shared by the ordering core and the data sources
(menu items, order lines, orders, restaurant settings) plus the
request/response bodies of the HTTP API.

Domain values are frozen: a status change or a catalog edit produces
a new value instead of mutating the old one, which is what keeps
submitted orders independent of later menu edits.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Allowed difference between an order total and the sum of its lines
TOTAL_TOLERANCE = 0.005

HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


# =============================================================================
# ENUMS
# =============================================================================

class MenuCategory(str, Enum):
    VEG = "veg"
    NON_VEG = "non-veg"
    DRY = "dry"
    DRINKS = "drinks"

    @property
    def display_name(self) -> str:
        return CATEGORY_NAMES[self]


CATEGORY_NAMES = {
    MenuCategory.VEG: "Vegetarian",
    MenuCategory.NON_VEG: "Non-Vegetarian",
    MenuCategory.DRY: "Dry Items",
    MenuCategory.DRINKS: "Drinks",
}


class OrderStatus(str, Enum):
    """Order status workflow."""
    PENDING = "pending"
    PREPARING = "preparing"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Status filter accepted by listings: a concrete status or everything
StatusFilter = Union[OrderStatus, Literal["all"]]


# =============================================================================
# DOMAIN VALUES
# =============================================================================

class MenuItem(BaseModel):
    """A dish or drink offered on the menu."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100, examples=["Vegetable Curry"])
    description: str = Field(default="", max_length=500)
    price: float = Field(..., ge=0, examples=[12.99])
    category: MenuCategory = MenuCategory.VEG
    image: Optional[str] = None


class OrderLineItem(BaseModel):
    """
    One (item, quantity) pairing in a draft or an order.

    ``name`` and ``price`` are copied from the menu item when the line
    is created; the line only references the menu item by id.
    """
    model_config = ConfigDict(frozen=True)

    item_id: str
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(..., gt=0)

    @property
    def line_total(self) -> float:
        return round(self.price * self.quantity, 2)


def lines_total(lines) -> float:
    """Sum of price * quantity over ``lines``, rounded to cents."""
    return round(sum(line.price * line.quantity for line in lines), 2)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Order(BaseModel):
    """
    A submitted order.

    ``items``, ``timestamp`` and ``total`` are fixed at submission;
    ``status`` changes produce a new snapshot with ``version`` bumped.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    table_id: str = Field(..., min_length=1)
    items: Tuple[OrderLineItem, ...] = Field(..., min_length=1)
    status: OrderStatus = OrderStatus.PENDING
    timestamp: datetime
    total: float = Field(..., ge=0)
    version: int = Field(default=1, ge=1)

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @model_validator(mode="after")
    def validate_lines(self) -> "Order":
        item_ids = [line.item_id for line in self.items]
        if len(item_ids) != len(set(item_ids)):
            raise ValueError("Order contains more than one line for the same item")

        expected = lines_total(self.items)
        if abs(self.total - expected) > TOTAL_TOLERANCE:
            raise ValueError(
                f"Order total {self.total:.2f} does not match its lines ({expected:.2f})"
            )
        return self

    @property
    def short_id(self) -> str:
        """Last six characters of the id, as shown to customers."""
        return self.id[-6:]

    @property
    def is_terminal(self) -> bool:
        return self.status in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


class RestaurantSettings(BaseModel):
    """Display configuration of the public menu."""
    model_config = ConfigDict(frozen=True)

    menu_title: str = Field(default="Our Menu", min_length=1, max_length=100)
    background_color: str = "#ffffff"
    title_color: str = "#000000"
    font_color: str = "#333333"

    @field_validator("background_color", "title_color", "font_color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        if not HEX_COLOR.match(v):
            raise ValueError("Colors must be hex strings such as #fff or #4a2c2a")
        return v.lower()


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class MenuItemCreate(BaseModel):
    """Request schema for adding a menu item."""
    name: str = Field(default="", max_length=100, examples=["Paneer Tikka"])
    description: str = Field(default="", max_length=500)
    price: float = Field(default=0.0, ge=0, examples=[14.99])
    category: MenuCategory = MenuCategory.VEG
    image: Optional[str] = None


class MenuItemUpdate(BaseModel):
    """
    Partial update of a menu item; omitted fields keep their value.

    An explicit ``image: null`` removes the image.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Optional[float] = Field(None, ge=0)
    category: Optional[MenuCategory] = None
    image: Optional[str] = None


class SettingsUpdate(BaseModel):
    """Partial update of the restaurant settings."""
    menu_title: Optional[str] = Field(None, min_length=1, max_length=100)
    background_color: Optional[str] = None
    title_color: Optional[str] = None
    font_color: Optional[str] = None


class CartItemAdd(BaseModel):
    """Add ``quantity`` units of a menu item to a table's cart.

    Non-positive quantities are accepted and ignored.
    """
    item_id: str = Field(..., min_length=1, examples=["item-1"])
    quantity: int = Field(default=1, examples=[2])


class CartQuantityUpdate(BaseModel):
    """Set a line's quantity; zero or less removes the line."""
    quantity: int = Field(..., examples=[3])


class StatusUpdate(BaseModel):
    """New status; ``expected_version`` is the version the dashboard last showed."""
    status: OrderStatus = Field(..., examples=["preparing"])
    expected_version: Optional[int] = Field(None, ge=1, examples=[1])


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class CartResponse(BaseModel):
    """Current content of a table's cart."""
    table_id: str
    items: List[OrderLineItem]
    total: float
    item_count: int
    submitting: bool = False


class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    total: int
    orders: List[Order]


class MenuSection(BaseModel):
    category: MenuCategory
    title: str
    items: List[MenuItem]


class TableMenuResponse(BaseModel):
    """Public menu view for one table."""
    table_id: str
    settings: RestaurantSettings
    sections: List[MenuSection]


class TableLinkResponse(BaseModel):
    table_id: str
    url: str
    filename: str


class NotificationResponse(BaseModel):
    title: str
    description: str
    variant: str
    created_at: datetime


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    data_source: str
    provider: str
    timestamp: datetime
