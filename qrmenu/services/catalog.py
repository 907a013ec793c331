"""
Catalog Service

Menu management and restaurant display settings for the admin
dashboard, plus the read side used by the public table menu.

Menu items are frozen values: an edit stores a new value under the
same id. Orders copied name and price at submission, so editing or
deleting an item never changes an existing order.
"""

import logging
import uuid
from typing import Dict, List, Optional

from qrmenu.core.exceptions import MenuItemNotFoundError
from qrmenu.schemas import (
    MenuCategory,
    MenuItem,
    MenuItemCreate,
    MenuItemUpdate,
    RestaurantSettings,
    SettingsUpdate,
)
from qrmenu.services.repository.base import BaseDataSource

logger = logging.getLogger(__name__)


def generate_item_id() -> str:
    return f"item-{uuid.uuid4().hex[:12]}"


class CatalogService:
    """Reads and edits menu items and restaurant settings."""

    def __init__(self, data_source: BaseDataSource):
        self.data_source = data_source

    # =========================================================================
    # MENU ITEMS
    # =========================================================================

    async def list_menu_items(self, category: Optional[MenuCategory] = None) -> List[MenuItem]:
        items = await self.data_source.list_menu_items()
        if category is None:
            return items
        return [item for item in items if item.category == category]

    async def get_menu_item(self, item_id: str) -> MenuItem:
        item = await self.data_source.menu_items.get(item_id)
        if item is None:
            raise MenuItemNotFoundError(item_id)
        return item

    async def menu_by_category(self) -> Dict[MenuCategory, List[MenuItem]]:
        """Menu items grouped by category, in category declaration order."""
        grouped: Dict[MenuCategory, List[MenuItem]] = {category: [] for category in MenuCategory}
        for item in await self.data_source.list_menu_items():
            grouped[item.category].append(item)
        return grouped

    async def add_menu_item(self, data: MenuItemCreate) -> MenuItem:
        item = MenuItem(
            id=generate_item_id(),
            name=data.name.strip() or "New Item",
            description=data.description,
            price=data.price,
            category=data.category,
            image=data.image or None,
        )
        stored = await self.data_source.menu_items.upsert(item)
        logger.info(f"Menu item added: {stored.id} - {stored.name} (${stored.price:.2f})")
        return stored

    async def update_menu_item(self, item_id: str, changes: MenuItemUpdate) -> MenuItem:
        current = await self.get_menu_item(item_id)
        # An explicit null only means something for the optional image
        updates = {
            field: value
            for field, value in changes.model_dump(exclude_unset=True).items()
            if value is not None or field == "image"
        }
        # model_copy does not validate
        updated = MenuItem(**{**current.model_dump(), **updates})
        stored = await self.data_source.menu_items.upsert(updated)
        logger.info(f"Menu item updated: {item_id} ({', '.join(updates) or 'no changes'})")
        return stored

    async def delete_menu_item(self, item_id: str) -> None:
        deleted = await self.data_source.menu_items.delete(item_id)
        if not deleted:
            raise MenuItemNotFoundError(item_id)
        logger.info(f"Menu item deleted: {item_id}")

    # =========================================================================
    # SETTINGS
    # =========================================================================

    async def get_settings(self) -> RestaurantSettings:
        return await self.data_source.get_settings()

    async def update_settings(self, changes: SettingsUpdate) -> RestaurantSettings:
        current = await self.data_source.get_settings()
        updated = RestaurantSettings(
            **{**current.model_dump(), **changes.model_dump(exclude_unset=True, exclude_none=True)}
        )
        stored = await self.data_source.save_settings(updated)
        logger.info(f"Restaurant settings saved: {stored.menu_title}")
        return stored
