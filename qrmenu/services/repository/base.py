"""
Data Source Abstract Base Classes

Defines the storage contract used by the ordering core. Business
logic only ever talks to these interfaces; the in-memory and SQL
implementations are interchangeable.

Design Pattern: Repository + Strategy
    - ``BaseRepository`` is a keyed collection (get/list/upsert/delete)
    - ``BaseDataSource`` bundles the repositories and the settings store
    - The factory picks an implementation from ENV_MODE
"""

from abc import ABC, abstractmethod
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel

from qrmenu.schemas import MenuItem, Order, RestaurantSettings

EntityT = TypeVar("EntityT", bound=BaseModel)


class BaseRepository(ABC, Generic[EntityT]):
    """
    Keyed collection of frozen entities.

    Entities are identified by their ``id`` attribute. ``list`` returns
    a full snapshot in insertion order; there is no paging or filtering
    at the source.
    """

    @abstractmethod
    async def get(self, entity_id: str) -> Optional[EntityT]:
        """Return the entity or None."""
        pass

    @abstractmethod
    async def list(self) -> List[EntityT]:
        """Return every entity, oldest insertion first."""
        pass

    @abstractmethod
    async def upsert(
        self,
        entity: EntityT,
        expected_version: Optional[int] = None,
    ) -> EntityT:
        """
        Insert or replace an entity.

        Args:
            entity: The new value
            expected_version: When given, the stored entity must exist
                and carry this ``version``; otherwise StaleWriteError
                is raised and nothing is written.

        Returns:
            The stored value
        """
        pass

    @abstractmethod
    async def delete(self, entity_id: str) -> bool:
        """Delete an entity. Returns False when it did not exist."""
        pass


class BaseDataSource(ABC):
    """
    Abstract base class for data sources.

    Example:
        >>> data_source = get_data_source()
        >>> await data_source.initialize()
        >>> items = await data_source.list_menu_items()
    """

    menu_items: BaseRepository[MenuItem]
    orders: BaseRepository[Order]

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Name of the storage backend (e.g. "memory", "sql")."""
        pass

    @abstractmethod
    async def get_settings(self) -> RestaurantSettings:
        """Return the restaurant display settings."""
        pass

    @abstractmethod
    async def save_settings(self, settings: RestaurantSettings) -> RestaurantSettings:
        """Replace the restaurant display settings."""
        pass

    async def initialize(self) -> None:
        """Prepare the backend (create tables, seed data)."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the backend answers."""
        pass

    async def list_menu_items(self) -> List[MenuItem]:
        return await self.menu_items.list()

    async def list_orders(self) -> List[Order]:
        return await self.orders.list()
