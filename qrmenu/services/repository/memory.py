"""
In-Memory Data Source Implementation

Keeps menu items, orders and settings in process memory. Used in
development mode (ENV_MODE=development) to:
    - Run the complete ordering flow without a database
    - Demo the dashboard with seeded data
    - Exercise retry paths with simulated failures

Behavior:
    - Simulates network latency on every call (configurable)
    - Randomly raises TransientDataSourceError at ``failure_rate``
    - Enforces version checks on conditional upserts under a lock
"""

import asyncio
import logging
import random
from typing import Dict, List, Optional

from qrmenu.core.exceptions import StaleWriteError, TransientDataSourceError
from qrmenu.schemas import MenuItem, Order, RestaurantSettings
from qrmenu.seed import demo_menu_items, demo_orders, demo_settings
from qrmenu.services.repository.base import BaseDataSource, BaseRepository, EntityT

logger = logging.getLogger(__name__)


class _Simulator:
    """Latency and failure injection shared by the repositories of one source."""

    def __init__(self, min_latency: float, max_latency: float, failure_rate: float):
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.failure_rate = failure_rate

    async def round_trip(self, operation: str) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))
        if self.failure_rate and random.random() < self.failure_rate:
            logger.debug(f"Memory: simulated failure during {operation}")
            raise TransientDataSourceError(f"Simulated failure during {operation}")


class InMemoryRepository(BaseRepository[EntityT]):
    """Dict-backed repository; entities are frozen so they are stored as-is."""

    def __init__(self, name: str, simulator: _Simulator, entities: Optional[List[EntityT]] = None):
        self.name = name
        self._simulator = simulator
        self._entities: Dict[str, EntityT] = {}
        self._lock = asyncio.Lock()
        for entity in entities or []:
            self._entities[entity.id] = entity

    def __len__(self) -> int:
        return len(self._entities)

    async def get(self, entity_id: str) -> Optional[EntityT]:
        await self._simulator.round_trip(f"{self.name}.get")
        return self._entities.get(entity_id)

    async def list(self) -> List[EntityT]:
        await self._simulator.round_trip(f"{self.name}.list")
        return list(self._entities.values())

    async def upsert(
        self,
        entity: EntityT,
        expected_version: Optional[int] = None,
    ) -> EntityT:
        await self._simulator.round_trip(f"{self.name}.upsert")
        async with self._lock:
            if expected_version is not None:
                current = self._entities.get(entity.id)
                actual = getattr(current, "version", None) if current else None
                if actual != expected_version:
                    raise StaleWriteError(entity.id, expected_version, actual)
            self._entities[entity.id] = entity
        logger.debug(f"Memory: stored {self.name} {entity.id}")
        return entity

    async def delete(self, entity_id: str) -> bool:
        await self._simulator.round_trip(f"{self.name}.delete")
        async with self._lock:
            return self._entities.pop(entity_id, None) is not None


class InMemoryDataSource(BaseDataSource):
    """
    Development data source.

    Attributes:
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
        failure_rate: Probability of a simulated transient failure (0.0-1.0)

    Example:
        >>> source = InMemoryDataSource(min_latency=0, max_latency=0)
        >>> len(await source.list_menu_items())
        8
    """

    def __init__(
        self,
        min_latency: float = 0.1,
        max_latency: float = 0.3,
        failure_rate: float = 0.0,
        seed: bool = True,
    ):
        self.simulator = _Simulator(min_latency, max_latency, failure_rate)
        self.menu_items = InMemoryRepository(
            "menu_item", self.simulator, demo_menu_items() if seed else None
        )
        self.orders = InMemoryRepository(
            "order", self.simulator, demo_orders() if seed else None
        )
        self._settings = demo_settings() if seed else RestaurantSettings()

        logger.info(
            f"InMemoryDataSource initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s, seeded={seed})"
        )

    @property
    def provider_name(self) -> str:
        return "memory"

    async def get_settings(self) -> RestaurantSettings:
        await self.simulator.round_trip("settings.get")
        return self._settings

    async def save_settings(self, settings: RestaurantSettings) -> RestaurantSettings:
        await self.simulator.round_trip("settings.save")
        self._settings = settings
        return settings

    async def health_check(self) -> bool:
        """The in-memory store is always available."""
        return True
