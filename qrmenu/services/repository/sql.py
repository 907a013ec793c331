"""
SQL Data Source Implementation

Persists menu items, orders and settings through SQLAlchemy's async
engine. Used in staging and production (ENV_MODE=staging|production),
normally against PostgreSQL via psycopg.

Conditional upserts translate to
``UPDATE ... WHERE id = :id AND version = :expected``; a zero row
count means another writer got there first.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Type

from sqlalchemy import select, text, update
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from qrmenu.core.exceptions import DataSourceError, StaleWriteError, TransientDataSourceError
from qrmenu.database import create_engine, create_session_maker, init_db
from qrmenu.models import MenuItemRow, OrderRow, RestaurantSettingsRow
from qrmenu.schemas import MenuItem, Order, OrderLineItem, RestaurantSettings
from qrmenu.services.repository.base import BaseDataSource, BaseRepository, EntityT

logger = logging.getLogger(__name__)


# =============================================================================
# ROW CONVERSION
# =============================================================================

def menu_item_to_values(item: MenuItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "price": item.price,
        "category": item.category,
        "image": item.image,
    }


def menu_item_from_row(row: MenuItemRow) -> MenuItem:
    return MenuItem(
        id=row.id,
        name=row.name,
        description=row.description or "",
        price=row.price,
        category=row.category,
        image=row.image,
    )


def order_to_values(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "table_id": order.table_id,
        "items": json.dumps([line.model_dump() for line in order.items]),
        "status": order.status,
        "timestamp": order.timestamp,
        "total": order.total,
        "version": order.version,
    }


def order_from_row(row: OrderRow) -> Order:
    return Order(
        id=row.id,
        table_id=row.table_id,
        items=tuple(OrderLineItem(**line) for line in json.loads(row.items)),
        status=row.status,
        timestamp=row.timestamp,
        total=row.total,
        version=row.version,
    )


@asynccontextmanager
async def _translate_errors(operation: str) -> AsyncIterator[None]:
    """Map SQLAlchemy failures onto the data source error hierarchy."""
    try:
        yield
    except OperationalError as e:
        logger.warning(f"SQL: transient failure during {operation}: {e}")
        raise TransientDataSourceError(f"Database unavailable during {operation}") from e
    except DBAPIError as e:
        if e.connection_invalidated:
            logger.warning(f"SQL: connection lost during {operation}: {e}")
            raise TransientDataSourceError(f"Database connection lost during {operation}") from e
        logger.error(f"SQL: {operation} failed: {e}")
        raise DataSourceError(f"Database error during {operation}") from e
    except SQLAlchemyError as e:
        logger.error(f"SQL: {operation} failed: {e}")
        raise DataSourceError(f"Database error during {operation}") from e


class SqlRepository(BaseRepository[EntityT]):
    """Repository over one table, converting rows to frozen entities."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        row_cls: Type,
        to_values: Callable[[EntityT], Dict[str, Any]],
        from_row: Callable[[Any], EntityT],
        order_by=None,
    ):
        self._session_maker = session_maker
        self._row_cls = row_cls
        self._to_values = to_values
        self._from_row = from_row
        self._order_by = order_by
        self.name = row_cls.__tablename__

    async def get(self, entity_id: str) -> Optional[EntityT]:
        async with _translate_errors(f"{self.name}.get"):
            async with self._session_maker() as session:
                row = await session.get(self._row_cls, entity_id)
                return self._from_row(row) if row is not None else None

    async def list(self) -> List[EntityT]:
        async with _translate_errors(f"{self.name}.list"):
            async with self._session_maker() as session:
                query = select(self._row_cls)
                if self._order_by is not None:
                    query = query.order_by(self._order_by)
                result = await session.execute(query)
                return [self._from_row(row) for row in result.scalars().all()]

    async def upsert(
        self,
        entity: EntityT,
        expected_version: Optional[int] = None,
    ) -> EntityT:
        values = self._to_values(entity)
        async with _translate_errors(f"{self.name}.upsert"):
            async with self._session_maker() as session:
                if expected_version is None:
                    await session.merge(self._row_cls(**values))
                    await session.commit()
                    return entity

                result = await session.execute(
                    update(self._row_cls)
                    .where(self._row_cls.id == entity.id)
                    .where(self._row_cls.version == expected_version)
                    .values(**values)
                )
                if result.rowcount == 0:
                    await session.rollback()
                    current = await session.get(self._row_cls, entity.id)
                    raise StaleWriteError(
                        entity.id,
                        expected_version,
                        current.version if current is not None else None,
                    )
                await session.commit()
                return entity

    async def delete(self, entity_id: str) -> bool:
        async with _translate_errors(f"{self.name}.delete"):
            async with self._session_maker() as session:
                row = await session.get(self._row_cls, entity_id)
                if row is None:
                    return False
                await session.delete(row)
                await session.commit()
                return True


class SqlDataSource(BaseDataSource):
    """
    SQLAlchemy-backed data source.

    Args:
        database_url: Async SQLAlchemy URL
            (``postgresql+psycopg://...`` or ``sqlite+aiosqlite:///...``)
        echo: Log every SQL statement
    """

    SETTINGS_ROW_ID = 1

    def __init__(self, database_url: str, echo: bool = False, engine: Optional[AsyncEngine] = None):
        self.engine = engine or create_engine(database_url, echo=echo)
        self.session_maker = create_session_maker(self.engine)
        self.menu_items = SqlRepository(
            self.session_maker, MenuItemRow, menu_item_to_values, menu_item_from_row,
        )
        self.orders = SqlRepository(
            self.session_maker, OrderRow, order_to_values, order_from_row,
            order_by=OrderRow.timestamp,
        )
        logger.info(f"SqlDataSource initialized ({self.engine.url.drivername})")

    @property
    def provider_name(self) -> str:
        return "sql"

    async def initialize(self) -> None:
        async with _translate_errors("initialize"):
            await init_db(self.engine)

    async def close(self) -> None:
        await self.engine.dispose()

    async def get_settings(self) -> RestaurantSettings:
        async with _translate_errors("settings.get"):
            async with self.session_maker() as session:
                row = await session.get(RestaurantSettingsRow, self.SETTINGS_ROW_ID)
                if row is None:
                    return RestaurantSettings()
                return RestaurantSettings(
                    menu_title=row.menu_title,
                    background_color=row.background_color,
                    title_color=row.title_color,
                    font_color=row.font_color,
                )

    async def save_settings(self, settings: RestaurantSettings) -> RestaurantSettings:
        async with _translate_errors("settings.save"):
            async with self.session_maker() as session:
                await session.merge(
                    RestaurantSettingsRow(id=self.SETTINGS_ROW_ID, **settings.model_dump())
                )
                await session.commit()
                return settings

    async def health_check(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False
