"""Tests for the in-memory and SQL data sources."""

from datetime import datetime, timedelta, timezone

import pytest

from qrmenu.core.exceptions import StaleWriteError, TransientDataSourceError
from qrmenu.schemas import MenuCategory, OrderStatus, RestaurantSettings
from qrmenu.services.lifecycle import transition
from qrmenu.services.repository import InMemoryDataSource, SqlDataSource

from tests.helpers import make_item, make_order


class TestInMemoryDataSource:

    async def test_seeded_demo_data(self, data_source):
        items = await data_source.list_menu_items()
        orders = await data_source.list_orders()
        settings = await data_source.get_settings()

        assert len(items) == 8
        assert {item.category for item in items} == set(MenuCategory)
        assert {o.status for o in orders} == {OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.DELIVERED}
        assert settings.menu_title == "Spice Garden Restaurant"

    async def test_unseeded_is_empty(self, empty_source):
        assert await empty_source.list_menu_items() == []
        assert await empty_source.list_orders() == []
        assert await empty_source.get_settings() == RestaurantSettings()

    async def test_upsert_get_delete(self, empty_source):
        repo = empty_source.menu_items
        item = make_item("item-x", 3.5)

        await repo.upsert(item)
        assert await repo.get("item-x") == item

        assert await repo.delete("item-x") is True
        assert await repo.delete("item-x") is False
        assert await repo.get("item-x") is None

    async def test_conditional_upsert(self, order_repository):
        order = make_order("o1")
        await order_repository.upsert(order)

        updated = transition(order, OrderStatus.PREPARING)
        await order_repository.upsert(updated, expected_version=1)

        with pytest.raises(StaleWriteError) as exc_info:
            await order_repository.upsert(transition(order, OrderStatus.CANCELLED), expected_version=1)
        assert exc_info.value.status_code == 409
        assert (await order_repository.get("o1")).status == OrderStatus.PREPARING

    async def test_conditional_upsert_of_missing_entity(self, order_repository):
        with pytest.raises(StaleWriteError):
            await order_repository.upsert(make_order("ghost"), expected_version=1)

    async def test_list_keeps_insertion_order(self, order_repository):
        for order_id in ("c", "a", "b"):
            await order_repository.upsert(make_order(order_id))
        assert [o.id for o in await order_repository.list()] == ["c", "a", "b"]

    async def test_simulated_failures(self):
        source = InMemoryDataSource(min_latency=0, max_latency=0, failure_rate=1.0)

        with pytest.raises(TransientDataSourceError):
            await source.list_orders()
        assert await source.health_check() is True


@pytest.fixture
async def sql_source(tmp_path):
    source = SqlDataSource(f"sqlite+aiosqlite:///{tmp_path}/orders.db")
    await source.initialize()
    yield source
    await source.close()


class TestSqlDataSource:

    async def test_health_check(self, sql_source):
        assert sql_source.provider_name == "sql"
        assert await sql_source.health_check() is True

    async def test_menu_item_round_trip(self, sql_source):
        item = make_item("item-x", 7.25, "Samosa", MenuCategory.DRY)
        await sql_source.menu_items.upsert(item)

        loaded = await sql_source.menu_items.get("item-x")
        assert loaded == item

        changed = item.model_copy(update={"price": 8.0})
        await sql_source.menu_items.upsert(changed)
        assert (await sql_source.menu_items.get("item-x")).price == 8.0

    async def test_order_round_trip_keeps_utc_timestamp(self, sql_source):
        stamp = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
        order = make_order("o1", timestamp=stamp, quantity=3, price=4.99)
        await sql_source.orders.upsert(order)

        loaded = await sql_source.orders.get("o1")
        assert loaded.items == order.items
        assert loaded.total == pytest.approx(14.97)
        assert loaded.timestamp == stamp
        assert loaded.status == OrderStatus.PENDING

    async def test_orders_listed_oldest_first(self, sql_source):
        base = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        await sql_source.orders.upsert(make_order("late", timestamp=base + timedelta(hours=1)))
        await sql_source.orders.upsert(make_order("early", timestamp=base))

        assert [o.id for o in await sql_source.list_orders()] == ["early", "late"]

    async def test_conditional_update(self, sql_source):
        order = make_order("o1")
        await sql_source.orders.upsert(order)

        preparing = transition(order, OrderStatus.PREPARING)
        await sql_source.orders.upsert(preparing, expected_version=1)

        with pytest.raises(StaleWriteError) as exc_info:
            await sql_source.orders.upsert(transition(order, OrderStatus.CANCELLED), expected_version=1)
        assert exc_info.value.actual_version == 2

        stored = await sql_source.orders.get("o1")
        assert (stored.status, stored.version) == (OrderStatus.PREPARING, 2)

    async def test_delete(self, sql_source):
        await sql_source.menu_items.upsert(make_item("item-x"))
        assert await sql_source.menu_items.delete("item-x") is True
        assert await sql_source.menu_items.delete("item-x") is False

    async def test_settings_default_then_saved(self, sql_source):
        assert await sql_source.get_settings() == RestaurantSettings()

        saved = RestaurantSettings(menu_title="Spice Garden", background_color="#FFF")
        await sql_source.save_settings(saved)
        await sql_source.save_settings(saved.model_copy(update={"menu_title": "Spice Garden II"}))

        loaded = await sql_source.get_settings()
        assert loaded.menu_title == "Spice Garden II"
        assert loaded.background_color == "#fff"
