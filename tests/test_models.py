"""Tests for domain value validation, table links and configuration."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from qrmenu.core.config import EnvironmentMode, Settings, get_settings
from qrmenu.schemas import MenuCategory, MenuItem, Order, OrderLineItem, RestaurantSettings
from qrmenu.services.notifications import Notification, get_notification_service, reset_notification_service
from qrmenu.services.repository import InMemoryDataSource, get_data_source, reset_data_source
from qrmenu.services.tables import build_table_url, qr_download_filename

from tests.helpers import make_order


def line(item_id="item-a", price=5.0, quantity=2):
    return OrderLineItem(item_id=item_id, name="Dish", price=price, quantity=quantity)


class TestOrder:

    def test_total_must_match_lines(self):
        with pytest.raises(ValidationError):
            Order(id="o", table_id="1", items=(line(),), timestamp=datetime.now(timezone.utc), total=11.0)

    def test_total_within_tolerance(self):
        order = Order(id="o", table_id="1", items=(line(price=0.1, quantity=3),),
                      timestamp=datetime.now(timezone.utc), total=0.3)
        assert order.total == 0.3

    def test_needs_at_least_one_line(self):
        with pytest.raises(ValidationError):
            Order(id="o", table_id="1", items=(), timestamp=datetime.now(timezone.utc), total=0)

    def test_duplicate_item_lines_rejected(self):
        with pytest.raises(ValidationError):
            Order(id="o", table_id="1", items=(line(), line()), timestamp=datetime.now(timezone.utc), total=20.0)

    def test_naive_timestamp_treated_as_utc(self):
        order = make_order("o", timestamp=datetime(2024, 5, 1, 12, 0))
        assert order.timestamp.tzinfo == timezone.utc

    def test_frozen(self):
        order = make_order("order-abcdef123456")
        with pytest.raises(ValidationError):
            order.total = 0
        assert order.short_id == "123456"
        assert not order.is_terminal

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_line_quantity_positive(self, quantity):
        with pytest.raises(ValidationError):
            line(quantity=quantity)

    def test_line_total(self):
        assert line(price=4.99, quantity=3).line_total == 14.97


class TestMenuItem:

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            MenuItem(id="item-x", name="Tea", price=-1, category=MenuCategory.DRINKS)

    def test_category_display_names(self):
        assert MenuCategory("non-veg").display_name == "Non-Vegetarian"
        assert MenuCategory.DRY.display_name == "Dry Items"


class TestRestaurantSettings:

    @pytest.mark.parametrize("color", ["#FFF", "#4A2C2A"])
    def test_hex_colors_lowercased(self, color):
        assert RestaurantSettings(background_color=color).background_color == color.lower()

    @pytest.mark.parametrize("color", ["white", "#12345", "4a2c2a"])
    def test_invalid_colors(self, color):
        with pytest.raises(ValidationError):
            RestaurantSettings(title_color=color)


class TestTableLinks:

    def test_url_joins_base_and_table(self):
        assert build_table_url("http://localhost:8001/table", "12") == "http://localhost:8001/table/12"
        assert build_table_url("http://localhost:8001/table/", " 12 ") == "http://localhost:8001/table/12"

    def test_table_id_is_quoted(self):
        assert build_table_url("https://x.test/t/", "patio 3") == "https://x.test/t/patio%203"

    def test_download_filename(self):
        assert qr_download_filename("5") == "table-5-qrcode.png"

    def test_blank_table(self):
        with pytest.raises(ValueError):
            build_table_url("https://x.test/t/", " ")


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ENV_MODE", raising=False)
        settings = Settings(_env_file=None)

        assert settings.is_development
        assert not settings.use_sql_storage
        assert settings.submit_max_attempts == 3
        assert settings.strict_status_progression is False

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("ENV_MODE", "PRODUCTION")
        monkeypatch.setenv("STRICT_STATUS_PROGRESSION", "true")
        monkeypatch.setenv("SUBMIT_MAX_ATTEMPTS", "5")

        settings = Settings(_env_file=None)

        assert settings.env_mode == EnvironmentMode.PRODUCTION
        assert settings.use_sql_storage
        assert settings.strict_status_progression is True
        assert settings.submit_max_attempts == 5

    def test_invalid_latency_range(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, mock_min_latency=1.0, mock_max_latency=0.5)

    def test_invalid_env_mode(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, env_mode="qa")


class TestFactories:

    @pytest.fixture(autouse=True)
    def fresh_caches(self, monkeypatch):
        monkeypatch.setenv("ENV_MODE", "development")
        monkeypatch.setenv("MOCK_MIN_LATENCY", "0")
        monkeypatch.setenv("MOCK_MAX_LATENCY", "0")
        get_settings.cache_clear()
        reset_data_source()
        reset_notification_service()
        yield
        get_settings.cache_clear()
        reset_data_source()
        reset_notification_service()

    def test_development_uses_memory(self):
        source = get_data_source()

        assert isinstance(source, InMemoryDataSource)
        assert get_data_source() is source

    def test_reset_builds_new_instance(self):
        first = get_data_source()
        reset_data_source()
        assert get_data_source() is not first

    def test_notification_feed_size_from_settings(self, monkeypatch):
        monkeypatch.setenv("NOTIFICATION_FEED_SIZE", "2")
        get_settings.cache_clear()

        feed = get_notification_service()
        for n in range(3):
            feed.publish("1", Notification(title=f"n{n}"))

        assert [n.title for n in feed.drain("1")] == ["n1", "n2"]
