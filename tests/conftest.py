"""Shared fixtures for the ordering tests."""

from functools import partial

import pytest
from fastapi.testclient import TestClient

from qrmenu.services.cart import DraftRegistry
from qrmenu.services.notifications import InMemoryNotificationFeed
from qrmenu.services.repository import InMemoryDataSource, InMemoryRepository


@pytest.fixture
def data_source() -> InMemoryDataSource:
    """Seeded in-memory data source without simulated latency."""
    return InMemoryDataSource(min_latency=0, max_latency=0)


@pytest.fixture
def empty_source() -> InMemoryDataSource:
    return InMemoryDataSource(min_latency=0, max_latency=0, seed=False)


@pytest.fixture
def order_repository(empty_source) -> InMemoryRepository:
    return empty_source.orders


@pytest.fixture
def feed() -> InMemoryNotificationFeed:
    return InMemoryNotificationFeed(max_per_channel=20)


@pytest.fixture
def registry(feed) -> DraftRegistry:
    return DraftRegistry(notifier_for=lambda table_id: partial(feed.publish, table_id))


@pytest.fixture
def client(data_source, feed, registry):
    from qrmenu import main

    main.app.dependency_overrides[main.get_data_source] = lambda: data_source
    main.app.dependency_overrides[main.get_notification_service] = lambda: feed
    main.app.dependency_overrides[main.get_draft_registry] = lambda: registry
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()
