"""
Data Source Factory

Provides a single entry point for obtaining the data source. The rest
of the application only depends on BaseDataSource / BaseRepository.

Usage:
    from qrmenu.services.repository import get_data_source

    data_source = get_data_source()
    orders = await data_source.list_orders()

Environment Switching:
    - ENV_MODE=development → InMemoryDataSource (seeded, simulated latency)
    - ENV_MODE=staging → SqlDataSource
    - ENV_MODE=production → SqlDataSource
"""

import logging
from functools import lru_cache

from qrmenu.core.config import get_settings
from qrmenu.services.repository.base import BaseDataSource, BaseRepository
from qrmenu.services.repository.memory import InMemoryDataSource, InMemoryRepository
from qrmenu.services.repository.sql import SqlDataSource, SqlRepository

logger = logging.getLogger(__name__)


@lru_cache()
def get_data_source() -> BaseDataSource:
    """
    Get the configured data source instance.

    The instance is cached so every request shares the same store.

    Returns:
        BaseDataSource: InMemoryDataSource or SqlDataSource
    """
    settings = get_settings()

    if settings.use_sql_storage:
        logger.info(
            f"Data Source: Using SqlDataSource ({settings.env_mode.value} mode)"
        )
        return SqlDataSource(settings.database_url, echo=settings.database_echo)

    logger.info("Data Source: Using InMemoryDataSource (development mode)")
    return InMemoryDataSource(
        min_latency=settings.mock_min_latency,
        max_latency=settings.mock_max_latency,
        failure_rate=settings.mock_failure_rate,
        seed=settings.seed_demo_data,
    )


def reset_data_source() -> None:
    """
    Clear the cached data source instance.

    Useful for testing or when configuration changes at runtime.
    """
    get_data_source.cache_clear()
    logger.debug("Data source cache cleared")


__all__ = [
    "get_data_source",
    "reset_data_source",
    "BaseDataSource",
    "BaseRepository",
    "InMemoryDataSource",
    "InMemoryRepository",
    "SqlDataSource",
    "SqlRepository",
]
