"""
Execution context for maintenance commands.

Creates and initializes the node store a command runs against and disposes
it afterwards.
"""

import logging
from typing import Optional

from nodekeeper.core.config import Settings, settings as default_settings
from nodekeeper.store.base import NodeStore
from nodekeeper.store.caching import CachingNodeStore
from nodekeeper.store.sql_store import SqlNodeStore

logger = logging.getLogger(__name__)


class ExecutionContext:
    """Holds the store for one command run."""

    def __init__(self, store: NodeStore, settings: Optional[Settings] = None):
        self._store = store
        self.settings = settings or default_settings

    @property
    def store(self) -> NodeStore:
        """The raw, uncached store."""
        return self._store

    def get_caching_store(self) -> CachingNodeStore:
        """A fresh caching wrapper around the store."""
        return CachingNodeStore(
            self._store,
            cache_size=self.settings.cache_size,
            report_interval=self.settings.cache_report_interval,
        )

    @classmethod
    def create(cls, settings: Optional[Settings] = None) -> "ExecutionContext":
        """
        Open the SQL node store configured in ``settings``.

        Args:
            settings: Settings to use, defaults to the environment settings

        Returns:
            A context with an initialized store
        """
        settings = settings or default_settings
        database_url = settings.build_database_url()
        logger.info(f"Opening node store {database_url}")
        store = SqlNodeStore(database_url)
        store.init()
        return cls(store, settings)

    def dispose(self) -> None:
        self._store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()
        return False
