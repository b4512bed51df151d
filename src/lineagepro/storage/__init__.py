from __future__ import annotations

from ..config import AppSettings, ConfigError
from .base import KeyValueStore
from .memory import InMemoryStore
from .persistence import BoundNode, NodeDispatch, PersistenceAdapter
from .sql import SqlKeyValueStore


def create_store(settings: AppSettings) -> KeyValueStore:
    """Build the key-value backend selected by `settings.storage.backend`."""
    storage = settings.storage
    if storage.backend == "memory":
        return InMemoryStore()
    if storage.backend == "sql":
        return SqlKeyValueStore.from_url(
            storage.url, table=storage.table, namespace=storage.namespace
        )
    if storage.backend == "zookeeper":
        # Imported lazily so kazoo is only touched when configured.
        from .zookeeper import ZkKeyValueStore

        return ZkKeyValueStore.from_settings(settings.zookeeper, storage.namespace)
    raise ConfigError(f"Unknown storage backend {storage.backend!r}")


__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "SqlKeyValueStore",
    "PersistenceAdapter",
    "NodeDispatch",
    "BoundNode",
    "create_store",
]
