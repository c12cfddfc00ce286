"""
Storage Module

Async key-value persistence: in-memory, JSON file or Redis.
"""

import structlog

from regen.config import Settings, settings as default_settings

from .redis import RedisKeyValueStore
from .store import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore

logger = structlog.get_logger()


def create_store(config: Settings | None = None) -> KeyValueStore:
    """Create the key-value store selected by configuration."""
    config = config or default_settings

    if config.storage_backend == "redis":
        store: KeyValueStore = RedisKeyValueStore(url=str(config.redis_url))
    elif config.storage_backend == "file":
        store = FileKeyValueStore(config.storage_path)
    else:
        store = MemoryKeyValueStore()

    logger.debug("Key-value store created", backend=store.name)
    return store


__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "FileKeyValueStore",
    "RedisKeyValueStore",
    "create_store",
]
