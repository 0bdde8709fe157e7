"""
Key/Value Store Factory

Returns the file store (development) or Redis store (staging/production)
based on ENV_MODE.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from functools import lru_cache

from order_watch.core.config import get_settings
from order_watch.services.storage.base import BaseKeyValueStore, StorageError
from order_watch.services.storage.file import FileKeyValueStore
from order_watch.services.storage.redis import RedisKeyValueStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_key_value_store() -> BaseKeyValueStore:
    """Get the configured key/value store."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Storage: Using FileKeyValueStore (development mode)")
        return FileKeyValueStore(
            directory=settings.data_directory,
            lock_timeout=settings.storage_lock_timeout,
        )
    else:
        logger.info(f"Storage: Using RedisKeyValueStore ({settings.env_mode.value} mode)")
        return RedisKeyValueStore()


def reset_key_value_store() -> None:
    """Clear the cached store instance."""
    get_key_value_store.cache_clear()


__all__ = [
    "get_key_value_store",
    "reset_key_value_store",
    "BaseKeyValueStore",
    "StorageError",
    "FileKeyValueStore",
    "RedisKeyValueStore",
]
