"""
Redis Key/Value Store

Production store backed by Redis. Values are JSON-encoded strings under
a configurable key prefix.

Author: Khalil Bannouri
Version: 4.0.0
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from order_watch.core.config import get_settings
from order_watch.services.storage.base import BaseKeyValueStore, StorageError

logger = logging.getLogger(__name__)


class RedisKeyValueStore(BaseKeyValueStore):
    """Redis-backed JSON store."""

    def __init__(self, client: Optional[aioredis.Redis] = None, key_prefix: Optional[str] = None):
        settings = get_settings()
        self.client = client or aioredis.from_url(settings.redis_url, decode_responses=True)
        self.key_prefix = settings.redis_key_prefix if key_prefix is None else key_prefix
        logger.info("RedisKeyValueStore initialized")

    @property
    def provider_name(self) -> str:
        return "redis"

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self.client.get(self._key(key))
        except RedisError as e:
            raise StorageError(f"Redis read failed for {key}: {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise StorageError(f"Corrupt value stored under {key}") from e

    async def set(self, key: str, value: Any) -> None:
        try:
            await self.client.set(self._key(key), json.dumps(value, ensure_ascii=False))
        except (RedisError, TypeError) as e:
            raise StorageError(f"Redis write failed for {key}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(self._key(key))
        except RedisError as e:
            raise StorageError(f"Redis delete failed for {key}: {e}") from e

    async def health_check(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False
