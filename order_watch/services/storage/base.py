"""
Key/Value Store Abstract Base Class

Defines the interface contract for the durable store that holds each
session's notification feed, order ledger and last-check marker.
Both FileKeyValueStore and RedisKeyValueStore implement these methods.

Values are JSON-serializable Python objects; each implementation decides
how they are encoded at rest.

Author: Khalil Bannouri
Version: 4.0.0
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class StorageError(Exception):
    """Raised when the underlying store cannot be read or written."""


class BaseKeyValueStore(ABC):
    """
    Abstract base class for key/value stores.

    Implementations must raise StorageError (never a backend-specific
    exception) so callers can fall back to in-memory state.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the store provider name (e.g., "file", "redis")."""
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Read a value.

        Returns:
            The decoded JSON value, or None if the key is absent
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Write a JSON-serializable value."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key (no error if absent)."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check store connectivity."""
        pass
