"""
Order Source Abstract Base Class

Defines the interface for reading order state from the restaurant Order
API. A snapshot is the active working set plus a bounded window of recent
history, so orders that just left the active set (delivered, cancelled)
are still observable.

Both HttpOrderSource and MockOrderSource implement these methods.

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from order_watch.schemas import OrderSnapshot

logger = logging.getLogger(__name__)


class OrderSourceError(Exception):
    """Raised when order state could not be retrieved."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class OrderSourceAuthError(OrderSourceError):
    """The Order API rejected the session credentials."""


def parse_snapshots(items: Iterable[Any]) -> list[OrderSnapshot]:
    """
    Parse raw Order API entries, skipping the ones that cannot be used.

    An entry is unusable when it has no order id or an unknown status;
    missing amounts and addresses are defaulted by the schema.
    """
    snapshots = []
    for item in items:
        try:
            snapshots.append(OrderSnapshot.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping malformed order entry: {e.error_count()} error(s)")
    return snapshots


class BaseOrderSource(ABC):
    """
    Abstract base class for order sources.

    Attributes:
        history_window: Number of history entries kept in a snapshot
    """

    history_window: int = 10

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., "mock", "http")."""
        pass

    @abstractmethod
    async def fetch_active(self) -> list[OrderSnapshot]:
        """Fetch the active working set."""
        pass

    @abstractmethod
    async def fetch_history(self) -> list[OrderSnapshot]:
        """Fetch recent history, newest first (may be empty)."""
        pass

    @abstractmethod
    async def send_heartbeat(self) -> bool:
        """
        Tell the backend the client is open.

        Returns:
            bool: True if the heartbeat was accepted
        """
        pass

    async def aclose(self) -> None:
        """Release network resources."""

    async def fetch_snapshot(self) -> list[OrderSnapshot]:
        """
        Fetch active orders and bounded history as one unit.

        Both requests are issued together. If either fails the error
        propagates and no partial snapshot is returned.

        Raises:
            OrderSourceError: If either request failed
        """
        active, history = await asyncio.gather(self.fetch_active(), self.fetch_history())
        return [*active, *history[: self.history_window]]
