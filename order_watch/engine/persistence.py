"""
Watch State Persistence

Stores a provider's feed, ledger and last-check marker in the key/value
store under a per-session namespace:

    <namespace>_notifications     list of notification records
    <namespace>_last_check_time   ISO-8601 UTC timestamp
    <namespace>_seen_orders       {"statuses": {...}, "assigned": [...]}

Failure policy:
    - Read failure: start from empty state with the marker at "now" so
      historical orders never flood the feed
    - Write failure: logged; the in-memory state stays authoritative and
      the next successful commit reconciles storage

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from datetime import datetime
from typing import Callable

from pydantic import ValidationError

from order_watch.models import Ledger, WatchState
from order_watch.schemas import NotificationRecord
from order_watch.services.storage.base import BaseKeyValueStore, StorageError

logger = logging.getLogger(__name__)


class StatePersistence:
    """Namespaced load/commit of WatchState."""

    def __init__(self, store: BaseKeyValueStore, namespace: str, clock: Callable[[], datetime]):
        self.store = store
        self.namespace = namespace
        self.clock = clock
        self.feed_key = f"{namespace}_notifications"
        self.last_check_key = f"{namespace}_last_check_time"
        self.ledger_key = f"{namespace}_seen_orders"

    async def load(self) -> WatchState:
        """Load persisted state, falling back to an empty state."""
        try:
            raw_feed = await self.store.get(self.feed_key)
            raw_last_check = await self.store.get(self.last_check_key)
            raw_ledger = await self.store.get(self.ledger_key)

            feed = [NotificationRecord.model_validate(item) for item in raw_feed or []]
            ledger = Ledger.from_dict(raw_ledger or {})
            last_check = datetime.fromisoformat(raw_last_check) if raw_last_check else None
        except (StorageError, ValidationError, ValueError, TypeError) as e:
            logger.error(f"Error loading {self.namespace} notification data: {e}")
            return WatchState.empty(self.clock())

        if last_check is None:
            # First run: only orders created from now on count as new
            last_check = self.clock()
            await self._write(self.last_check_key, last_check.isoformat())
        elif last_check.tzinfo is None:
            last_check = last_check.replace(tzinfo=self.clock().tzinfo)

        logger.info(
            f"Loaded {self.namespace} state: {len(feed)} notification(s), "
            f"{len(ledger)} ledger entr{'y' if len(ledger) == 1 else 'ies'}"
        )
        return WatchState(feed=feed, ledger=ledger, last_check=last_check)

    async def _write(self, key: str, value) -> bool:
        try:
            await self.store.set(key, value)
            return True
        except StorageError as e:
            logger.warning(f"Error saving {key}: {e}")
            return False

    async def save_feed(self, feed: list[NotificationRecord]) -> bool:
        return await self._write(self.feed_key, [record.model_dump(mode="json") for record in feed])

    async def commit(self, state: WatchState) -> bool:
        """Persist feed, marker and ledger. Returns False if any write failed."""
        results = [
            await self.save_feed(state.feed),
            await self._write(self.last_check_key, state.last_check.isoformat()),
            await self._write(self.ledger_key, state.ledger.to_dict()),
        ]
        return all(results)

    async def clear(self) -> bool:
        """Delete everything stored for this namespace."""
        cleared = True
        for key in (self.feed_key, self.last_check_key, self.ledger_key):
            try:
                await self.store.delete(key)
            except StorageError as e:
                logger.warning(f"Error deleting {key}: {e}")
                cleared = False
        return cleared
