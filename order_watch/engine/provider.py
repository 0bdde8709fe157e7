"""
Notification Provider

One provider is constructed per authenticated session and torn down on
logout. It owns the session's watch state and wires the pieces together:

    LifecycleController -> OrderSource.fetch_snapshot()
                        -> DiffEngine.apply()
                        -> NotificationSynthesizer.dispatch()
                        -> StatePersistence.commit()
                        -> BadgeCounter.recompute()

It also exposes the user-facing operations: check now, mark read,
mark all read, clear all, reset tracking, clear attention.

Usage:
    provider = NotificationProvider(delivery_variant(), source, store, notifier)
    await provider.open()
    ...
    await provider.close(clear=True)  # logout

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from order_watch.core.config import Settings, get_settings
from order_watch.engine.badges import BadgeCounter
from order_watch.engine.diff import CycleResult, DiffEngine
from order_watch.engine.lifecycle import LifecycleController, LifecycleEventSource
from order_watch.engine.persistence import StatePersistence
from order_watch.engine.synthesizer import NotificationSynthesizer
from order_watch.engine.variants import Variant
from order_watch.models import WatchState
from order_watch.schemas import NotificationRecord
from order_watch.services.notifications.base import BaseNotificationService
from order_watch.services.orders.base import BaseOrderSource, OrderSourceError
from order_watch.services.storage.base import BaseKeyValueStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationProvider:
    """Order change watcher for one session."""

    def __init__(
        self,
        variant: Variant,
        source: BaseOrderSource,
        store: BaseKeyValueStore,
        notifier: BaseNotificationService,
        settings: Optional[Settings] = None,
        namespace: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        settings = settings or get_settings()
        self.variant = variant
        self.source = source
        self.notifier = notifier
        self.clock = clock
        self.namespace = namespace or variant.namespace

        self.persistence = StatePersistence(store, self.namespace, clock)
        self.synthesizer = NotificationSynthesizer(variant, notifier, settings.currency_symbol)
        self.diff = DiffEngine(
            variant,
            self.synthesizer,
            feed_cap=settings.feed_cap,
            ledger_cap=settings.ledger_cap,
            assigned_cap=settings.assigned_cap,
        )
        self.badges = BadgeCounter()
        self.controller = LifecycleController(
            self._cycle,
            poll_interval=variant.poll_interval,
            heartbeat=source.send_heartbeat if variant.heartbeat_path else None,
            heartbeat_interval=variant.heartbeat_interval,
            name=self.namespace,
        )
        self.state: Optional[WatchState] = None

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def notifications(self) -> list[NotificationRecord]:
        return list(self.state.feed) if self.state else []

    @property
    def unread_count(self) -> int:
        return self.badges.unread_count

    @property
    def attention_count(self) -> int:
        return self.badges.attention_count

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def open(self, events: Optional[LifecycleEventSource] = None) -> None:
        """Load persisted state and start watching."""
        self.state = await self.persistence.load()
        self.badges.recompute(self.state.feed)
        if events is not None:
            self.controller.bind(events)
        self.controller.start()

    async def close(self, clear: bool = False) -> None:
        """
        Stop watching and release collaborators.

        Args:
            clear: Also delete the persisted state (logout)
        """
        self.controller.unbind()
        self.controller.stop()
        await self.controller.wait_idle()
        if clear:
            await self.persistence.clear()
            self.state = WatchState.empty(self.clock())
            self.badges.reset()
        await self.source.aclose()
        await self.notifier.aclose()

    # =========================================================================
    # DIFF CYCLE
    # =========================================================================

    async def check_for_updates(self) -> Optional[CycleResult]:
        """Run a cycle now (screen visit). None if skipped, failed or discarded."""
        return await self.controller.run_once()

    async def _cycle(self, is_current: Callable[[], bool]) -> Optional[CycleResult]:
        if self.state is None:
            return None

        try:
            snapshots = await self.source.fetch_snapshot()
        except OrderSourceError as e:
            if e.status_code == 404:
                logger.debug(f"[{self.namespace}] order endpoint not found: {e}")
            else:
                logger.warning(f"[{self.namespace}] error checking for updates: {e}")
            return None

        if not is_current():
            logger.info(f"[{self.namespace}] discarding result of a cycle that outlived its session")
            return None

        result = self.diff.apply(self.state, snapshots, self.clock())
        self.badges.recompute(self.state.feed)
        self.badges.add_attention(result.attention)

        for transition in result.transitions:
            await self.synthesizer.dispatch(transition)

        await self.persistence.commit(self.state)
        return result

    # =========================================================================
    # USER OPERATIONS
    # =========================================================================

    async def mark_all_as_read(self) -> None:
        if self.state is None:
            return
        for record in self.state.feed:
            record.read = True
        self.badges.recompute(self.state.feed)
        await self.persistence.save_feed(self.state.feed)

    async def mark_as_read(self, notification_id: str) -> bool:
        """Mark one record read. Returns False if it is not in the feed."""
        record = self.state.find(notification_id) if self.state else None
        if record is None:
            return False
        if not record.read:
            record.read = True
            self.badges.recompute(self.state.feed)
            await self.persistence.save_feed(self.state.feed)
        return True

    async def clear_all(self) -> None:
        """Empty the feed and dismiss device notifications."""
        if self.state is not None:
            self.state.feed = []
        self.badges.recompute([])
        await self.persistence.save_feed([])
        await self.notifier.clear_all()

    async def reset_tracking(self) -> None:
        """Forget everything seen so far; only orders from now on are new."""
        await self.controller.wait_idle()
        self.state = WatchState.empty(self.clock())
        self.badges.reset()
        await self.persistence.clear()
        await self.persistence.commit(self.state)
        await self.notifier.clear_all()

    def clear_attention(self) -> None:
        self.badges.clear_attention()
