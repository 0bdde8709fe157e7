"""
Watch Session Registry

Keeps one NotificationProvider per authenticated client session. The
session supplies the role (admin / delivery), the bearer token used
against the Order API and, optionally, the device's Expo push token.

State is namespaced per role and user, so an admin and a delivery
session on the same device never share a ledger or feed.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from order_watch.core.config import Settings, get_settings
from order_watch.engine.lifecycle import LifecycleEventSource
from order_watch.engine.provider import NotificationProvider
from order_watch.engine.variants import Variant, get_variant
from order_watch.schemas import AppStateEnum, RoleEnum
from order_watch.services.notifications import BaseNotificationService, get_notification_service
from order_watch.services.orders import BaseOrderSource, get_order_source
from order_watch.services.storage import BaseKeyValueStore, get_key_value_store

logger = logging.getLogger(__name__)


class SessionNotFound(KeyError):
    """No open session with that id."""


@dataclass
class WatchSession:
    session_id: str
    role: RoleEnum
    user_id: str
    provider: NotificationProvider
    events: LifecycleEventSource
    opened_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    async def report_app_state(self, state: AppStateEnum) -> None:
        """Queue a host app-state change and wait for the watcher to handle it."""
        self.events.emit(state)
        await self.events.drain()


class SessionManager:
    """Creates, looks up and tears down watch sessions."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[BaseKeyValueStore] = None,
        source_factory: Callable[[Variant, str], BaseOrderSource] = get_order_source,
        notifier_factory: Callable[[Optional[str]], BaseNotificationService] = get_notification_service,
    ):
        self.settings = settings or get_settings()
        self.store = store or get_key_value_store()
        self.source_factory = source_factory
        self.notifier_factory = notifier_factory
        self.sessions: dict[str, WatchSession] = {}

    def __len__(self) -> int:
        return len(self.sessions)

    async def open_session(
        self,
        role: RoleEnum,
        token: str,
        user_id: str = "default",
        push_token: Optional[str] = None,
    ) -> WatchSession:
        """Construct a provider for an authenticated client and start it."""
        variant = get_variant(role, self.settings)
        provider = NotificationProvider(
            variant,
            source=self.source_factory(variant, token),
            store=self.store,
            notifier=self.notifier_factory(push_token),
            settings=self.settings,
            namespace=f"{variant.namespace}_{user_id}",
        )
        session = WatchSession(
            session_id=uuid.uuid4().hex,
            role=variant.role,
            user_id=user_id,
            provider=provider,
            events=LifecycleEventSource(),
        )
        await provider.open(session.events)
        self.sessions[session.session_id] = session
        logger.info(f"Session {session.session_id[:8]} opened ({variant.role.value}/{user_id})")
        return session

    def get(self, session_id: str) -> WatchSession:
        try:
            return self.sessions[session_id]
        except KeyError:
            raise SessionNotFound(session_id) from None

    async def close_session(self, session_id: str, clear: bool = True) -> None:
        """Tear a session down; ``clear`` wipes its persisted state (logout)."""
        session = self.sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound(session_id)
        session.events.close()
        await session.provider.close(clear=clear)
        logger.info(f"Session {session_id[:8]} closed (cleared={clear})")

    async def shutdown(self) -> None:
        """Stop every session, keeping persisted state for the next start."""
        for session_id in list(self.sessions):
            await self.close_session(session_id, clear=False)
