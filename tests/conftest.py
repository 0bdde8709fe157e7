"""
Shared fixtures: a controllable clock, an in-memory store and
ready-to-use providers backed by the mock order book.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest

from order_watch.core.config import Settings
from order_watch.engine import NotificationProvider, admin_variant, delivery_variant
from order_watch.schemas import OrderSnapshot, OrderStatusEnum
from order_watch.services.notifications import MockNotificationService
from order_watch.services.orders import MockOrderSource
from order_watch.services.storage import BaseKeyValueStore, StorageError

START = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 5) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class MemoryStore(BaseKeyValueStore):
    """JSON-faithful in-memory store with switchable failures."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.fail_reads = False
        self.fail_writes = False

    @property
    def provider_name(self) -> str:
        return "memory"

    async def get(self, key: str) -> Optional[Any]:
        if self.fail_reads:
            raise StorageError(f"read failed for {key}")
        raw = self.data.get(key)
        return None if raw is None else json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        if self.fail_writes:
            raise StorageError(f"write failed for {key}")
        self.data[key] = json.dumps(value)

    async def delete(self, key: str) -> None:
        if self.fail_writes:
            raise StorageError(f"delete failed for {key}")
        self.data.pop(key, None)

    async def health_check(self) -> bool:
        return True


def snapshot(order_id: str, status: OrderStatusEnum, amount: float = 250.0,
             address: str = "12 MG Road", created_at: Optional[datetime] = None) -> OrderSnapshot:
    return OrderSnapshot(
        order_id=order_id,
        status=status,
        total_amount=amount,
        address=address,
        created_at=created_at,
    )


async def settle(provider: NotificationProvider) -> None:
    """Let spawned cycles start, then wait for them to finish."""
    for _ in range(10):
        await asyncio.sleep(0)
    await provider.controller.wait_idle()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        env_mode="development",
        data_directory=str(tmp_path / "data"),
        mock_failure_rate=0.0,
        delivery_poll_interval_seconds=60,
        delivery_heartbeat_interval_seconds=60,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def notifier() -> MockNotificationService:
    return MockNotificationService()


@pytest.fixture
async def make_provider(settings, clock, store, notifier):
    """Build (and later close) providers wired to a mock order book."""
    providers = []

    def factory(role: str = "admin", source: Optional[MockOrderSource] = None,
                namespace: Optional[str] = None) -> tuple[NotificationProvider, MockOrderSource]:
        variant = admin_variant(settings) if role == "admin" else delivery_variant(settings)
        source = source or MockOrderSource(split_history=role != "admin", clock=clock)
        provider = NotificationProvider(
            variant,
            source=source,
            store=store,
            notifier=notifier,
            settings=settings,
            namespace=namespace,
            clock=clock,
        )
        providers.append(provider)
        return provider, source

    yield factory

    for provider in providers:
        provider.controller.unbind()
        provider.controller.stop()
        await provider.controller.wait_idle()
