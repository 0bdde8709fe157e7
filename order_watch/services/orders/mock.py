"""
Mock Order Source Implementation

Simulates the restaurant Order API with an in-memory order book.
Used in development mode (ENV_MODE=development) and by the test suite.

Behavior:
    - Orders are stored in the same camelCase shape the API returns
    - Active set = non-terminal orders; history = terminal orders,
      most recently updated first
    - Optional simulation places new orders and advances existing ones
      through the kitchen/delivery pipeline on every fetch
    - Configurable random failure rate for testing error handling

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import itertools
import logging
import random
from datetime import datetime, timezone
from typing import Callable, Optional

from order_watch.schemas import TERMINAL_STATUSES, OrderSnapshot, OrderStatusEnum
from order_watch.services.orders.base import BaseOrderSource, OrderSourceError, parse_snapshots

logger = logging.getLogger(__name__)

PIPELINE = [
    OrderStatusEnum.CONFIRMED,
    OrderStatusEnum.PREPARING,
    OrderStatusEnum.READY,
    OrderStatusEnum.OUT_FOR_DELIVERY,
    OrderStatusEnum.DELIVERED,
]

STREETS = ["MG Road", "Park Street", "Brigade Road", "Linking Road", "Anna Salai", "Residency Road"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MockOrderSource(BaseOrderSource):
    """
    Mock implementation of the order source.

    Attributes:
        split_history: Serve terminal orders from the history call (delivery)
            instead of the active call (admin)
        failure_rate: Probability of simulated API failure (0.0-1.0)
        simulate: Place and advance random orders on every fetch
        heartbeats: Number of heartbeats received
    """

    ACTIVE_LIMIT = 50

    def __init__(
        self,
        split_history: bool = True,
        failure_rate: float = 0.0,
        simulate: bool = False,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        history_window: int = 10,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.split_history = split_history
        self.failure_rate = failure_rate
        self.simulate = simulate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.history_window = history_window
        self.clock = clock
        self.orders: dict[str, dict] = {}
        self.heartbeats = 0
        self._ids = itertools.count(1001)

        logger.info(
            f"MockOrderSource initialized "
            f"(failure_rate={failure_rate:.0%}, simulate={simulate})"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    # =========================================================================
    # ORDER BOOK
    # =========================================================================

    def place_order(
        self,
        order_id: Optional[str] = None,
        status: OrderStatusEnum = OrderStatusEnum.CONFIRMED,
        amount: Optional[float] = None,
        address: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> str:
        """Add an order to the book and return its id."""
        order_id = order_id or f"ORD{next(self._ids)}"
        now = self.clock()
        self.orders[order_id] = {
            "orderId": order_id,
            "status": OrderStatusEnum(status).value,
            "totalAmount": round(random.uniform(150, 900), 2) if amount is None else amount,
            "deliveryAddress": {
                "address": address if address is not None
                else f"{random.randint(1, 250)} {random.choice(STREETS)}",
            },
            "createdAt": (created_at or now).isoformat(),
            "statusUpdatedAt": now.isoformat(),
        }
        return order_id

    def set_status(self, order_id: str, status: OrderStatusEnum) -> None:
        order = self.orders[order_id]
        order["status"] = OrderStatusEnum(status).value
        order["statusUpdatedAt"] = self.clock().isoformat()

    def update(self, order_id: str, **fields) -> None:
        """Overwrite raw API fields (e.g. totalAmount) of an order."""
        self.orders[order_id].update(fields)

    def remove(self, order_id: str) -> None:
        self.orders.pop(order_id, None)

    # =========================================================================
    # SIMULATION
    # =========================================================================

    async def _simulate_latency(self) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def _advance_random_order(self) -> None:
        open_ids = [
            oid for oid, o in self.orders.items()
            if OrderStatusEnum(o["status"]) not in TERMINAL_STATUSES
        ]
        if not open_ids:
            return
        order_id = random.choice(open_ids)
        current = OrderStatusEnum(self.orders[order_id]["status"])
        if random.random() < 0.1:
            next_status = OrderStatusEnum.CANCELLED
        elif current in PIPELINE:
            next_status = PIPELINE[PIPELINE.index(current) + 1]
        else:
            next_status = OrderStatusEnum.CONFIRMED
        self.set_status(order_id, next_status)
        logger.debug(f"Mock: {order_id} {current.value} -> {next_status.value}")

    def _tick(self) -> None:
        if random.random() < 0.3:
            order_id = self.place_order()
            logger.debug(f"Mock: placed {order_id}")
        self._advance_random_order()

    # =========================================================================
    # ORDER SOURCE INTERFACE
    # =========================================================================

    def _newest_first(self, terminal: Optional[bool]) -> list[dict]:
        orders = [
            o for o in self.orders.values()
            if terminal is None or (OrderStatusEnum(o["status"]) in TERMINAL_STATUSES) == terminal
        ]
        key = "statusUpdatedAt" if terminal else "createdAt"
        return sorted(orders, key=lambda o: o[key], reverse=True)

    async def fetch_active(self) -> list[OrderSnapshot]:
        await self._simulate_latency()
        if self._should_fail():
            logger.debug("Mock: Simulated active orders failure")
            raise OrderSourceError("Order service temporarily unavailable", 503)
        if self.simulate:
            self._tick()

        if self.split_history:
            return parse_snapshots(self._newest_first(terminal=False))
        return parse_snapshots(self._newest_first(terminal=None)[: self.ACTIVE_LIMIT])

    async def fetch_history(self) -> list[OrderSnapshot]:
        if not self.split_history:
            return []
        await self._simulate_latency()
        if self._should_fail():
            logger.debug("Mock: Simulated history failure")
            raise OrderSourceError("Order history temporarily unavailable", 503)
        return parse_snapshots(self._newest_first(terminal=True)[: self.history_window])

    async def send_heartbeat(self) -> bool:
        self.heartbeats += 1
        return True
