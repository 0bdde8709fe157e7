"""
Watch State Models

In-memory state owned by one notification provider:
- Ledger: last seen status per order (plus assigned ids for delivery)
- WatchState: ledger + notification feed + last-check marker

Both are plain dataclasses; persistence encodes them as JSON documents.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from order_watch.schemas import NotificationRecord, OrderStatusEnum

logger = logging.getLogger(__name__)


@dataclass
class Ledger:
    """
    Order ledger with a bounded trailing window.

    Both collections keep insertion order; observing an order moves it to
    the most recent end so orders that are still reported are pruned last.

    Attributes:
        statuses: order_id -> last seen status
        assigned: order ids already announced as assignments (delivery)
    """
    statuses: dict[str, OrderStatusEnum] = field(default_factory=dict)
    assigned: dict[str, None] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.statuses)

    def previous(self, order_id: str) -> Optional[OrderStatusEnum]:
        return self.statuses.get(order_id)

    def observe(self, order_id: str, status: OrderStatusEnum) -> None:
        self.statuses.pop(order_id, None)
        self.statuses[order_id] = status

    def is_assigned(self, order_id: str) -> bool:
        return order_id in self.assigned

    def assign(self, order_id: str) -> None:
        self.assigned.pop(order_id, None)
        self.assigned[order_id] = None

    def prune(self, status_cap: int, assigned_cap: int) -> None:
        """Drop the oldest entries beyond each cap."""
        for collection, cap in ((self.statuses, status_cap), (self.assigned, assigned_cap)):
            excess = len(collection) - cap
            for order_id in list(collection)[: max(excess, 0)]:
                del collection[order_id]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "statuses": {oid: status.value for oid, status in self.statuses.items()},
            "assigned": list(self.assigned),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Ledger":
        """
        Rebuild a ledger from its stored form.

        A flat ``{order_id: status}`` mapping (no "statuses" key) is read
        as a status-only ledger.
        """
        raw_statuses = data.get("statuses", data) if isinstance(data, dict) else {}
        ledger = cls()
        for order_id, status in raw_statuses.items():
            if order_id == "assigned":
                continue
            try:
                ledger.statuses[str(order_id)] = OrderStatusEnum(status)
            except ValueError:
                logger.warning(f"Dropping ledger entry {order_id} with unknown status {status!r}")
        for order_id in data.get("assigned", []) if isinstance(data, dict) else []:
            ledger.assigned[str(order_id)] = None
        return ledger


@dataclass
class WatchState:
    """Everything a provider persists between cycles."""
    feed: list[NotificationRecord]
    ledger: Ledger
    last_check: datetime

    @classmethod
    def empty(cls, now: datetime) -> "WatchState":
        return cls(feed=[], ledger=Ledger(), last_check=now)

    def find(self, notification_id: str) -> Optional[NotificationRecord]:
        return next((r for r in self.feed if r.id == notification_id), None)
