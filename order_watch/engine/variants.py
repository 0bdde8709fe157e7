"""
Watch Variants

The admin console and the delivery partner app run the same engine with
different rules. A Variant bundles everything that differs between them:

    - how an unseen order is recognised as new
    - which prior status a delivery must come from to be announced
    - Order API endpoints and cadence
    - storage namespace
    - which notification types feed the attention badge
    - deep-link target screens
    - message wording that differs from the shared templates

Author: Khalil Bannouri
Version: 4.0.0
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Mapping, Optional

from order_watch.core.config import Settings, get_settings
from order_watch.models import Ledger
from order_watch.schemas import (
    TERMINAL_STATUSES,
    NotificationTypeEnum,
    OrderSnapshot,
    OrderStatusEnum,
    RoleEnum,
)

NewRule = Callable[[OrderSnapshot, Ledger, datetime, frozenset], bool]

CANCEL_STATUSES = frozenset({OrderStatusEnum.CANCELLED, OrderStatusEnum.REFUNDED})


def is_new_order(snapshot: OrderSnapshot, ledger: Ledger, last_check: datetime, terminal: frozenset) -> bool:
    """Admin rule: never seen and created after the last check."""
    if ledger.previous(snapshot.order_id) is not None or snapshot.created_at is None:
        return False
    return snapshot.created_at > last_check


def is_new_assignment(snapshot: OrderSnapshot, ledger: Ledger, last_check: datetime, terminal: frozenset) -> bool:
    """Delivery rule: not yet announced and still open."""
    return not ledger.is_assigned(snapshot.order_id) and snapshot.status not in terminal


@dataclass(frozen=True)
class Variant:
    """Rule set for one role."""
    role: RoleEnum
    namespace: str
    new_type: NotificationTypeEnum
    new_rule: NewRule
    tracks_assignments: bool
    delivered_from: Optional[frozenset]
    active_path: str
    history_path: Optional[str] = None
    heartbeat_path: Optional[str] = None
    poll_interval: Optional[float] = None
    heartbeat_interval: Optional[float] = None
    terminal_statuses: frozenset = TERMINAL_STATUSES
    cancel_statuses: frozenset = CANCEL_STATUSES
    attention_types: frozenset = frozenset()
    target_screens: Mapping[NotificationTypeEnum, str] = field(default_factory=dict)
    messages: Mapping[NotificationTypeEnum, str] = field(default_factory=dict)

    def is_new(self, snapshot: OrderSnapshot, ledger: Ledger, last_check: datetime) -> bool:
        return self.new_rule(snapshot, ledger, last_check, self.terminal_statuses)

    def announces_delivery(self, previous: OrderStatusEnum) -> bool:
        return self.delivered_from is None or previous in self.delivered_from


def admin_variant(settings: Optional[Settings] = None) -> Variant:
    settings = settings or get_settings()
    return Variant(
        role=RoleEnum.ADMIN,
        namespace="admin",
        new_type=NotificationTypeEnum.NEW_ORDER,
        new_rule=is_new_order,
        tracks_assignments=False,
        delivered_from=None,
        active_path="/orders?limit=50",
        poll_interval=settings.admin_poll_interval_seconds,
        attention_types=frozenset({NotificationTypeEnum.NEW_ORDER}),
        target_screens={
            NotificationTypeEnum.NEW_ORDER: "Orders",
            NotificationTypeEnum.CANCELLED: "Orders",
            NotificationTypeEnum.DELIVERED: "Orders",
        },
    )


def delivery_variant(settings: Optional[Settings] = None) -> Variant:
    settings = settings or get_settings()
    return Variant(
        role=RoleEnum.DELIVERY,
        namespace="delivery",
        new_type=NotificationTypeEnum.NEW_ASSIGNMENT,
        new_rule=is_new_assignment,
        tracks_assignments=True,
        delivered_from=frozenset({OrderStatusEnum.OUT_FOR_DELIVERY}),
        active_path="/delivery/orders/my",
        history_path="/delivery/orders/history",
        heartbeat_path="/delivery/heartbeat",
        poll_interval=settings.delivery_poll_interval_seconds,
        heartbeat_interval=settings.delivery_heartbeat_interval_seconds,
        attention_types=frozenset({
            NotificationTypeEnum.NEW_ASSIGNMENT,
            NotificationTypeEnum.CANCELLED,
        }),
        target_screens={
            NotificationTypeEnum.NEW_ASSIGNMENT: "MyOrders",
            NotificationTypeEnum.CANCELLED: "MyOrders",
            NotificationTypeEnum.DELIVERED: "History",
        },
        messages={
            NotificationTypeEnum.CANCELLED: "Order #{order_id} was cancelled",
            NotificationTypeEnum.DELIVERED: "Order #{order_id} - {amount} delivered successfully!",
        },
    )


def get_variant(role: RoleEnum, settings: Optional[Settings] = None) -> Variant:
    """Select the variant for an authenticated role."""
    if RoleEnum(role) is RoleEnum.ADMIN:
        return admin_variant(settings)
    return delivery_variant(settings)
