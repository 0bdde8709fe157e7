"""
Notification Synthesizer

Turns classified order transitions into feed records and device
notifications:

    - build(): a new unread NotificationRecord for a transition
    - retype() / refresh(): rewrite an existing record in place when the
      order's authoritative state has moved on (no dispatch)
    - dispatch(): exactly one device notification per classified transition

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from order_watch.engine.variants import Variant
from order_watch.schemas import NotificationRecord, NotificationTypeEnum, OrderSnapshot, OrderStatusEnum
from order_watch.services.notifications.base import BaseNotificationService, NotificationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Template:
    title: str
    message: str
    icon: str
    color: str


TEMPLATES = {
    NotificationTypeEnum.NEW_ORDER: Template(
        title="New Order Received! 🎉",
        message="Order #{order_id} - {amount}",
        icon="cart",
        color="#F59E0B",
    ),
    NotificationTypeEnum.NEW_ASSIGNMENT: Template(
        title="New Order Assigned! 🚴",
        message="Order #{order_id} - {amount}",
        icon="bicycle",
        color="#F59E0B",
    ),
    NotificationTypeEnum.STATUS_CHANGE: Template(
        title="Order Updated",
        message="Order #{order_id} has been updated",
        icon="sync",
        color="#3B82F6",
    ),
    NotificationTypeEnum.CANCELLED: Template(
        title="Order Cancelled ❌",
        message="Order #{order_id} has been cancelled",
        icon="close-circle",
        color="#EF4444",
    ),
    NotificationTypeEnum.DELIVERED: Template(
        title="Order Delivered ✅",
        message="Order #{order_id} delivered successfully",
        icon="checkmark-circle",
        color="#22C55E",
    ),
}


@dataclass
class Transition:
    """A newly observed, notifiable change of one order."""
    type: NotificationTypeEnum
    snapshot: OrderSnapshot
    previous: Optional[OrderStatusEnum] = None

    @property
    def order_id(self) -> str:
        return self.snapshot.order_id


class NotificationSynthesizer:
    """Builds records and dispatches device notifications for one variant."""

    def __init__(
        self,
        variant: Variant,
        notifier: BaseNotificationService,
        currency_symbol: str = "₹",
    ):
        self.variant = variant
        self.notifier = notifier
        self.currency_symbol = currency_symbol

    def format_amount(self, amount: float) -> str:
        if float(amount).is_integer():
            return f"{self.currency_symbol}{int(amount)}"
        return f"{self.currency_symbol}{amount:.2f}"

    def render_message(self, notification_type: NotificationTypeEnum, order_id: str, amount: float) -> str:
        message = self.variant.messages.get(notification_type, TEMPLATES[notification_type].message)
        return message.format(
            order_id=order_id,
            amount=self.format_amount(amount),
        )

    @staticmethod
    def record_id(notification_type: NotificationTypeEnum, order_id: str, cycle_time: datetime) -> str:
        """Unique per (type, order, cycle)."""
        return f"{notification_type.value}_{order_id}_{int(cycle_time.timestamp() * 1000)}"

    def build(self, transition: Transition, cycle_time: datetime) -> NotificationRecord:
        snapshot = transition.snapshot
        template = TEMPLATES[transition.type]
        return NotificationRecord(
            id=self.record_id(transition.type, snapshot.order_id, cycle_time),
            type=transition.type,
            title=template.title,
            message=self.render_message(transition.type, snapshot.order_id, snapshot.total_amount),
            order_id=snapshot.order_id,
            amount=snapshot.total_amount,
            address=snapshot.address,
            timestamp=cycle_time,
            read=False,
            icon=template.icon,
            color=template.color,
        )

    def retype(self, record: NotificationRecord, notification_type: NotificationTypeEnum, snapshot: OrderSnapshot) -> None:
        """Rewrite a record in place to describe the order's current state."""
        template = TEMPLATES[notification_type]
        record.type = notification_type
        record.title = template.title
        record.icon = template.icon
        record.color = template.color
        record.amount = snapshot.total_amount
        record.address = snapshot.address
        record.message = self.render_message(notification_type, record.order_id, snapshot.total_amount)

    def refresh(self, record: NotificationRecord, snapshot: OrderSnapshot) -> bool:
        """Update amount/address of a record. Returns True if anything changed."""
        if record.amount == snapshot.total_amount and record.address == snapshot.address:
            return False
        record.amount = snapshot.total_amount
        record.address = snapshot.address
        record.message = self.render_message(record.type, record.order_id, snapshot.total_amount)
        return True

    async def dispatch(self, transition: Transition) -> NotificationResult:
        """Hand one transition to the device notification service."""
        snapshot = transition.snapshot
        title = TEMPLATES[transition.type].title
        body = self.render_message(transition.type, snapshot.order_id, snapshot.total_amount)
        if transition.type is NotificationTypeEnum.NEW_ASSIGNMENT:
            body = f"{body}\n📍 {snapshot.address or 'Delivery'}"

        data = {
            "type": transition.type.value,
            "order_id": snapshot.order_id,
            "target_screen": self.variant.target_screens.get(transition.type),
        }

        result = await self.notifier.schedule(title, body, data)
        if not result.success:
            logger.warning(
                f"Notification for order #{snapshot.order_id} not delivered: {result.error_message}"
            )
        return result
