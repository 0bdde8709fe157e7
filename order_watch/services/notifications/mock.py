"""
Mock Notification Service

Simulates device notifications for development.
Nothing is sent - notifications are logged and kept in memory so the
simulation script and the tests can inspect them.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
import random
import uuid
from typing import Any, Optional

from order_watch.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):
    """Mock notification service for development."""

    def __init__(self, failure_rate: float = 0.0):
        self.failure_rate = failure_rate
        self.scheduled: list[dict[str, Any]] = []
        self.cleared = 0
        logger.info(f"MockNotificationService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def schedule(
        self,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> NotificationResult:
        """Simulate showing a notification."""
        if self._should_fail():
            logger.warning(f"Mock notification failed (simulated): {title}")
            return NotificationResult(
                success=False,
                error_message="Simulated notification failure",
                provider="mock"
            )

        message_id = f"notif_mock_{uuid.uuid4().hex[:12]}"
        self.scheduled.append({"title": title, "body": body, "data": data or {}})
        logger.info(f"Mock notification: {title} | {body.splitlines()[0]} (ID: {message_id})")

        return NotificationResult(
            success=True,
            message_id=message_id,
            provider="mock"
        )

    async def clear_all(self) -> NotificationResult:
        self.cleared += 1
        logger.info("Mock notifications cleared")
        return NotificationResult(success=True, provider="mock")

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
