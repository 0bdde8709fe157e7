"""
Notification Service Factory

Returns Mock or Expo notification service based on ENV_MODE.
A service is created per watch session because the Expo push token
belongs to the session's device.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from typing import Optional

from order_watch.core.config import get_settings
from order_watch.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)
from order_watch.services.notifications.expo import ExpoNotificationService
from order_watch.services.notifications.mock import MockNotificationService

logger = logging.getLogger(__name__)


def get_notification_service(push_token: Optional[str] = None) -> BaseNotificationService:
    """Get a notification service for one session."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Notification Service: Using MockNotificationService (development mode)")
        return MockNotificationService(failure_rate=settings.mock_failure_rate)
    else:
        logger.info(f"Notification Service: Using ExpoNotificationService ({settings.env_mode.value} mode)")
        return ExpoNotificationService(push_token)


__all__ = [
    "get_notification_service",
    "BaseNotificationService",
    "NotificationResult",
    "MockNotificationService",
    "ExpoNotificationService",
]
