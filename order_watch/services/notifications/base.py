"""
Notification Service Abstract Base Class

Defines the interface for handing user-facing notifications to the
device. Delivery is assumed reliable once a notification is accepted.
Supports both Mock (development) and Expo push (production) implementations.

Author: Khalil Bannouri
Version: 4.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class NotificationResult:
    """Result from scheduling a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def schedule(
        self,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> NotificationResult:
        """
        Show a notification immediately.

        Args:
            title: Notification title
            body: Notification body
            data: Deep-link payload ({type, order_id, target_screen})
        """
        pass

    @abstractmethod
    async def clear_all(self) -> NotificationResult:
        """Dismiss shown notifications and reset the app badge."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass

    async def aclose(self) -> None:
        """Release network resources."""
