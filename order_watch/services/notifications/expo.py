"""
Expo Push Notification Service

Production implementation delivering notifications to the client app
through the Expo push service (the app registers its Expo push token
when it opens a watch session).

Android channels used by the app:
    - new-orders: new orders and new assignments (max importance)
    - order-updates: cancellations and deliveries

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from typing import Any, Optional

import httpx

from order_watch.core.config import get_settings
from order_watch.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)

NEW_ORDER_TYPES = {"new_order", "new_assignment"}


class ExpoNotificationService(BaseNotificationService):
    """Notification service using the Expo push API."""

    def __init__(
        self,
        push_token: Optional[str],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.push_token = push_token
        self.push_url = settings.expo_push_url

        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if settings.expo_access_token:
            headers["Authorization"] = f"Bearer {settings.expo_access_token}"
        self.client = httpx.AsyncClient(headers=headers, timeout=10.0, transport=transport)

        if not push_token:
            logger.warning("Expo push token not provided; notifications will be skipped")
        logger.info("ExpoNotificationService initialized")

    @property
    def provider_name(self) -> str:
        return "expo"

    async def _send(self, message: dict[str, Any]) -> NotificationResult:
        if not self.push_token:
            return NotificationResult(
                success=False,
                error_message="Expo push token not configured",
                provider="expo"
            )

        try:
            response = await self.client.post(self.push_url, json={"to": self.push_token, **message})
            response.raise_for_status()
            ticket = response.json().get("data") or {}
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Expo push error: {e}")
            return NotificationResult(
                success=False,
                error_message=str(e),
                provider="expo"
            )

        if isinstance(ticket, list):
            ticket = ticket[0] if ticket else {}
        if ticket.get("status") != "ok":
            logger.warning(f"Expo rejected notification: {ticket.get('message')}")
            return NotificationResult(
                success=False,
                error_message=ticket.get("message", "Expo push rejected"),
                provider="expo"
            )

        return NotificationResult(
            success=True,
            message_id=ticket.get("id"),
            provider="expo"
        )

    async def schedule(
        self,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> NotificationResult:
        """Push a notification to the session's device."""
        data = data or {}
        channel = "new-orders" if data.get("type") in NEW_ORDER_TYPES else "order-updates"
        result = await self._send({
            "title": title,
            "body": body,
            "data": data,
            "sound": "default",
            "priority": "high",
            "channelId": channel,
        })
        if result.success:
            logger.info(f"Push sent: {title} ({result.message_id})")
        return result

    async def clear_all(self) -> NotificationResult:
        """Send a silent badge reset."""
        return await self._send({
            "badge": 0,
            "data": {"type": "clear"},
            "_contentAvailable": True,
        })

    async def health_check(self) -> bool:
        return bool(self.push_token)

    async def aclose(self) -> None:
        await self.client.aclose()
