"""
HTTP Order Source

Production implementation reading the restaurant Order API with httpx.
Every request carries the session's bearer token.

Endpoints (relative to ORDER_API_BASE_URL):
    - Admin: GET /orders?limit=50 (single call, history included)
    - Delivery: GET /delivery/orders/my + GET /delivery/orders/history
    - Delivery heartbeat: POST /delivery/heartbeat

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from typing import Any, Optional

import httpx

from order_watch.schemas import OrderSnapshot
from order_watch.services.orders.base import (
    BaseOrderSource,
    OrderSourceAuthError,
    OrderSourceError,
    parse_snapshots,
)

logger = logging.getLogger(__name__)


class HttpOrderSource(BaseOrderSource):
    """Order source backed by the Order API."""

    def __init__(
        self,
        base_url: str,
        token: str,
        active_path: str,
        history_path: Optional[str] = None,
        heartbeat_path: Optional[str] = None,
        timeout: float = 15.0,
        history_window: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.active_path = active_path
        self.history_path = history_path
        self.heartbeat_path = heartbeat_path
        self.history_window = history_window
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )
        logger.info(f"HttpOrderSource initialized ({base_url}{active_path})")

    @property
    def provider_name(self) -> str:
        return "http"

    async def _get(self, path: str) -> Any:
        try:
            response = await self.client.get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in (401, 403):
                raise OrderSourceAuthError(f"Order API rejected credentials for {path}", status) from e
            raise OrderSourceError(f"Order API returned {status} for {path}", status) from e
        except httpx.HTTPError as e:
            raise OrderSourceError(f"Order API request failed for {path}: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise OrderSourceError(f"Order API returned invalid JSON for {path}") from e

    @staticmethod
    def _entries(payload: Any) -> list:
        if isinstance(payload, dict):
            payload = payload.get("orders") or []
        return payload if isinstance(payload, list) else []

    async def fetch_active(self) -> list[OrderSnapshot]:
        payload = await self._get(self.active_path)
        return parse_snapshots(self._entries(payload))

    async def fetch_history(self) -> list[OrderSnapshot]:
        if not self.history_path:
            return []
        payload = await self._get(self.history_path)
        return parse_snapshots(self._entries(payload)[: self.history_window])

    async def send_heartbeat(self) -> bool:
        if not self.heartbeat_path:
            return False
        try:
            response = await self.client.post(self.heartbeat_path)
            return response.is_success
        except httpx.HTTPError as e:
            logger.debug(f"Heartbeat failed: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.aclose()
