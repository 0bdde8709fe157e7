"""
Order Source Factory

Provides a single entry point for obtaining an order source for a watch
session. Automatically selects the simulated order book or the real
Order API based on ENV_MODE configuration.

Usage:
    from order_watch.services.orders import get_order_source

    source = get_order_source(variant, token)
    snapshot = await source.fetch_snapshot()

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from typing import TYPE_CHECKING

from order_watch.core.config import get_settings
from order_watch.services.orders.base import (
    BaseOrderSource,
    OrderSourceAuthError,
    OrderSourceError,
    parse_snapshots,
)
from order_watch.services.orders.http import HttpOrderSource
from order_watch.services.orders.mock import MockOrderSource

if TYPE_CHECKING:
    from order_watch.engine.variants import Variant

logger = logging.getLogger(__name__)


def get_order_source(variant: "Variant", token: str) -> BaseOrderSource:
    """
    Get an order source for one session.

    Args:
        variant: Role rules (selects the endpoints)
        token: Session bearer token

    Returns:
        BaseOrderSource: MockOrderSource in development, HttpOrderSource otherwise
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Order Source: Using MockOrderSource (development mode)")
        return MockOrderSource(
            split_history=variant.history_path is not None,
            failure_rate=settings.mock_failure_rate,
            simulate=True,
            min_latency=0.05,
            max_latency=0.2,
            history_window=settings.history_window,
        )
    else:
        logger.info(f"Order Source: Using HttpOrderSource ({settings.env_mode.value} mode)")
        return HttpOrderSource(
            base_url=settings.order_api_base_url,
            token=token,
            active_path=variant.active_path,
            history_path=variant.history_path,
            heartbeat_path=variant.heartbeat_path,
            timeout=settings.order_api_timeout,
            history_window=settings.history_window,
        )


__all__ = [
    "get_order_source",
    "BaseOrderSource",
    "OrderSourceError",
    "OrderSourceAuthError",
    "parse_snapshots",
    "HttpOrderSource",
    "MockOrderSource",
]
