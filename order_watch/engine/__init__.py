"""
Order Watch Engine

Order-state change detection and notification dispatch, shared by the
admin and delivery variants.

Usage:
    from order_watch.engine import NotificationProvider, get_variant

    provider = NotificationProvider(get_variant(role), source, store, notifier)
    await provider.open()

Author: Khalil Bannouri
Version: 4.0.0
"""

from order_watch.engine.badges import BadgeCounter
from order_watch.engine.diff import CycleResult, DiffEngine
from order_watch.engine.lifecycle import LifecycleController, LifecycleEventSource, LifecycleState
from order_watch.engine.persistence import StatePersistence
from order_watch.engine.provider import NotificationProvider
from order_watch.engine.synthesizer import NotificationSynthesizer, Transition
from order_watch.engine.variants import Variant, admin_variant, delivery_variant, get_variant

__all__ = [
    "BadgeCounter",
    "CycleResult",
    "DiffEngine",
    "LifecycleController",
    "LifecycleEventSource",
    "LifecycleState",
    "StatePersistence",
    "NotificationProvider",
    "NotificationSynthesizer",
    "Transition",
    "Variant",
    "admin_variant",
    "delivery_variant",
    "get_variant",
]
