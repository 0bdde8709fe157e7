"""
Diff Engine

Compares one fetched order snapshot against the watch state and decides
which transitions are new since the last observation.

For every order in the snapshot, in order:
    1. New-condition check (variant rule) -> new_order / new_assignment
    2. Status-change check against the ledger:
         cancelled/refunded          -> cancelled
         delivered (variant rule)    -> delivered
         anything else               -> silent ledger update
    3. ledger[order] = current status

Then every transitioned order gets a fresh unread record at the front of
the feed, replacing the record it already had. Remaining records are
corrected in place to their order's current state without touching the
read flag. The feed and ledger are trimmed to their caps and the
last-check marker moves to the cycle time.

The feed holds at most one record per order, newest first.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from order_watch.engine.synthesizer import NotificationSynthesizer, Transition
from order_watch.engine.variants import Variant
from order_watch.models import WatchState
from order_watch.schemas import NotificationRecord, NotificationTypeEnum, OrderSnapshot, OrderStatusEnum

logger = logging.getLogger(__name__)


@dataclass
class CycleResult:
    """Outcome of one applied diff cycle."""
    cycle_time: datetime
    snapshots: list[OrderSnapshot]
    transitions: list[Transition] = field(default_factory=list)
    new_records: list[NotificationRecord] = field(default_factory=list)
    rewritten: list[NotificationRecord] = field(default_factory=list)
    attention: int = 0

    @property
    def has_new_orders(self) -> bool:
        return any(
            t.type in (NotificationTypeEnum.NEW_ORDER, NotificationTypeEnum.NEW_ASSIGNMENT)
            for t in self.transitions
        )


class DiffEngine:
    """Transition classifier for one variant."""

    def __init__(
        self,
        variant: Variant,
        synthesizer: NotificationSynthesizer,
        feed_cap: int = 30,
        ledger_cap: int = 100,
        assigned_cap: int = 50,
    ):
        self.variant = variant
        self.synthesizer = synthesizer
        self.feed_cap = feed_cap
        self.ledger_cap = ledger_cap
        self.assigned_cap = assigned_cap

    def classify(self, state: WatchState, snapshots: list[OrderSnapshot]) -> list[Transition]:
        """Run steps 1-3 for every snapshot, mutating the ledger."""
        ledger = state.ledger
        transitions = []

        for snapshot in snapshots:
            order_id = snapshot.order_id
            current = snapshot.status
            previous = ledger.previous(order_id)

            if self.variant.is_new(snapshot, ledger, state.last_check):
                transitions.append(Transition(self.variant.new_type, snapshot, previous))
                if self.variant.tracks_assignments:
                    ledger.assign(order_id)
            elif self.variant.tracks_assignments and ledger.is_assigned(order_id):
                ledger.assign(order_id)

            if previous is not None and previous != current:
                if current in self.variant.cancel_statuses:
                    transitions.append(Transition(NotificationTypeEnum.CANCELLED, snapshot, previous))
                elif current is OrderStatusEnum.DELIVERED and self.variant.announces_delivery(previous):
                    transitions.append(Transition(NotificationTypeEnum.DELIVERED, snapshot, previous))
                else:
                    logger.debug(f"Order #{order_id}: {previous.value} -> {current.value} (silent)")

            ledger.observe(order_id, current)

        return transitions

    def _target_type(self, status: OrderStatusEnum):
        if status in self.variant.cancel_statuses:
            return NotificationTypeEnum.CANCELLED
        if status is OrderStatusEnum.DELIVERED:
            return NotificationTypeEnum.DELIVERED
        return None

    def rewrite(self, feed: list[NotificationRecord], current: dict[str, OrderSnapshot]) -> list[NotificationRecord]:
        """Correct existing records to their order's current state."""
        rewritten = []
        for record in feed:
            snapshot = current.get(record.order_id)
            if snapshot is None:
                continue
            target = self._target_type(snapshot.status)
            if target is not None and record.type is not target:
                logger.debug(f"Rewriting {record.id}: {record.type.value} -> {target.value}")
                self.synthesizer.retype(record, target, snapshot)
                rewritten.append(record)
            elif self.synthesizer.refresh(record, snapshot):
                rewritten.append(record)
        return rewritten

    def apply(self, state: WatchState, snapshots: list[OrderSnapshot], now: datetime) -> CycleResult:
        """
        Apply one fetched snapshot to the watch state.

        Args:
            state: Watch state (mutated in place)
            snapshots: The complete, successfully fetched snapshot
            now: Cycle time (becomes the new last-check marker)

        Returns:
            CycleResult: Transitions to dispatch and the feed changes made
        """
        transitions = self.classify(state, snapshots)

        current: dict[str, OrderSnapshot] = {}
        for snapshot in snapshots:
            current.setdefault(snapshot.order_id, snapshot)

        # last transition per order wins; its record replaces any older one
        latest: dict[str, Transition] = {}
        for transition in transitions:
            latest[transition.order_id] = transition

        feed = [record for record in state.feed if record.order_id not in latest]
        superseded = len(state.feed) - len(feed)
        rewritten = self.rewrite(feed, current)
        new_records = [self.synthesizer.build(transition, now) for transition in latest.values()]

        state.last_check = now
        state.feed = (new_records + feed)[: self.feed_cap]
        state.ledger.prune(self.ledger_cap, self.assigned_cap)

        attention = sum(1 for t in transitions if t.type in self.variant.attention_types)

        if transitions or rewritten:
            logger.info(
                f"[{self.variant.role.value}] {len(transitions)} transition(s), "
                f"{len(new_records)} new record(s), {superseded} superseded, {len(rewritten)} rewritten"
            )

        return CycleResult(
            cycle_time=now,
            snapshots=snapshots,
            transitions=transitions,
            new_records=new_records,
            rewritten=rewritten,
            attention=attention,
        )
