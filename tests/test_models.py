from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from order_watch.models import Ledger, WatchState
from order_watch.schemas import NotificationRecord, NotificationTypeEnum, OrderSnapshot, OrderStatusEnum
from order_watch.services.orders import parse_snapshots

S = OrderStatusEnum


# =============================================================================
# ORDER SNAPSHOT
# =============================================================================

def test_snapshot_parses_api_shape():
    order = OrderSnapshot.model_validate({
        "orderId": 1042,
        "status": "out_for_delivery",
        "totalAmount": "349.5",
        "deliveryAddress": {"address": "22 Brigade Road", "city": "Bengaluru"},
        "createdAt": "2025-03-01T11:58:00Z",
        "customer": {"name": "ignored"},
    })

    assert order.order_id == "1042"
    assert order.status is S.OUT_FOR_DELIVERY
    assert order.total_amount == 349.5
    assert order.address == "22 Brigade Road"
    assert order.created_at == datetime(2025, 3, 1, 11, 58, tzinfo=timezone.utc)


def test_snapshot_defaults_missing_amount_and_address():
    order = OrderSnapshot.model_validate({"orderId": "A", "status": "pending", "totalAmount": None})
    assert order.total_amount == 0.0
    assert order.address == ""
    assert order.created_at is None


def test_snapshot_naive_timestamp_is_utc():
    order = OrderSnapshot.model_validate({"orderId": "A", "status": "pending", "createdAt": "2025-03-01T12:00:00"})
    assert order.created_at.tzinfo is timezone.utc


@pytest.mark.parametrize("entry", [
    {"status": "pending"},
    {"orderId": "", "status": "pending"},
    {"orderId": "A", "status": "lost_in_space"},
])
def test_unusable_entries_are_rejected(entry):
    with pytest.raises(ValidationError):
        OrderSnapshot.model_validate(entry)


def test_parse_snapshots_skips_unusable_entries(caplog):
    parsed = parse_snapshots([
        {"orderId": "A", "status": "pending"},
        {"status": "pending"},
        {"orderId": "B", "status": "teleported"},
        {"orderId": "C", "status": "delivered"},
    ])
    assert [s.order_id for s in parsed] == ["A", "C"]
    assert "Skipping malformed order entry" in caplog.text


# =============================================================================
# LEDGER
# =============================================================================

def test_observe_moves_order_to_recent_end():
    ledger = Ledger()
    for order_id in ("A", "B", "C"):
        ledger.observe(order_id, S.PENDING)
    ledger.observe("A", S.CONFIRMED)

    ledger.prune(status_cap=2, assigned_cap=50)

    assert list(ledger.statuses) == ["C", "A"]
    assert ledger.previous("A") is S.CONFIRMED
    assert ledger.previous("B") is None


def test_ledger_round_trip_keeps_order():
    ledger = Ledger()
    ledger.observe("B", S.READY)
    ledger.observe("A", S.DELIVERED)
    ledger.assign("B")

    restored = Ledger.from_dict(ledger.to_dict())

    assert list(restored.statuses.items()) == [("B", S.READY), ("A", S.DELIVERED)]
    assert restored.is_assigned("B")


def test_ledger_reads_flat_mapping():
    ledger = Ledger.from_dict({"A": "pending", "B": "cancelled"})
    assert ledger.previous("B") is S.CANCELLED
    assert not ledger.assigned


def test_ledger_drops_unknown_status(caplog):
    ledger = Ledger.from_dict({"statuses": {"A": "pending", "B": "archived"}, "assigned": ["A"]})
    assert len(ledger) == 1
    assert "unknown status" in caplog.text


# =============================================================================
# WATCH STATE
# =============================================================================

def test_find_record():
    record = NotificationRecord(
        id="new_order_A_1",
        type=NotificationTypeEnum.NEW_ORDER,
        title="t",
        message="m",
        order_id="A",
        timestamp=datetime(2025, 3, 1, tzinfo=timezone.utc),
    )
    state = WatchState(feed=[record], ledger=Ledger(), last_check=record.timestamp)

    assert state.find("new_order_A_1") is record
    assert state.find("missing") is None
