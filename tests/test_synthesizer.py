import logging

import pytest

from conftest import START, snapshot
from order_watch.engine import NotificationSynthesizer, Transition, admin_variant, delivery_variant
from order_watch.schemas import NotificationTypeEnum, OrderStatusEnum
from order_watch.services.notifications import MockNotificationService


@pytest.fixture
def delivery_synth(settings, notifier):
    return NotificationSynthesizer(delivery_variant(settings), notifier)


@pytest.mark.parametrize("amount, expected", [
    (450, "₹450"),
    (450.0, "₹450"),
    (99.5, "₹99.50"),
    (0, "₹0"),
])
def test_format_amount(delivery_synth, amount, expected):
    assert delivery_synth.format_amount(amount) == expected


def test_currency_symbol_is_configurable(settings, notifier):
    synth = NotificationSynthesizer(admin_variant(settings), notifier, currency_symbol="$")
    assert synth.format_amount(12.25) == "$12.25"


def test_build_new_order_record(settings, notifier):
    synth = NotificationSynthesizer(admin_variant(settings), notifier)
    order = snapshot("ORD1001", OrderStatusEnum.CONFIRMED, amount=320, address="4 Park Street")

    record = synth.build(Transition(NotificationTypeEnum.NEW_ORDER, order), START)

    assert record.id == f"new_order_ORD1001_{int(START.timestamp() * 1000)}"
    assert record.title == "New Order Received! 🎉"
    assert record.message == "Order #ORD1001 - ₹320"
    assert record.icon == "cart"
    assert record.color == "#F59E0B"
    assert record.read is False
    assert record.address == "4 Park Street"
    assert record.timestamp == START


def test_record_ids_differ_per_type(delivery_synth):
    ids = {
        delivery_synth.record_id(t, "X", START)
        for t in (NotificationTypeEnum.NEW_ASSIGNMENT, NotificationTypeEnum.CANCELLED)
    }
    assert len(ids) == 2


@pytest.mark.parametrize("factory, notification_type, expected", [
    (admin_variant, NotificationTypeEnum.CANCELLED, "Order #X has been cancelled"),
    (admin_variant, NotificationTypeEnum.DELIVERED, "Order #X delivered successfully"),
    (delivery_variant, NotificationTypeEnum.CANCELLED, "Order #X was cancelled"),
    (delivery_variant, NotificationTypeEnum.DELIVERED, "Order #X - ₹75 delivered successfully!"),
])
def test_terminal_wording_differs_per_variant(settings, notifier, factory, notification_type, expected):
    synth = NotificationSynthesizer(factory(settings), notifier)
    assert synth.render_message(notification_type, "X", 75) == expected


async def test_dispatch_assignment_includes_address_and_target(delivery_synth, notifier):
    order = snapshot("X", OrderStatusEnum.READY, amount=200, address="7 Anna Salai")

    result = await delivery_synth.dispatch(Transition(NotificationTypeEnum.NEW_ASSIGNMENT, order))

    assert result.success
    sent = notifier.scheduled[-1]
    assert sent["title"] == "New Order Assigned! 🚴"
    assert sent["body"] == "Order #X - ₹200\n📍 7 Anna Salai"
    assert sent["data"] == {"type": "new_assignment", "order_id": "X", "target_screen": "MyOrders"}


async def test_dispatch_delivered_deep_links_to_history(delivery_synth, notifier):
    order = snapshot("X", OrderStatusEnum.DELIVERED, amount=200)
    await delivery_synth.dispatch(Transition(NotificationTypeEnum.DELIVERED, order, OrderStatusEnum.OUT_FOR_DELIVERY))
    assert notifier.scheduled[-1]["data"]["target_screen"] == "History"
    assert notifier.scheduled[-1]["body"] == "Order #X - ₹200 delivered successfully!"


async def test_dispatch_failure_is_logged_not_raised(settings, caplog):
    synth = NotificationSynthesizer(admin_variant(settings), MockNotificationService(failure_rate=1.0))
    order = snapshot("A", OrderStatusEnum.CANCELLED)

    with caplog.at_level(logging.WARNING):
        result = await synth.dispatch(Transition(NotificationTypeEnum.CANCELLED, order))

    assert not result.success
    assert "not delivered" in caplog.text
