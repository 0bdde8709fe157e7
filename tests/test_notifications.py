import json

import httpx

from order_watch.services.notifications import ExpoNotificationService, MockNotificationService


def expo(handler, push_token="ExponentPushToken[abc]") -> ExpoNotificationService:
    return ExpoNotificationService(push_token, transport=httpx.MockTransport(handler))


async def test_expo_sends_to_session_token_on_new_orders_channel():
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return httpx.Response(200, json={"data": {"status": "ok", "id": "ticket-1"}})

    service = expo(handler)
    result = await service.schedule(
        "New Order Assigned! 🚴",
        "Order #X - ₹200\n📍 7 Anna Salai",
        {"type": "new_assignment", "order_id": "X", "target_screen": "MyOrders"},
    )
    await service.aclose()

    assert result.success
    assert result.message_id == "ticket-1"
    assert sent[0]["to"] == "ExponentPushToken[abc]"
    assert sent[0]["channelId"] == "new-orders"
    assert sent[0]["data"]["target_screen"] == "MyOrders"


async def test_expo_updates_channel_for_cancellations():
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return httpx.Response(200, json={"data": [{"status": "ok", "id": "t"}]})

    await expo(handler).schedule("Order Cancelled ❌", "Order #A has been cancelled", {"type": "cancelled"})
    assert sent[0]["channelId"] == "order-updates"


async def test_expo_rejected_ticket_is_a_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {"status": "error", "message": "DeviceNotRegistered"}})

    result = await expo(handler).schedule("t", "b", {})
    assert not result.success
    assert result.error_message == "DeviceNotRegistered"


async def test_expo_http_error_is_a_failure():
    result = await expo(lambda request: httpx.Response(500)).schedule("t", "b", {})
    assert not result.success


async def test_expo_without_token_skips_sending():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("nothing should be sent")

    service = expo(handler, push_token=None)
    result = await service.schedule("t", "b", {})

    assert not result.success
    assert await service.health_check() is False


async def test_expo_clear_all_resets_badge():
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return httpx.Response(200, json={"data": {"status": "ok"}})

    result = await expo(handler).clear_all()

    assert result.success
    assert sent[0]["badge"] == 0


async def test_mock_service_records_notifications():
    service = MockNotificationService()
    await service.schedule("Order Delivered ✅", "Order #A - ₹90 delivered successfully", {"type": "delivered"})
    await service.clear_all()

    assert service.scheduled == [{
        "title": "Order Delivered ✅",
        "body": "Order #A - ₹90 delivered successfully",
        "data": {"type": "delivered"},
    }]
    assert service.cleared == 1
