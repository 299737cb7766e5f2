import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from storefront.errors import WebhookDeliveryFailed
from storefront.notifications.webhooks import CHECKOUT_SUCCESS, USER_SIGNUP, WebhookNotifier, build_payload, split_name


def test_build_payload_purchase():
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    payload = build_payload(CHECKOUT_SUCCESS, "Ada King Lovelace", "ada@example.com", order_total=139, now=now)

    assert payload == {
        "event_type": "checkout_success",
        "timestamp": "2024-05-01T12:00:00+00:00",
        "customer_data": {"first_name": "Ada", "last_name": "King Lovelace", "email": "ada@example.com"},
        "order_data": {"order_total": "139.00"},
    }


def test_build_payload_signup_has_no_order_data():
    payload = build_payload(USER_SIGNUP, "Ada", "ada@example.com")
    assert "order_data" not in payload
    assert payload["customer_data"]["last_name"] == ""


def test_build_payload_rejects_unknown_event():
    with pytest.raises(ValueError):
        build_payload("order_refunded", "Ada", "ada@example.com")


def test_split_name_empty():
    assert split_name("   ") == {"first_name": "", "last_name": ""}


def _recording_transport(status_code=200):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code)

    return httpx.MockTransport(handler), seen


def test_dispatch_posts_json():
    transport, seen = _recording_transport()
    notifier = WebhookNotifier(url="https://hooks.example.test/catch", transport=transport)

    sent = asyncio.run(notifier.dispatch(CHECKOUT_SUCCESS, "Ada Lovelace", "ada@example.com", 79))

    assert sent is True
    body = json.loads(seen[0].content)
    assert body["order_data"]["order_total"] == "79.00"
    assert seen[0].headers["user-agent"].startswith("Storefront-Webhook")


def test_send_raises_on_non_2xx_and_dispatch_swallows():
    transport, _ = _recording_transport(status_code=500)
    notifier = WebhookNotifier(url="https://hooks.example.test/catch", transport=transport)

    with pytest.raises(WebhookDeliveryFailed):
        asyncio.run(notifier.send(build_payload(USER_SIGNUP, "Ada", "ada@example.com")))
    assert asyncio.run(notifier.dispatch(USER_SIGNUP, "Ada", "ada@example.com")) is False


def test_network_error_is_swallowed():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    notifier = WebhookNotifier(url="https://hooks.example.test/catch", transport=httpx.MockTransport(handler))

    assert asyncio.run(notifier.dispatch(USER_SIGNUP, "Ada", "ada@example.com")) is False


def test_disabled_notifier_sends_nothing():
    transport, seen = _recording_transport()
    notifier = WebhookNotifier(url="", transport=transport)

    assert asyncio.run(notifier.dispatch(USER_SIGNUP, "Ada", "ada@example.com")) is False
    assert seen == []


def test_fire_and_forget_then_drain():
    transport, seen = _recording_transport()
    notifier = WebhookNotifier(url="https://hooks.example.test/catch", transport=transport)

    async def scenario():
        task = notifier.fire_and_forget(CHECKOUT_SUCCESS, "Ada", "ada@example.com", 10)
        await notifier.drain()
        return task

    task = asyncio.run(scenario())
    assert task.result() is True
    assert len(seen) == 1
