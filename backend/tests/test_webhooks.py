"""Tests for webhook signature check, dispatch and registration."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from product_downloads.auth.models import ShopSession
from product_downloads.errors import OperationRejected
from product_downloads.shopify import webhooks
from product_downloads.shopify.webhooks import (
    compute_hmac_base64,
    register_webhook,
    topic_enum,
    verify_webhook_hmac,
)

SHOP = "merchant.myshopify.com"
SECRET = "test-api-secret"


def _deliver(client, body: bytes, topic: str = "app/uninstalled", signature: str = None):
    return client.post(
        "/webhooks",
        content=body,
        headers={
            "Content-Type": "application/json",
            "X-Shopify-Hmac-Sha256": signature if signature is not None else compute_hmac_base64(SECRET, body),
            "X-Shopify-Topic": topic,
            "X-Shopify-Shop-Domain": SHOP,
        },
    )


def test_topic_enum() -> None:
    assert topic_enum("app/uninstalled") == "APP_UNINSTALLED"
    assert topic_enum("products/update") == "PRODUCTS_UPDATE"


def test_verify_webhook_hmac() -> None:
    body = b'{"id": 1}'
    good = compute_hmac_base64(SECRET, body)
    assert verify_webhook_hmac(good, body, SECRET) is True
    assert verify_webhook_hmac(good, body + b" ", SECRET) is False
    assert verify_webhook_hmac("", body, SECRET) is False
    assert verify_webhook_hmac(good, body, "") is False


@pytest.mark.asyncio
async def test_uninstall_removes_session(client, session_store) -> None:
    await session_store.save_session(ShopSession(shop=SHOP, access_token="tok"))
    r = _deliver(client, json.dumps({"domain": SHOP}).encode())
    assert r.status_code == 200
    assert r.text == ""
    assert await session_store.get_session(SHOP) is None


@pytest.mark.asyncio
async def test_invalid_hmac_is_rejected(client, session_store) -> None:
    await session_store.save_session(ShopSession(shop=SHOP, access_token="tok"))
    r = _deliver(client, b"{}", signature="bm90LXRoZS1yaWdodC1zaWduYXR1cmU=")
    assert r.status_code == 401
    assert await session_store.get_session(SHOP) is not None


def test_unknown_topic_is_acknowledged(client) -> None:
    r = _deliver(client, b"{}", topic="orders/create")
    assert r.status_code == 200


def test_handler_failure_still_acknowledged(client, monkeypatch) -> None:
    """A failing handler is logged; the delivery gets 200."""
    failing = AsyncMock(side_effect=RuntimeError("store unavailable"))
    monkeypatch.setitem(webhooks.HANDLERS, "APP_UNINSTALLED", failing)
    r = _deliver(client, b"{}")
    assert r.status_code == 200
    failing.assert_awaited_once()


def test_malformed_json_still_acknowledged(client) -> None:
    r = _deliver(client, b"not json")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_register_webhook_sends_callback_url() -> None:
    client = MagicMock()
    client.shop = SHOP
    client.execute = AsyncMock(
        return_value={"data": {"webhookSubscriptionCreate": {"webhookSubscription": {"id": "w"}, "userErrors": []}}}
    )
    await register_webhook(client, "APP_UNINSTALLED")
    _, variables = client.execute.call_args[0][:2]
    assert variables == {"topic": "APP_UNINSTALLED", "callbackUrl": "https://downloads.example.com/webhooks"}


@pytest.mark.asyncio
async def test_register_webhook_user_errors() -> None:
    client = MagicMock()
    client.shop = SHOP
    client.execute = AsyncMock(
        return_value={"data": {"webhookSubscriptionCreate": {"userErrors": [{"message": "Address taken"}]}}}
    )
    with pytest.raises(OperationRejected):
        await register_webhook(client, "APP_UNINSTALLED")
