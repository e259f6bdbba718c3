"""Webhook registration, signature check and topic dispatch."""

import base64
import hashlib
import hmac
import logging
from typing import Any, Awaitable, Callable, Dict

from product_downloads.auth.sessions import SessionStore
from product_downloads.config import get_settings
from product_downloads.shopify.client import ShopifyClient
from product_downloads.shopify.queries import WEBHOOK_SUBSCRIPTION_CREATE
from product_downloads.shopify.products import raise_for_user_errors

log = logging.getLogger(__name__)

APP_UNINSTALLED = "APP_UNINSTALLED"
WEBHOOK_PATH = "/webhooks"

WebhookHandler = Callable[[str, Dict[str, Any], SessionStore], Awaitable[None]]


def topic_enum(header_topic: str) -> str:
    """'app/uninstalled' -> 'APP_UNINSTALLED'."""
    return header_topic.strip().replace("/", "_").upper()


def compute_hmac_base64(secret: str, raw_body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_webhook_hmac(provided: str, raw_body: bytes, secret: str) -> bool:
    if not provided or not secret:
        return False
    return hmac.compare_digest(provided, compute_hmac_base64(secret, raw_body))


async def register_webhook(client: ShopifyClient, topic: str, path: str = WEBHOOK_PATH) -> Dict[str, Any]:
    """Subscribe the shop behind client to topic, delivered to https://<host><path>."""
    callback_url = f"https://{get_settings().host_name}{path}"
    res = await client.execute(
        WEBHOOK_SUBSCRIPTION_CREATE,
        {"topic": topic, "callbackUrl": callback_url},
        op_name="webhookSubscriptionCreate",
    )
    raise_for_user_errors(
        "webhookSubscriptionCreate", (res.get("data") or {}).get("webhookSubscriptionCreate")
    )
    log.info("Registered webhook topic=%s shop=%s", topic, client.shop)
    return res


async def _on_app_uninstalled(shop: str, payload: Dict[str, Any], store: SessionStore) -> None:
    await store.delete_session(shop)
    log.info("App uninstalled, session removed shop=%s", shop)


HANDLERS: Dict[str, WebhookHandler] = {
    APP_UNINSTALLED: _on_app_uninstalled,
}


async def process(topic: str, shop: str, payload: Dict[str, Any], store: SessionStore) -> bool:
    """Run the handler registered for topic. Returns False when none is registered."""
    handler = HANDLERS.get(topic_enum(topic))
    if handler is None:
        log.info("No webhook handler for topic=%s shop=%s", topic, shop)
        return False
    await handler(shop, payload, store)
    return True
