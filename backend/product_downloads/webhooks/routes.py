"""Shopify webhook endpoint."""

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import PlainTextResponse, Response

from product_downloads.auth.sessions import SessionStore, get_session_store
from product_downloads.config import get_settings
from product_downloads.shopify import webhooks
from product_downloads.shopify.webhooks import WEBHOOK_PATH

router = APIRouter(tags=["webhooks"])
log = logging.getLogger(__name__)


@router.post(WEBHOOK_PATH)
async def receive_webhook(
    request: Request,
    store: Annotated[SessionStore, Depends(get_session_store)],
    x_shopify_hmac_sha256: str = Header(default=""),
    x_shopify_topic: str = Header(default=""),
    x_shopify_shop_domain: str = Header(default=""),
) -> Response:
    """
    Verify the signature, then dispatch on the topic header. A bad signature is
    rejected with 401; handler failures are only logged so the delivery still
    gets its 200.
    """
    raw = await request.body()
    if not webhooks.verify_webhook_hmac(x_shopify_hmac_sha256, raw, get_settings().shopify_api_secret):
        log.warning("Webhook rejected: invalid HMAC topic=%s shop=%s", x_shopify_topic, x_shopify_shop_domain)
        return PlainTextResponse("Invalid HMAC", status_code=401)
    try:
        payload = json.loads(raw.decode("utf-8")) if raw else {}
        await webhooks.process(x_shopify_topic, x_shopify_shop_domain, payload, store)
        log.info("Webhook processed topic=%s shop=%s", x_shopify_topic, x_shopify_shop_domain)
    except Exception as e:
        log.exception("Failed to process webhook topic=%s: %s", x_shopify_topic, e)
    return PlainTextResponse("", status_code=200)
