"""OAuth routes: start the install flow and handle Shopify's callback."""

import logging
from typing import Annotated, Optional
from urllib.parse import parse_qs, urlencode, urlsplit

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from product_downloads.auth.models import ShopSession
from product_downloads.auth.sessions import SessionStore, get_session_store
from product_downloads.config import get_settings
from product_downloads.errors import DownloadsError, ValidationError
from product_downloads.shopify.client import ShopifyClient
from product_downloads.shopify.oauth import (
    build_install_url,
    exchange_code,
    is_valid_shop,
    new_state,
    verify_callback_hmac,
)
from product_downloads.shopify.webhooks import APP_UNINSTALLED, register_webhook

router = APIRouter(prefix="/auth", tags=["auth"])
log = logging.getLogger(__name__)

STATE_COOKIE = "shopify_oauth_state"


def _auth_failed() -> Response:
    """Generic answer for a failed callback; details stay in the server log."""
    response = PlainTextResponse("Authentication failed", status_code=403)
    response.delete_cookie(STATE_COOKIE)
    return response


def build_return_url(shop: str, host: Optional[str], pending: Optional[str]) -> str:
    """Where the merchant lands after OAuth: the pending path (or '/') plus shop, host and id."""
    path = "/"
    params = {"shop": shop, "host": host or ""}
    if pending:
        parts = urlsplit(pending)
        path = parts.path or "/"
        ids = parse_qs(parts.query).get("id")
        if ids:
            params["id"] = ids[0]
    return f"{path}?{urlencode(params)}"


@router.get("")
async def begin_auth(request: Request) -> RedirectResponse:
    """Redirect the shop to Shopify's authorize screen."""
    shop = request.query_params.get("shop", "")
    if not is_valid_shop(shop):
        log.warning("begin_auth rejected shop=%r", shop)
        raise ValidationError("Invalid shop domain")
    state = new_state()
    response = RedirectResponse(build_install_url(shop, state), status_code=302)
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=600,
        httponly=True,
        secure=not get_settings().is_dev,
        samesite="lax",
    )
    log.info("begin_auth shop=%s", shop)
    return response


@router.get("/callback")
async def auth_callback(
    request: Request,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> Response:
    """
    Verify the callback, exchange the code for an access token, store the
    session and register the APP_UNINSTALLED webhook, then send the merchant
    back to the page they first asked for.
    """
    settings = get_settings()
    query = dict(request.query_params)
    shop = query.get("shop", "")
    if not is_valid_shop(shop):
        log.warning("auth_callback invalid shop=%r", shop)
        return _auth_failed()
    if not verify_callback_hmac(query, settings.shopify_api_secret):
        log.warning("auth_callback HMAC mismatch shop=%s", shop)
        return _auth_failed()
    state = request.cookies.get(STATE_COOKIE)
    if not state or state != query.get("state"):
        log.warning("auth_callback state mismatch shop=%s", shop)
        return _auth_failed()
    try:
        token = await exchange_code(shop, query.get("code", ""))
    except DownloadsError as e:
        log.warning("auth_callback token exchange failed shop=%s: %s", shop, e)
        return _auth_failed()

    session = ShopSession(
        shop=shop,
        scope=str(token.get("scope", "")),
        access_token=str(token.get("access_token", "")),
    )
    await store.save_session(session)
    log.info("auth_callback session stored shop=%s scope=%s", shop, session.scope)

    try:
        await register_webhook(ShopifyClient(shop, session.access_token), APP_UNINSTALLED)
    except DownloadsError as e:
        log.warning("Failed to register APP_UNINSTALLED webhook shop=%s: %s", shop, e)

    pending = await store.pop_redirect(shop)
    response = RedirectResponse(build_return_url(shop, query.get("host"), pending), status_code=302)
    response.delete_cookie(STATE_COOKIE)
    return response
