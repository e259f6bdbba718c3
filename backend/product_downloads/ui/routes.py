"""Catch-all GET route: auth gate in front of the UI delegate."""

import logging
from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse, Response

from product_downloads.auth.sessions import SessionStore, get_session_store
from product_downloads.shopify.oauth import is_valid_shop
from product_downloads.ui.delegate import UIDelegate, get_ui_delegate

router = APIRouter(tags=["ui"])
log = logging.getLogger(__name__)

# Served without a shop session
EXEMPT_PREFIXES = ("/static/", "/favicon.ico")


def requested_url(request: Request) -> str:
    """Path plus query string, as the client asked for it."""
    url = request.url.path
    if request.url.query:
        url += "?" + request.url.query
    return url


@router.get("/{full_path:path}", include_in_schema=False)
async def catch_all(
    request: Request,
    full_path: str,
    store: Annotated[SessionStore, Depends(get_session_store)],
    delegate: Annotated[UIDelegate, Depends(get_ui_delegate)],
) -> Response:
    """
    Shops without a session are sent through OAuth; the URL they asked for is
    kept as their pending redirect. Everything else goes to the UI delegate.
    """
    if request.url.path.startswith(EXEMPT_PREFIXES):
        return await delegate.handle(request)
    shop = request.query_params.get("shop", "")
    if await store.get_session(shop) is None:
        # Only shops /auth accepts get a pending redirect
        if is_valid_shop(shop):
            await store.set_redirect(shop, requested_url(request))
        log.info("Unauthenticated shop=%r path=%s, redirecting to OAuth", shop, request.url.path)
        return RedirectResponse(f"/auth?{urlencode({'shop': shop})}", status_code=302)
    return await delegate.handle(request)
