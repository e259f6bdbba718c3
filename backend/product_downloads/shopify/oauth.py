"""Shopify OAuth: install URL, callback signature check, code exchange."""

import hashlib
import hmac
import logging
import re
import secrets
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

import httpx

from product_downloads.config import get_settings
from product_downloads.errors import TransportError

log = logging.getLogger(__name__)

_SHOP_DOMAIN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9\-]*\.myshopify\.com$")


def is_valid_shop(shop: Optional[str]) -> bool:
    """True for a bare '<name>.myshopify.com' domain."""
    return bool(shop) and bool(_SHOP_DOMAIN.match(shop))


def new_state() -> str:
    return secrets.token_urlsafe(24)


def build_install_url(shop: str, state: str) -> str:
    """Authorize URL for an offline access token."""
    settings = get_settings()
    params = {
        "client_id": settings.shopify_api_key,
        "scope": ",".join(settings.scopes_list),
        "redirect_uri": f"https://{settings.host_name}/auth/callback",
        "state": state,
    }
    return f"https://{shop}/admin/oauth/authorize?{urlencode(params)}"


def verify_callback_hmac(query: Mapping[str, str], secret: str) -> bool:
    """
    Shopify signs every callback query parameter except hmac itself,
    sorted by key and joined as k=v pairs with '&'.
    """
    provided = query.get("hmac")
    if not provided or not secret:
        return False
    message = "&".join(f"{k}={v}" for k, v in sorted(query.items()) if k != "hmac")
    digest = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()
    return hmac.compare_digest(digest, provided)


async def exchange_code(
    shop: str,
    code: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """
    POST /admin/oauth/access_token. Returns {access_token, scope}.
    Raises TransportError unless the answer is JSON carrying a non-empty access_token.
    """
    settings = get_settings()
    payload = {
        "client_id": settings.shopify_api_key,
        "client_secret": settings.shopify_api_secret,
        "code": code,
    }
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout, transport=transport) as client:
            r = await client.post(f"https://{shop}/admin/oauth/access_token", json=payload)
            r.raise_for_status()
    except httpx.HTTPError as e:
        log.warning("OAuth code exchange failed shop=%s err=%s", shop, e)
        raise TransportError(f"OAuth code exchange failed: {e}") from e
    try:
        token = r.json()
    except ValueError as e:
        log.warning("OAuth code exchange returned non-JSON shop=%s status=%s", shop, r.status_code)
        raise TransportError("OAuth code exchange returned a non-JSON body") from e
    if not isinstance(token, dict) or not token.get("access_token"):
        log.warning("OAuth code exchange returned no access_token shop=%s", shop)
        raise TransportError("OAuth code exchange returned no access_token")
    return token
