"""Shopify session token (App Bridge JWT) validation."""

from typing import Any, Optional
from urllib.parse import urlparse

from jose import JWTError, jwt

from product_downloads.config import get_settings

ALGORITHM = "HS256"


def decode_session_token(token: str) -> Optional[dict[str, Any]]:
    """Decode and validate a session token signed with the app secret; return payload or None."""
    settings = get_settings()
    if not settings.shopify_api_secret:
        return None
    try:
        return jwt.decode(
            token,
            settings.shopify_api_secret,
            algorithms=[ALGORITHM],
            audience=settings.shopify_api_key or None,
        )
    except JWTError:
        return None


def get_shop_from_token(token: str) -> Optional[str]:
    """Return the shop domain from the 'dest' claim if the token is valid and issued by that shop."""
    payload = decode_session_token(token)
    if not payload:
        return None
    shop = urlparse(str(payload.get("dest", ""))).hostname
    issuer = urlparse(str(payload.get("iss", ""))).hostname
    if not shop or issuer != shop:
        return None
    return shop
