"""FastAPI dependencies for auth."""

import logging
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from product_downloads.auth.jwt import get_shop_from_token
from product_downloads.auth.models import ShopSession
from product_downloads.auth.sessions import SessionStore, get_session_store
from product_downloads.errors import Unauthorized

security = HTTPBearer(auto_error=False)
log = logging.getLogger(__name__)


async def get_current_shop_session(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> ShopSession:
    """Resolve the Bearer session token to an installed shop; raise Unauthorized otherwise."""
    if not credentials:
        log.debug("Request missing Bearer session token")
        raise Unauthorized("Not authenticated")
    shop = get_shop_from_token(credentials.credentials)
    if not shop:
        log.debug("Invalid or expired session token")
        raise Unauthorized("Invalid or expired session token")
    session = await store.get_session(shop)
    if not session:
        log.warning("Session token valid but shop not installed: shop=%s", shop)
        raise Unauthorized("Shop not authenticated")
    return session
