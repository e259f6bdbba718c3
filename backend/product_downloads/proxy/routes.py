"""Authenticated passthrough of App Bridge GraphQL requests to the shop's Admin API."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from product_downloads.auth.dependencies import get_current_shop_session
from product_downloads.auth.models import ShopSession
from product_downloads.shopify.client import ShopifyClient

router = APIRouter(tags=["graphql"])
log = logging.getLogger(__name__)


@router.post("/graphql")
async def graphql_proxy(
    request: Request,
    session: Annotated[ShopSession, Depends(get_current_shop_session)],
) -> Response:
    """Forward the body unchanged with the shop's access token; relay Shopify's status and body."""
    body = await request.body()
    upstream = await ShopifyClient(session.shop, session.access_token).post_raw(body)
    log.info("graphql_proxy shop=%s status=%s", session.shop, upstream.status_code)
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type", "application/json"),
    )
