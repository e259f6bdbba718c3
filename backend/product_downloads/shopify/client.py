"""Async client for the Shopify Admin GraphQL API."""

import logging
import time
from typing import Any, Dict, Optional

import httpx

from product_downloads.config import get_settings
from product_downloads.errors import OperationRejected, TransportError

log = logging.getLogger(__name__)


class ShopifyClient:
    """
    One shop, one access token. Every call is a single POST to graphql.json;
    nothing is retried.
    """

    def __init__(
        self,
        shop: str,
        access_token: str,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.shop = shop
        self._access_token = access_token
        self._api_version = api_version or settings.shopify_api_version
        self._timeout = timeout or settings.http_timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"https://{self.shop}/admin/api/{self._api_version}/graphql.json"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Shopify-Access-Token": self._access_token,
        }

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def post_raw(self, body: bytes) -> httpx.Response:
        """POST an already-encoded GraphQL body unchanged; used by the /graphql proxy."""
        try:
            async with self._http() as client:
                return await client.post(self.endpoint, content=body, headers=self._headers())
        except httpx.HTTPError as e:
            log.warning("shopify proxy request failed shop=%s err=%s", self.shop, type(e).__name__)
            raise TransportError(f"Shopify request failed: {e}") from e

    async def execute(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
        op_name: str = "",
    ) -> Dict[str, Any]:
        """
        Run one query or mutation and return the full response ({"data": ...}).
        Raises TransportError for network / HTTP failures and OperationRejected
        for top-level GraphQL errors.
        """
        payload = {"query": query, "variables": variables or {}}
        start = time.perf_counter()
        try:
            async with self._http() as client:
                r = await client.post(self.endpoint, json=payload, headers=self._headers())
                r.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.warning(
                "shopify.graphql http_error op=%s shop=%s status=%s",
                op_name, self.shop, e.response.status_code,
            )
            raise TransportError(f"Shopify returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            log.warning("shopify.graphql request_failed op=%s shop=%s err=%s", op_name, self.shop, e)
            raise TransportError(f"Shopify request failed: {e}") from e
        latency_ms = int((time.perf_counter() - start) * 1000)
        try:
            data = r.json()
        except ValueError as e:
            raise TransportError(f"Shopify response is not JSON: status={r.status_code}") from e
        if data.get("errors"):
            log.error("shopify.graphql errors op=%s errors=%s", op_name, data["errors"])
            raise OperationRejected(op_name, data["errors"])
        log.info(
            "shopify.graphql ok op=%s latency_ms=%d vars=%s",
            op_name, latency_ms, list(payload["variables"].keys()),
        )
        return data


def get_shopify_client() -> ShopifyClient:
    """FastAPI dependency: admin client for the configured store."""
    settings = get_settings()
    return ShopifyClient(settings.shop, settings.shopify_admin_token)
