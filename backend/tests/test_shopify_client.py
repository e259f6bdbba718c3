"""Tests for ShopifyClient against httpx.MockTransport."""

import json

import httpx
import pytest

from product_downloads.errors import OperationRejected, TransportError
from product_downloads.shopify.client import ShopifyClient, get_shopify_client
from product_downloads.shopify.products import get_product, remove_metafield

SHOP = "merchant.myshopify.com"


def _client(handler) -> ShopifyClient:
    return ShopifyClient(SHOP, "shpat_abc", api_version="2024-01", transport=httpx.MockTransport(handler))


def test_endpoint() -> None:
    assert _client(lambda r: httpx.Response(200)).endpoint == (
        "https://merchant.myshopify.com/admin/api/2024-01/graphql.json"
    )


def test_dependency_uses_configured_shop() -> None:
    client = get_shopify_client()
    assert client.shop == "test-shop.myshopify.com"
    assert client._headers()["X-Shopify-Access-Token"] == "shpat_test"


@pytest.mark.asyncio
async def test_execute_posts_query_with_token() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": {"product": {"id": "gid://shopify/Product/1"}}})

    res = await get_product(_client(handler), "gid://shopify/Product/1")
    assert res == {"data": {"product": {"id": "gid://shopify/Product/1"}}}
    request = seen[0]
    assert request.method == "POST"
    assert request.headers["X-Shopify-Access-Token"] == "shpat_abc"
    body = json.loads(request.content)
    assert body["variables"] == {"id": "gid://shopify/Product/1"}
    assert "product(id: $id)" in body["query"]


@pytest.mark.asyncio
async def test_user_errors_become_operation_rejected() -> None:
    payload = {"data": {"metafieldDelete": {"deletedId": None, "userErrors": [{"message": "no such id"}]}}}
    client = _client(lambda r: httpx.Response(200, json=payload))
    with pytest.raises(OperationRejected) as exc_info:
        await remove_metafield(client, "gid://shopify/Metafield/9")
    assert exc_info.value.op_name == "metafieldDelete"
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_top_level_errors_become_operation_rejected() -> None:
    payload = {"errors": [{"message": "Field 'nope' doesn't exist on type 'Product'"}]}
    client = _client(lambda r: httpx.Response(200, json=payload))
    with pytest.raises(OperationRejected) as exc_info:
        await client.execute("{ nope }", op_name="broken")
    assert exc_info.value.errors == payload["errors"]


@pytest.mark.asyncio
async def test_http_error_status_is_transport_error() -> None:
    client = _client(lambda r: httpx.Response(500, text="oops"))
    with pytest.raises(TransportError, match="HTTP 500"):
        await client.execute("{ shop { name } }")


@pytest.mark.asyncio
async def test_connection_error_is_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError):
        await _client(handler).execute("{ shop { name } }")


@pytest.mark.asyncio
async def test_non_json_body_is_transport_error() -> None:
    client = _client(lambda r: httpx.Response(200, text="<html>maintenance</html>"))
    with pytest.raises(TransportError, match="not JSON"):
        await client.execute("{ shop { name } }")


@pytest.mark.asyncio
async def test_post_raw_does_not_raise_on_status() -> None:
    """The proxy relays non-2xx responses as they are."""
    client = _client(lambda r: httpx.Response(401, json={"errors": "Invalid API key"}))
    r = await client.post_raw(b"{}")
    assert r.status_code == 401
