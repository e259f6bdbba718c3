"""Tests for OAuth helpers: shop validation, install URL, callback HMAC, code exchange."""

import hashlib
import hmac
import json
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from product_downloads.errors import TransportError
from product_downloads.shopify.oauth import (
    build_install_url,
    exchange_code,
    is_valid_shop,
    new_state,
    verify_callback_hmac,
)

SECRET = "hush"


def _sign(query: dict) -> str:
    message = "&".join(f"{k}={v}" for k, v in sorted(query.items()) if k != "hmac")
    return hmac.new(SECRET.encode(), message.encode(), hashlib.sha256).hexdigest()


@pytest.mark.parametrize(
    "shop,valid",
    [
        ("merchant.myshopify.com", True),
        ("my-shop-2.myshopify.com", True),
        ("", False),
        (None, False),
        ("merchant.example.com", False),
        ("-bad.myshopify.com", False),
        ("https://merchant.myshopify.com", False),
        ("merchant.myshopify.com/admin", False),
    ],
)
def test_is_valid_shop(shop, valid) -> None:
    assert is_valid_shop(shop) is valid


def test_new_state_is_random() -> None:
    assert new_state() != new_state()
    assert len(new_state()) >= 32


def test_build_install_url() -> None:
    url = urlsplit(build_install_url("merchant.myshopify.com", "abc"))
    assert url.scheme == "https"
    assert url.netloc == "merchant.myshopify.com"
    query = parse_qs(url.query)
    assert query["state"] == ["abc"]
    assert query["redirect_uri"] == ["https://downloads.example.com/auth/callback"]


def test_verify_callback_hmac_accepts_signed_query() -> None:
    query = {"code": "c", "shop": "merchant.myshopify.com", "state": "s", "timestamp": "1"}
    query["hmac"] = _sign(query)
    assert verify_callback_hmac(query, SECRET) is True


def test_verify_callback_hmac_rejects_tampering() -> None:
    query = {"code": "c", "shop": "merchant.myshopify.com", "state": "s", "timestamp": "1"}
    query["hmac"] = _sign(query)
    query["shop"] = "other.myshopify.com"
    assert verify_callback_hmac(query, SECRET) is False


def test_verify_callback_hmac_requires_hmac_and_secret() -> None:
    query = {"code": "c", "shop": "merchant.myshopify.com"}
    assert verify_callback_hmac(query, SECRET) is False
    query["hmac"] = _sign(query)
    assert verify_callback_hmac(query, "") is False


@pytest.mark.asyncio
async def test_exchange_code_posts_credentials() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"access_token": "shpua_x", "scope": "read_products"})

    token = await exchange_code("merchant.myshopify.com", "the-code", transport=httpx.MockTransport(handler))
    assert token == {"access_token": "shpua_x", "scope": "read_products"}
    assert str(seen[0].url) == "https://merchant.myshopify.com/admin/oauth/access_token"
    assert json.loads(seen[0].content) == {
        "client_id": "test-api-key",
        "client_secret": "test-api-secret",
        "code": "the-code",
    }


@pytest.mark.asyncio
async def test_exchange_code_http_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(400, text="invalid code"))
    with pytest.raises(TransportError):
        await exchange_code("merchant.myshopify.com", "bad", transport=transport)


@pytest.mark.asyncio
async def test_exchange_code_non_json_body() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(TransportError, match="non-JSON"):
        await exchange_code("merchant.myshopify.com", "c", transport=transport)


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"scope": "read_products"}, {"access_token": ""}, ["shpua_x"]])
async def test_exchange_code_without_access_token(body) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
    with pytest.raises(TransportError, match="no access_token"):
        await exchange_code("merchant.myshopify.com", "c", transport=transport)
