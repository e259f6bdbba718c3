"""Pytest configuration: set test env before any app imports so settings use test values."""

import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

import pytest

_tmp = tempfile.mkdtemp(prefix="product_downloads_test_")
os.environ.setdefault("DOWNLOADS_DB_PATH", os.path.join(_tmp, "test.db"))
os.environ.setdefault("DOWNLOADS_SESSION_BACKEND", "memory")
os.environ.setdefault("DOWNLOADS_SHOP", "test-shop.myshopify.com")
os.environ.setdefault("DOWNLOADS_SHOPIFY_ADMIN_TOKEN", "shpat_test")
os.environ.setdefault("DOWNLOADS_SHOPIFY_API_KEY", "test-api-key")
os.environ.setdefault("DOWNLOADS_SHOPIFY_API_SECRET", "test-api-secret")
os.environ.setdefault("DOWNLOADS_HOST", "https://downloads.example.com")
os.environ.setdefault("DOWNLOADS_AWS_BUCKET_NAME", "test-bucket")
os.environ.setdefault("DOWNLOADS_AWS_ACCESS_KEY_ID", "test-key-id")
os.environ.setdefault("DOWNLOADS_AWS_SECRET_ACCESS_KEY", "test-secret-key")

@pytest.fixture
def session_store():
    """Fresh in-memory shop session store."""
    from product_downloads.auth.sessions import MemorySessionStore
    return MemorySessionStore()


@pytest.fixture
def shopify():
    """Stand-in for ShopifyClient; tests set execute.side_effect / return_value."""
    from product_downloads.shopify.client import ShopifyClient
    mock = MagicMock(spec=ShopifyClient)
    mock.shop = "test-shop.myshopify.com"
    mock.execute = AsyncMock(return_value={"data": {}})
    return mock


@pytest.fixture
def object_store():
    """Stand-in for ObjectStore."""
    from product_downloads.storage.s3 import ObjectStore
    mock = MagicMock(spec=ObjectStore)
    mock.bucket = "test-bucket"
    mock.upload = AsyncMock(return_value="https://s3.example.com/test-bucket/downloads/x")
    mock.download = AsyncMock(return_value=iter([b"file-bytes"]))
    return mock


@pytest.fixture
def client(session_store, shopify, object_store):
    """TestClient for the app with the session store, Shopify client and S3 replaced."""
    from fastapi.testclient import TestClient

    from product_downloads.auth.sessions import get_session_store
    from product_downloads.main import app
    from product_downloads.shopify.client import get_shopify_client
    from product_downloads.storage.s3 import get_object_store
    from product_downloads.ui.delegate import VariantPanel, get_ui_delegate

    app.dependency_overrides[get_session_store] = lambda: session_store
    app.dependency_overrides[get_shopify_client] = lambda: shopify
    app.dependency_overrides[get_object_store] = lambda: object_store
    app.dependency_overrides[get_ui_delegate] = lambda: VariantPanel(shopify)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
