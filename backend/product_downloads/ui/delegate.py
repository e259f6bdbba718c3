"""Server-rendered admin panel handed every request the API routes do not claim."""

import html
import logging
from typing import Any, Dict, List, Optional, Protocol

from fastapi import Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response

from product_downloads.shopify.client import ShopifyClient, get_shopify_client
from product_downloads.shopify.products import get_product, product_gid, product_hash

log = logging.getLogger(__name__)


class UIDelegate(Protocol):
    async def handle(self, request: Request) -> Response: ...


def _variants(product: Dict[str, Any]) -> List[Dict[str, Any]]:
    edges = ((product.get("variants") or {}).get("edges")) or []
    return [e.get("node") or {} for e in edges]


def render_variant_list(product: Optional[Dict[str, Any]]) -> str:
    """Variant table for one product; empty string when there is no product."""
    if not product:
        return ""
    variants = _variants(product)
    rows = "".join(
        "<li>"
        f"<span class=\"title\">{html.escape(str(v.get('title', '')))}</span> "
        f"<span class=\"sku\">{html.escape(str(v.get('sku') or ''))}</span> "
        f"<span class=\"price\">{html.escape(str(v.get('price') or ''))}</span>"
        "</li>"
        for v in variants
    )
    total = product.get("totalVariants", len(variants))
    return (
        "<section class=\"variants\">"
        f"<h2>{len(variants)} variants of {html.escape(str(total))}</h2>"
        f"<ul>{rows}</ul>"
        "</section>"
    )


def render_page(shop: str, product: Optional[Dict[str, Any]], product_id: Optional[str]) -> str:
    title = html.escape(str((product or {}).get("title") or "Product downloads"))
    download = ""
    if product and product_id:
        href = html.escape(f"/product/download/{product_hash(product_id)}")
        download = f"<p class=\"download\">Public download link: <a href=\"{href}\">{href}</a></p>"
    return f"""<!doctype html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <title>{title}</title>
    <style>
        body {{ font-family: -apple-system, Segoe UI, Roboto, Helvetica, Arial, sans-serif; margin: 24px; }}
        .meta {{ color: #666; margin-bottom: 16px; }}
        .variants ul {{ list-style: none; padding: 0; }}
        .variants li {{ border-bottom: 1px solid #ddd; padding: 8px 0; }}
        .sku, .price {{ color: #666; margin-left: 8px; }}
    </style>
</head>
<body>
    <h1>{title}</h1>
    <div class="meta">{html.escape(shop)}</div>
    {download}
    {render_variant_list(product)}
</body>
</html>
"""


class VariantPanel:
    """Default delegate: shop page, with the product's variants when ?id= is given."""

    def __init__(self, client: Optional[ShopifyClient] = None) -> None:
        self._client = client

    async def handle(self, request: Request) -> Response:
        if request.url.path.startswith("/static/") or request.url.path == "/favicon.ico":
            return PlainTextResponse("", status_code=404)
        shop = request.query_params.get("shop", "")
        product_id = request.query_params.get("id")
        product = None
        if product_id:
            client = self._client or get_shopify_client()
            res = await get_product(client, product_gid(product_id))
            product = (res.get("data") or {}).get("product")
            if not product:
                log.info("VariantPanel no product for id=%s", product_id)
        return HTMLResponse(render_page(shop, product, product_id))


_delegate: Optional[UIDelegate] = None


def get_ui_delegate() -> UIDelegate:
    """FastAPI dependency returning the UI delegate."""
    global _delegate
    if _delegate is None:
        _delegate = VariantPanel()
    return _delegate
