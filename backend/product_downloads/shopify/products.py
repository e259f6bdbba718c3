"""Product and metafield operations built on ShopifyClient."""

import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from product_downloads.errors import OperationRejected
from product_downloads.shopify.client import ShopifyClient
from product_downloads.shopify.queries import (
    METAFIELD_DELETE,
    PRODUCT_BY_ID,
    PRODUCT_UPDATE_METAFIELDS,
    PRODUCTS_BY_SKU,
)

log = logging.getLogger(__name__)

PRODUCT_GID_PREFIX = "gid://shopify/Product/"
DOWNLOAD_NAMESPACE = "Download"

# Lowercase hex digit pairs, as product_hash emits them
_HEX = re.compile(r"(?:[0-9a-f]{2})*")


class MetafieldInput(BaseModel):
    """Metafield as sent in ProductInput.metafields."""

    namespace: str = DOWNLOAD_NAMESPACE
    key: str
    value: str
    type: str = "single_line_text_field"
    description: Optional[str] = None


def product_gid(product_id: str) -> str:
    """Platform global id for a raw numeric product id."""
    return PRODUCT_GID_PREFIX + product_id


def product_hash(product_id: str) -> str:
    """Hex of the raw product id, used in public download URLs."""
    return product_id.encode("utf-8").hex()


def product_id_from_hash(value: str) -> str:
    """Reverse of product_hash. Raises ValueError if value is not lowercase hex of UTF-8 text."""
    if not _HEX.fullmatch(value):
        raise ValueError(f"Invalid product hash: {value!r}")
    try:
        return bytes.fromhex(value).decode("utf-8")
    except ValueError as e:
        raise ValueError(f"Invalid product hash: {value!r}") from e


def raise_for_user_errors(op_name: str, payload: Optional[Dict[str, Any]]) -> None:
    user_errors = (payload or {}).get("userErrors") or []
    if user_errors:
        log.warning("%s userErrors=%s", op_name, user_errors)
        raise OperationRejected(op_name, user_errors)


async def get_product(client: ShopifyClient, gid: str) -> Dict[str, Any]:
    """Fetch one product with its Download metafields and variants."""
    return await client.execute(PRODUCT_BY_ID, {"id": gid}, op_name="getProduct")


async def get_product_by_sku(client: ShopifyClient, query: str) -> Dict[str, Any]:
    """Search products with a query string such as 'sku:ABC-1'."""
    return await client.execute(PRODUCTS_BY_SKU, {"query": query}, op_name="getProductBySku")


async def update_product(
    client: ShopifyClient, gid: str, metafields: List[MetafieldInput]
) -> Dict[str, Any]:
    """Create or replace metafields on a product."""
    res = await client.execute(
        PRODUCT_UPDATE_METAFIELDS,
        {
            "input": {
                "id": gid,
                "metafields": [m.model_dump(exclude_none=True) for m in metafields],
            }
        },
        op_name="productUpdate",
    )
    raise_for_user_errors("productUpdate", (res.get("data") or {}).get("productUpdate"))
    return res


async def remove_metafield(client: ShopifyClient, metafield_id: str) -> Dict[str, Any]:
    """Delete one metafield by id."""
    res = await client.execute(
        METAFIELD_DELETE, {"input": {"id": metafield_id}}, op_name="metafieldDelete"
    )
    raise_for_user_errors("metafieldDelete", (res.get("data") or {}).get("metafieldDelete"))
    return res
