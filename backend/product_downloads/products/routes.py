"""Product routes: public file download, merchant upload, product lookups."""

import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import PlainTextResponse, StreamingResponse

from product_downloads.errors import NotFoundError, ValidationError
from product_downloads.limiter import limiter
from product_downloads.policy import ErrorPolicy, lookup_error_policy, upload_error_policy
from product_downloads.products.downloads import (
    attachment_filename,
    content_type_for,
    download_metafields,
    file_suffix,
    filename_fields,
    has_metafields,
    parse_downloads_field,
    slugify,
)
from product_downloads.shopify.client import ShopifyClient, get_shopify_client
from product_downloads.shopify.products import (
    MetafieldInput,
    get_product,
    get_product_by_sku,
    product_gid,
    product_id_from_hash,
    remove_metafield,
    update_product,
)
from product_downloads.storage.s3 import ObjectStore, download_key, get_object_store

router = APIRouter(prefix="/product", tags=["products"])
log = logging.getLogger(__name__)


@router.get("/download/{product_hash}")
@limiter.limit("120/minute")
async def download_file(
    request: Request,
    product_hash: str,
    client: Annotated[ShopifyClient, Depends(get_shopify_client)],
    store: Annotated[ObjectStore, Depends(get_object_store)],
) -> StreamingResponse:
    """
    Stream the file attached to a product. The hash is the hex-encoded product id.

    When a product carries several 'filename' metafields the first one returned
    by Shopify wins. Release-date gating is not implemented.
    """
    if not product_hash or not product_hash.strip():
        raise ValidationError("productId missing")
    try:
        product_id = product_id_from_hash(product_hash.strip())
    except ValueError as e:
        log.warning("download_file rejected hash=%r: %s", product_hash, e)
        raise ValidationError("invalid product hash")
    gid = product_gid(product_id)
    res = await get_product(client, gid)
    product = (res.get("data") or {}).get("product")
    if not product:
        raise NotFoundError(f"no product found for id {gid}")
    if not has_metafields(product):
        raise NotFoundError(f"no attached files found for product with id {gid}")
    fields = filename_fields(product)
    if not fields:
        raise NotFoundError(f"no attached files found for product with id {gid}")

    slug = str(fields[0].get("value"))
    suffix = file_suffix(slug)
    headers = {"Content-Disposition": f"attachment; filename={attachment_filename(slug)}"}
    body = await store.download(download_key(slug))
    log.info("download_file product=%s slug=%s", gid, slug)
    return StreamingResponse(body, headers=headers, media_type=content_type_for(suffix))


@router.post("/upload/{product_id}")
async def upload_file(
    product_id: str,
    client: Annotated[ShopifyClient, Depends(get_shopify_client)],
    store: Annotated[ObjectStore, Depends(get_object_store)],
    policy: Annotated[ErrorPolicy, Depends(upload_error_policy)],
    file: Optional[UploadFile] = File(None),
    downloads: Optional[str] = Form(None),
    uploaddate: Optional[str] = Form(None),
) -> PlainTextResponse:
    """
    Attach a file to a product.

    Form fields: file (optional), downloads (comma-separated metafield ids to
    delete first), uploaddate (accepted, not evaluated yet). Cleanup and storage
    failures do not stop the request under the default policy; the response is
    always "ok" and a storage failure is reported in X-Upload-Error.
    """
    if not product_id or not product_id.strip():
        raise ValidationError("productId missing")
    gid = product_gid(product_id)
    headers = {}

    for metafield_id in parse_downloads_field(downloads):
        try:
            await remove_metafield(client, metafield_id)
        except Exception as e:
            if policy is ErrorPolicy.PROPAGATE:
                raise
            log.warning("upload_file removeMetafield failed id=%s: %s", metafield_id, e)

    metafields: List[MetafieldInput] = []
    if file is not None and file.filename:
        slug = slugify(file.filename)
        metafields = download_metafields(slug, product_id)
        try:
            location = await store.upload(file.file, download_key(slug))
            log.info("upload_file product=%s slug=%s location=%s", gid, slug, location)
        except Exception as e:
            if policy is ErrorPolicy.PROPAGATE:
                raise
            log.warning("upload_file storage failed product=%s slug=%s: %s", gid, slug, e)
            headers["X-Upload-Error"] = " ".join(str(e).split())[:200]

    # TODO: evaluate uploaddate once release-date gating on downloads is defined
    await update_product(client, gid, metafields)
    return PlainTextResponse("ok", headers=headers)


@router.post("/find/{sku}")
@limiter.limit("60/minute")
async def find_by_sku(
    request: Request,
    sku: str,
    client: Annotated[ShopifyClient, Depends(get_shopify_client)],
    policy: Annotated[ErrorPolicy, Depends(lookup_error_policy)],
) -> dict:
    """Look up products by SKU. Backend failures yield {"empty": true} under the default policy."""
    if not sku or not sku.strip():
        raise ValidationError("sku missing")
    try:
        res = await get_product_by_sku(client, f"sku:{sku}")
    except Exception as e:
        if policy is ErrorPolicy.PROPAGATE:
            raise
        log.warning("find_by_sku failed sku=%s: %s", sku, e)
        return {"empty": True}
    return res.get("data") or {}


@router.post("/{product_id}")
@limiter.limit("60/minute")
async def get_by_id(
    request: Request,
    product_id: str,
    client: Annotated[ShopifyClient, Depends(get_shopify_client)],
    policy: Annotated[ErrorPolicy, Depends(lookup_error_policy)],
) -> dict:
    """Look up one product by raw id. Same error policy as find_by_sku."""
    if not product_id or not product_id.strip():
        raise ValidationError("productId missing")
    try:
        res = await get_product(client, product_gid(product_id))
    except Exception as e:
        if policy is ErrorPolicy.PROPAGATE:
            raise
        log.warning("get_by_id failed product_id=%s: %s", product_id, e)
        return {"empty": True}
    return res.get("data") or {}
