"""Helpers for attaching a file to a product and serving it back."""

import re
import unicodedata
from typing import Any, Dict, List, Optional

from product_downloads.shopify.products import MetafieldInput, product_hash

FILENAME_KEY = "filename"
IDHASH_KEY = "idhash"
METAFIELD_DESCRIPTION = "filename of the associated download attachment"

IMAGE_SUFFIXES = ("gif", "jpg", "jpeg", "png")

# Spelled out before accents are stripped.
_TRANSLITERATE = {"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss", "&": " and "}
_NON_WORD = re.compile(r"[^a-z0-9]+")


def slugify(filename: str) -> str:
    """
    URL-safe slug of a filename: lower case, words joined by '-'.
    The extension dot becomes a separator too: 'Report 2024.pdf' -> 'report-2024-pdf'.
    """
    value = (filename or "").strip().lower()
    for src, dst in _TRANSLITERATE.items():
        value = value.replace(src, dst)
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return _NON_WORD.sub("-", value).strip("-") or "file"


def file_suffix(slug: str) -> str:
    """Extension encoded as the text after the last '-'."""
    return slug.split("-")[-1].lower()


def attachment_filename(slug: str) -> str:
    """Rebuild 'name.ext' from 'name-ext'."""
    head, sep, tail = slug.rpartition("-")
    if not sep:
        return slug
    return f"{head}.{tail}"


def content_type_for(suffix: str) -> Optional[str]:
    """Content-Type for supported suffixes; None leaves the header unset."""
    if suffix in IMAGE_SUFFIXES:
        return f"image/{suffix}"
    if suffix == "pdf":
        return "application/pdf"
    return None


def filename_fields(product: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Metafield nodes with key 'filename', in the order Shopify returned them."""
    edges = ((product.get("metafields") or {}).get("edges")) or []
    return [e["node"] for e in edges if (e.get("node") or {}).get("key") == FILENAME_KEY]


def has_metafields(product: Dict[str, Any]) -> bool:
    return bool(((product.get("metafields") or {}).get("edges")))


def download_metafields(slug: str, product_id: str) -> List[MetafieldInput]:
    """The two Download metafields written after an upload."""
    return [
        MetafieldInput(key=FILENAME_KEY, value=slug, description=METAFIELD_DESCRIPTION),
        MetafieldInput(key=IDHASH_KEY, value=product_hash(product_id), description=METAFIELD_DESCRIPTION),
    ]


def parse_downloads_field(value: Optional[str]) -> List[str]:
    """Comma-separated metafield ids from the upload form; blanks dropped."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
