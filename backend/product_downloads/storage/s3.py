"""Thin S3 wrapper: list, upload and download objects by key."""

import logging
from typing import Any, BinaryIO, Dict, Iterator, List, Optional
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from product_downloads.config import get_settings
from product_downloads.errors import TransportError

log = logging.getLogger(__name__)

DOWNLOAD_PREFIX = "downloads/"
CHUNK_SIZE = 64 * 1024


def download_key(slug: str) -> str:
    """Object key of an attached file."""
    return DOWNLOAD_PREFIX + slug


class ObjectStore:
    """
    Blocking boto3 calls run in the threadpool. One attempt per call:
    botocore's own retries are switched off.
    """

    def __init__(self, bucket: Optional[str] = None, client: Any = None) -> None:
        settings = get_settings()
        self.bucket = bucket or settings.aws_bucket_name
        if client is None:
            session = boto3.session.Session()
            client = session.client(
                "s3",
                endpoint_url=settings.aws_endpoint_url or None,
                aws_access_key_id=settings.aws_access_key_id or None,
                aws_secret_access_key=settings.aws_secret_access_key or None,
                region_name=settings.aws_region,
                config=Config(signature_version="s3v4", retries={"max_attempts": 1}),
            )
        self.client = client

    async def list_buckets(self) -> List[Dict[str, Any]]:
        try:
            res = await run_in_threadpool(self.client.list_buckets)
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"S3 list_buckets failed: {e}") from e
        return res.get("Buckets", [])

    async def list_objects(self, bucket: Optional[str] = None) -> Dict[str, Any]:
        try:
            return await run_in_threadpool(self.client.list_objects, Bucket=bucket or self.bucket)
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"S3 list_objects failed: {e}") from e

    async def upload(self, stream: BinaryIO, key: str) -> str:
        """Upload a file-like object; returns the object's URL."""
        log.info("S3 upload bucket=%s key=%s", self.bucket, key)
        try:
            await run_in_threadpool(self.client.upload_fileobj, stream, self.bucket, key)
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"S3 upload failed for {key}: {e}") from e
        return f"{self.client.meta.endpoint_url}/{self.bucket}/{quote(key)}"

    async def download(self, key: str) -> Iterator[bytes]:
        """Return an iterator over the object's bytes."""
        log.info("S3 download bucket=%s key=%s", self.bucket, key)
        try:
            obj = await run_in_threadpool(self.client.get_object, Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"S3 download failed for {key}: {e}") from e
        return obj["Body"].iter_chunks(chunk_size=CHUNK_SIZE)


_store: Optional[ObjectStore] = None


def get_object_store() -> ObjectStore:
    """FastAPI dependency returning the process-wide object store."""
    global _store
    if _store is None:
        _store = ObjectStore()
    return _store
