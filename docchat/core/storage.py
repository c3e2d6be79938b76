from __future__ import annotations

import asyncio
import logging
import uuid
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from docchat.config import settings

logger = logging.getLogger(__name__)

_PDF_PREFIX = "pdfs/"


class StorageError(RuntimeError):
    pass


def _s3_client():  # type: ignore[no-untyped-def]
    return boto3.client(
        "s3",
        endpoint_url=settings.s3_endpoint_url,
        region_name=settings.s3_region,
        aws_access_key_id=settings.s3_access_key_id or None,
        aws_secret_access_key=settings.s3_secret_access_key or None,
    )


def _put_object(key: str, body: bytes) -> None:
    """Synchronous S3 upload, run in a thread via asyncio.to_thread()."""
    _s3_client().put_object(
        Bucket=settings.s3_bucket_name,
        Key=key,
        Body=body,
        ContentType="application/pdf",
    )


def _get_object(key: str) -> bytes:
    response = _s3_client().get_object(Bucket=settings.s3_bucket_name, Key=key)
    return response["Body"].read()


async def upload_pdf(pdf_bytes: bytes) -> str:
    """Store a PDF under a fresh key and return the key."""
    key = f"{_PDF_PREFIX}{uuid.uuid4()}.pdf"
    try:
        await asyncio.to_thread(_put_object, key, pdf_bytes)
    except (BotoCoreError, ClientError) as exc:
        raise StorageError(f"S3 upload failed: {exc}") from exc
    logger.info("storage.upload", extra={"key": key, "bytes": len(pdf_bytes)})
    return key


async def get_pdf(key: str) -> bytes:
    try:
        return await asyncio.to_thread(_get_object, key)
    except (BotoCoreError, ClientError) as exc:
        raise StorageError(f"S3 download failed: {exc}") from exc


def _is_absolute(url: str) -> bool:
    return url.startswith("http://") or url.startswith("https://")


def object_key(storage_url: str) -> str:
    """Normalise a stored reference (key or public URL) to a bare object key."""
    public = settings.s3_public_url.rstrip("/")
    if storage_url.startswith(public):
        storage_url = storage_url[len(public):]
    return storage_url.lstrip("/")


def access_url(storage_url: str) -> str:
    """Publicly reachable URL for a stored PDF; absolute URLs pass through."""
    if _is_absolute(storage_url):
        return storage_url
    return f"{settings.s3_public_url.rstrip('/')}/{object_key(storage_url)}"


def proxy_url(storage_url: str) -> str:
    """URL of the PDF served through this API's proxy route."""
    if _is_absolute(storage_url) and not storage_url.startswith(settings.s3_public_url):
        return storage_url
    key = quote(object_key(storage_url), safe="")
    return f"{settings.api_base_url.rstrip('/')}/api/v1/proxy/pdf?key={key}"
