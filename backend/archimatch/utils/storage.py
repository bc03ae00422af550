"""Image storage: S3-compatible bucket (Cloudflare R2, MinIO, AWS) or local disk.

Objects are stored flat under a generated name
``<epoch millis>-<random base36><ext>`` and exposed through a public base
URL (``STORAGE_PUBLIC_URL``). Without bucket credentials the bytes go to
``UPLOAD_DIR``, which the API serves under ``/uploads``.
"""

from __future__ import annotations

import mimetypes
import secrets
import string
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from archimatch.config import settings
from archimatch.errors import InvalidArgumentError, StorageError

logger = structlog.get_logger()

LOCAL_URL_PREFIX = "/uploads"
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class StoredImage:
    url: str
    filename: str
    size: int
    type: str


def storage_configured() -> bool:
    """True when bucket credentials are set; otherwise uploads go to local disk."""
    return bool(
        settings.storage_endpoint_url
        and settings.storage_access_key_id
        and settings.storage_secret_access_key
        and settings.storage_bucket_name
    )


def _build_client() -> Any:
    """Create an S3 client pointed at the configured endpoint."""
    return boto3.client(
        "s3",
        endpoint_url=settings.storage_endpoint_url,
        aws_access_key_id=settings.storage_access_key_id,
        aws_secret_access_key=settings.storage_secret_access_key,
        config=Config(signature_version="s3v4"),
        region_name="auto",
    )


_client: Any = None


def _get_client() -> Any:
    """Lazy-init singleton client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = _build_client()
    return _client


def reset_client() -> None:
    """Reset the singleton client (for testing)."""
    global _client  # noqa: PLW0603
    _client = None


def validate_image(mime_type: str | None, size: int) -> None:
    if not mime_type or not mime_type.startswith("image/"):
        raise InvalidArgumentError("The file must be an image")
    if size > settings.max_upload_bytes:
        mb = settings.max_upload_bytes // (1024 * 1024)
        raise InvalidArgumentError(f"The file is too large (max {mb} MB)")


def generate_filename(
    original_name: str | None, mime_type: str, *, now_ms: int | None = None
) -> str:
    """``<millis>-<6 base36 chars><ext>``; the extension comes from the original name."""
    ext = Path(original_name or "").suffix.lower()
    if not ext:
        ext = mimetypes.guess_extension(mime_type) or ""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"{stamp}-{suffix}{ext}"


def public_url(filename: str) -> str:
    base = settings.storage_public_url.rstrip("/")
    if base:
        return f"{base}/{filename}"
    if storage_configured():
        endpoint = settings.storage_endpoint_url.rstrip("/")
        return f"{endpoint}/{settings.storage_bucket_name}/{filename}"
    return f"{LOCAL_URL_PREFIX}/{filename}"


def upload_object(key: str, data: bytes, content_type: str) -> str:
    """Upload bytes to the bucket. Returns the storage key."""
    client = _get_client()
    try:
        client.put_object(
            Bucket=settings.storage_bucket_name,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
    except (ClientError, BotoCoreError) as e:
        logger.error("storage_upload_failed", key=key, error=str(e))
        raise StorageError("Image upload failed") from e
    logger.info("storage_upload", key=key, size=len(data), content_type=content_type)
    return key


def write_local(filename: str, data: bytes) -> Path:
    target = Path(settings.upload_dir) / filename
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except OSError as e:
        logger.error("local_upload_failed", path=str(target), error=str(e))
        raise StorageError("Image upload failed") from e
    logger.info("local_upload", path=str(target), size=len(data))
    return target


def upload_image(data: bytes, mime_type: str | None, original_name: str | None) -> StoredImage:
    """Validate, store and return the public location of an image.

    Validation runs before anything is written. Blocking; call it from a
    worker thread inside request handlers.
    """
    validate_image(mime_type, len(data))
    assert mime_type is not None  # guaranteed by validate_image
    filename = generate_filename(original_name, mime_type)
    if storage_configured():
        upload_object(filename, data, mime_type)
    else:
        write_local(filename, data)
    return StoredImage(url=public_url(filename), filename=filename, size=len(data), type=mime_type)


def check_bucket() -> None:
    """Raise if the bucket is unreachable (health probe)."""
    _get_client().head_bucket(Bucket=settings.storage_bucket_name)
