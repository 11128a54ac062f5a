"""MinIO object-storage utilities for post images."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import timedelta
from functools import lru_cache
from io import BytesIO
from typing import Any, TypeVar
from uuid import uuid4

from minio import Minio
from minio.error import S3Error

from core import settings

from .errors import UpstreamTimeout

T = TypeVar("T")

POST_IMAGE_PREFIX = "posts"


@lru_cache
def get_minio_client() -> Minio:
    """Return a cached MinIO client configured from settings."""
    return Minio(
        settings.minio_endpoint,
        access_key=settings.minio_access_key,
        secret_key=settings.minio_secret_key,
        secure=settings.minio_secure,
    )


def ensure_bucket(client: Minio | None = None) -> None:
    """Ensure the configured bucket exists."""
    client = client or get_minio_client()
    bucket_name = settings.minio_bucket

    if client.bucket_exists(bucket_name):  # pragma: no cover - network call
        return

    try:
        client.make_bucket(bucket_name)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - handle race conditions
        allowed_codes = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}
        if exc.code not in allowed_codes:
            raise


def post_image_prefix(owner_id: str) -> str:
    return f"{POST_IMAGE_PREFIX}/{owner_id}/"


def new_post_image_key(owner_id: str) -> str:
    return f"{post_image_prefix(owner_id)}{uuid4().hex}.jpg"


def public_url_for(object_key: str) -> str:
    """Build the public URL clients use to render an object."""
    return f"{settings.media_public_base_url.rstrip('/')}/{object_key.lstrip('/')}"


def upload_object(
    object_key: str,
    data: bytes,
    content_type: str,
    client: Minio | None = None,
) -> None:
    client = client or get_minio_client()
    ensure_bucket(client)
    client.put_object(
        settings.minio_bucket,
        object_key,
        data=BytesIO(data),
        length=len(data),
        content_type=content_type,
    )


def delete_object(object_key: str, client: Minio | None = None) -> None:
    """Delete an object from the configured bucket when it exists."""
    client = client or get_minio_client()
    try:
        client.remove_object(settings.minio_bucket, object_key)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - network call
        allowed_codes = {"NoSuchKey", "NoSuchObject", "ResourceNotFound"}
        if exc.code not in allowed_codes:
            raise


def create_presigned_put_url(
    object_key: str,
    *,
    expires_seconds: int | None = None,
    client: Minio | None = None,
) -> str:
    """Return a short-lived pre-signed URL the client can PUT an image to."""
    normalized_object_key = object_key.strip()
    if not normalized_object_key:
        raise ValueError("object_key must not be empty")
    ttl = expires_seconds if expires_seconds is not None else settings.presigned_upload_ttl_seconds
    if ttl <= 0:
        raise ValueError("expires_seconds must be positive")

    client = client or get_minio_client()
    return client.presigned_put_object(
        settings.minio_bucket,
        normalized_object_key,
        expires=timedelta(seconds=ttl),
    )


async def run_storage_call(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking MinIO call off the event loop under the store timeout."""
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args, **kwargs),
            timeout=settings.store_timeout_seconds,
        )
    except TimeoutError as exc:
        raise UpstreamTimeout("Object storage request timed out") from exc
