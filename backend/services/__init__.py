"""Business logic services."""

from .images import (
    JPEG_CONTENT_TYPE,
    MAX_IMAGE_DIMENSION,
    UploadTooLargeError,
    process_image_bytes,
    read_upload_file,
)
from .storage import (
    create_presigned_put_url,
    delete_object,
    ensure_bucket,
    get_minio_client,
    public_url_for,
    run_storage_call,
    upload_object,
)

__all__ = [
    "get_minio_client",
    "ensure_bucket",
    "upload_object",
    "delete_object",
    "create_presigned_put_url",
    "public_url_for",
    "run_storage_call",
    "process_image_bytes",
    "read_upload_file",
    "MAX_IMAGE_DIMENSION",
    "JPEG_CONTENT_TYPE",
    "UploadTooLargeError",
]
