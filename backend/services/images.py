"""Upload reading and image normalisation."""

from __future__ import annotations

from io import BytesIO

from fastapi import UploadFile
from PIL import Image, ImageOps, UnidentifiedImageError

MAX_IMAGE_DIMENSION = 1080
JPEG_CONTENT_TYPE = "image/jpeg"
JPEG_QUALITY = 85
READ_CHUNK_SIZE = 64 * 1024


class UploadTooLargeError(ValueError):
    """Raised when an upload exceeds the configured byte budget."""


async def read_upload_file(upload: UploadFile, max_bytes: int) -> bytes:
    """Read an upload fully, failing as soon as it grows past ``max_bytes``."""
    buffer = bytearray()
    while True:
        chunk = await upload.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > max_bytes:
            raise UploadTooLargeError(f"Image must be at most {max_bytes} bytes")
    if not buffer:
        raise ValueError("Uploaded image is empty")
    return bytes(buffer)


def process_image_bytes(data: bytes) -> tuple[bytes, str]:
    """Re-encode arbitrary image bytes as an orientation-fixed, bounded JPEG."""
    try:
        with Image.open(BytesIO(data)) as source:
            source.load()
            image = ImageOps.exif_transpose(source) or source
            if image.mode != "RGB":
                image = image.convert("RGB")
            image.thumbnail((MAX_IMAGE_DIMENSION, MAX_IMAGE_DIMENSION))
            output = BytesIO()
            image.save(output, format="JPEG", quality=JPEG_QUALITY, optimize=True)
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError("Unsupported or corrupted image") from exc
    return output.getvalue(), JPEG_CONTENT_TYPE
