"""Presigned upload endpoints for post images."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from api.deps import get_current_user
from core import settings
from models import User
from services import create_presigned_put_url, public_url_for, run_storage_call
from services.storage import new_post_image_key

router = APIRouter(prefix="/media", tags=["media"])
logger = logging.getLogger(__name__)


class PresignedUploadResponse(BaseModel):
    upload_url: str
    object_key: str
    image_url: str
    expires_in: int


@router.post(
    "/uploads",
    status_code=status.HTTP_201_CREATED,
    response_model=PresignedUploadResponse,
)
async def create_upload_url(
    current_user: User = Depends(get_current_user),
) -> PresignedUploadResponse:
    """Reserve an object key under the caller's prefix and sign a PUT for it.

    The returned ``object_key`` is what the client sends back as ``imageRef``
    when creating the post.
    """
    object_key = new_post_image_key(current_user.id)
    ttl = settings.presigned_upload_ttl_seconds
    upload_url = await run_storage_call(
        create_presigned_put_url,
        object_key,
        expires_seconds=ttl,
    )
    logger.info(
        "Issued presigned upload",
        extra={"user_id": current_user.id, "image_key": object_key},
    )
    return PresignedUploadResponse(
        upload_url=upload_url,
        object_key=object_key,
        image_url=public_url_for(object_key),
        expires_in=ttl,
    )
