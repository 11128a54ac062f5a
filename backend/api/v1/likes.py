"""Like toggle endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from models import User
from services import likes as like_service
from services.engagement import get_like_count

router = APIRouter(prefix="/likes", tags=["likes"])


class LikeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    post_id: str = Field(alias="postId", min_length=1)


class LikeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    post_id: str
    user_id: str
    created_at: datetime


class LikeMutationResponse(BaseModel):
    success: bool = True
    like: LikeResponse | None = None
    likes_count: int


@router.post("", status_code=status.HTTP_201_CREATED, response_model=LikeMutationResponse)
async def like_post(
    payload: LikeRequest,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> LikeMutationResponse:
    like = await like_service.like_post(
        session,
        user_id=current_user.id,
        post_id=payload.post_id,
    )
    likes_count = await get_like_count(session, payload.post_id)
    return LikeMutationResponse(
        like=LikeResponse.model_validate(like),
        likes_count=likes_count,
    )


@router.delete("", response_model=LikeMutationResponse)
async def unlike_post(
    post_id: Annotated[str, Query(alias="postId", min_length=1)],
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> LikeMutationResponse:
    await like_service.unlike_post(session, user_id=current_user.id, post_id=post_id)
    likes_count = await get_like_count(session, post_id)
    return LikeMutationResponse(likes_count=likes_count)
