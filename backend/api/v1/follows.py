"""Follow toggle and follow-status endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from models import User
from services import follows as follow_service

router = APIRouter(prefix="/follows", tags=["follows"])

FollowingIdQuery = Annotated[str, Query(alias="followingId", min_length=1)]


class FollowRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    following_id: str = Field(alias="followingId", min_length=1)


class FollowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    follower_id: str
    following_id: str
    created_at: datetime


class FollowMutationResponse(BaseModel):
    success: bool = True
    follow: FollowResponse | None = None


class FollowStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_following: bool = Field(alias="isFollowing")


@router.get("", response_model=FollowStatusResponse)
async def get_follow_status(
    following_id: FollowingIdQuery,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FollowStatusResponse:
    following = await follow_service.get_follow_status(
        session,
        follower=current_user,
        target_ref=following_id,
    )
    return FollowStatusResponse(is_following=following)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=FollowMutationResponse)
async def follow_user(
    payload: FollowRequest,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FollowMutationResponse:
    follow = await follow_service.follow_user(
        session,
        follower=current_user,
        target_ref=payload.following_id,
    )
    return FollowMutationResponse(follow=FollowResponse.model_validate(follow))


@router.delete("", response_model=FollowMutationResponse)
async def unfollow_user(
    following_id: FollowingIdQuery,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FollowMutationResponse:
    await follow_service.unfollow_user(
        session,
        follower=current_user,
        target_ref=following_id,
    )
    return FollowMutationResponse()
