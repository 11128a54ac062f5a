"""User sync and profile endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db, get_identity_claims, get_optional_user
from models import User
from services.identity import sync_user
from services.profiles import ProfileDetails, build_profile, get_profile
from .post_views import UserResponse

router = APIRouter(prefix="/users", tags=["users"])


class UserSyncRequest(BaseModel):
    name: str | None = Field(default=None, max_length=255)


class ProfileResponse(UserResponse):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    posts_count: int = 0
    followers_count: int = 0
    following_count: int = 0
    is_following: bool = Field(default=False, alias="isFollowing")

    @classmethod
    def from_profile(cls, profile: ProfileDetails) -> "ProfileResponse":
        user = profile.user
        return cls(
            id=user.id,
            external_id=user.external_id,
            name=user.name,
            created_at=user.created_at,
            posts_count=profile.stats.posts_count,
            followers_count=profile.stats.followers_count,
            following_count=profile.stats.following_count,
            is_following=profile.is_following,
        )


@router.post("/sync", response_model=UserResponse)
async def sync_current_user(
    response: Response,
    payload: UserSyncRequest | None = Body(default=None),
    claims: dict[str, Any] = Depends(get_identity_claims),
    session: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Create or refresh the internal user row for the session subject."""
    name = payload.name if payload is not None else None
    if not name:
        claim_name = claims.get("name")
        name = claim_name if isinstance(claim_name, str) else None

    user, created = await sync_user(session, external_id=claims["sub"], name=name)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return UserResponse.from_user(user)


@router.get("/me", response_model=ProfileResponse)
async def read_current_user(
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ProfileResponse:
    profile = await build_profile(session, current_user)
    return ProfileResponse.from_profile(profile)


@router.get("/{user_ref}", response_model=ProfileResponse)
async def read_user_profile(
    user_ref: str,
    session: AsyncSession = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
) -> ProfileResponse:
    profile = await get_profile(session, user_ref, viewer=viewer)
    return ProfileResponse.from_profile(profile)
