"""Shared response models for posts, users and mutation results."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from models import User
from services.posts import PostDetails
from services.storage import public_url_for


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    external_id: str
    name: str
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls.model_validate(user)


class PostResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str
    image_key: str
    image_url: str
    caption: str | None = None
    created_at: datetime
    updated_at: datetime
    user: UserResponse
    likes_count: int = 0
    comments_count: int = 0
    is_liked: bool = Field(default=False, alias="isLiked")

    @classmethod
    def from_details(cls, details: PostDetails) -> "PostResponse":
        post = details.post
        return cls(
            id=post.id,
            user_id=post.user_id,
            image_key=post.image_key,
            image_url=public_url_for(post.image_key),
            caption=post.caption,
            created_at=post.created_at,
            updated_at=post.updated_at,
            user=UserResponse.from_user(details.author),
            likes_count=details.stats.likes_count,
            comments_count=details.stats.comments_count,
            is_liked=details.is_liked,
        )


PostResponse.model_rebuild()


class PostListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    posts: list[PostResponse]
    has_more: bool = Field(alias="hasMore")


class SuccessResponse(BaseModel):
    success: bool = True
