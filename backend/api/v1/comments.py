"""Comment endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db, get_optional_user
from models import User
from services import comments as comment_service
from services.comments import CommentDetails
from .post_views import SuccessResponse, UserResponse

router = APIRouter(prefix="/comments", tags=["comments"])


class CommentResponse(BaseModel):
    id: str
    post_id: str
    user_id: str
    content: str
    created_at: datetime
    updated_at: datetime
    user: UserResponse

    @classmethod
    def from_details(cls, details: CommentDetails) -> "CommentResponse":
        comment = details.comment
        return cls(
            id=comment.id,
            post_id=comment.post_id,
            user_id=comment.user_id,
            content=comment.content,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            user=UserResponse.from_user(details.author),
        )


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]


class CommentCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    post_id: str = Field(alias="postId", min_length=1)
    content: str


@router.get("", response_model=CommentListResponse)
async def list_comments(
    post_id: Annotated[str, Query(alias="postId", min_length=1)],
    limit: Annotated[int | None, Query()] = None,
    session: AsyncSession = Depends(get_db),
    _viewer: User | None = Depends(get_optional_user),
) -> CommentListResponse:
    items = await comment_service.list_comments(session, post_id, limit=limit)
    return CommentListResponse(
        comments=[CommentResponse.from_details(details) for details in items]
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=CommentResponse)
async def add_comment(
    payload: CommentCreateRequest,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CommentResponse:
    details = await comment_service.add_comment(
        session,
        post_id=payload.post_id,
        author=current_user,
        content=payload.content,
    )
    return CommentResponse.from_details(details)


@router.delete("/{comment_id}", response_model=SuccessResponse)
async def delete_comment(
    comment_id: str,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    await comment_service.delete_comment(session, comment_id, caller_id=current_user.id)
    return SuccessResponse()
