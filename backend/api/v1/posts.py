"""Post creation, retrieval, feed and deletion endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from api.deps import get_current_user, get_db, get_optional_user
from models import User
from services import posts as post_service
from services.errors import ValidationFailed
from services.identity import require_user_by_ref
from .pagination import set_next_offset_header
from .post_views import PostListResponse, PostResponse, SuccessResponse

router = APIRouter(prefix="/posts", tags=["posts"])


class PostReferenceCreate(BaseModel):
    """JSON completion of a presigned upload."""

    model_config = ConfigDict(populate_by_name=True)

    image_ref: str = Field(alias="imageRef", min_length=1)
    caption: str | None = None


@dataclass(frozen=True)
class PostUploadCreate:
    """Multipart body carrying the image bytes directly."""

    image: UploadFile
    caption: str | None = None


PostCreateInput = PostReferenceCreate | PostUploadCreate


def _form_text(value: object) -> str | None:
    if value is None or isinstance(value, UploadFile):
        return None
    return str(value)


async def parse_post_create_input(request: Request) -> PostCreateInput:
    """Validate the create-post body into one of its two explicit shapes."""
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError as exc:
            raise ValidationFailed("Request body must be valid JSON") from exc
        try:
            return PostReferenceCreate.model_validate(body)
        except ValidationError as exc:
            raise RequestValidationError(exc.errors()) from exc

    if not (
        content_type.startswith("multipart/form-data")
        or content_type.startswith("application/x-www-form-urlencoded")
    ):
        raise ValidationFailed("Expected multipart/form-data or application/json body")

    form = await request.form()
    caption = _form_text(form.get("caption"))
    image = form.get("image")
    if isinstance(image, UploadFile):
        return PostUploadCreate(image=image, caption=caption)

    image_ref = _form_text(form.get("imageRef"))
    if image_ref:
        return PostReferenceCreate(image_ref=image_ref, caption=caption)
    raise ValidationFailed("An image file or imageRef is required")


@router.get("", response_model=PostListResponse)
async def list_posts(
    response: Response,
    limit: Annotated[int | None, Query()] = None,
    offset: Annotated[int | None, Query()] = None,
    user_id: Annotated[str | None, Query(alias="userId", min_length=1)] = None,
    session: AsyncSession = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> PostListResponse:
    author_id = None
    if user_id is not None:
        author = await require_user_by_ref(session, user_id)
        author_id = author.id

    page = await post_service.list_posts(
        session,
        limit=limit,
        offset=offset,
        viewer_id=current_user.id if current_user is not None else None,
        author_id=author_id,
    )
    set_next_offset_header(
        response,
        offset=page.offset,
        returned=len(page.items),
        has_more=page.has_more,
    )
    return PostListResponse(
        posts=[PostResponse.from_details(details) for details in page.items],
        has_more=page.has_more,
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PostResponse)
async def create_post(
    # Resolved before the body so anonymous callers get 401 whatever they send.
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    payload: PostCreateInput = Depends(parse_post_create_input),
) -> PostResponse:
    if isinstance(payload, PostUploadCreate):
        details = await post_service.create_post_from_upload(
            session,
            owner=current_user,
            image=payload.image,
            caption=payload.caption,
        )
    else:
        details = await post_service.create_post_from_reference(
            session,
            owner=current_user,
            image_ref=payload.image_ref,
            caption=payload.caption,
        )
    return PostResponse.from_details(details)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    session: AsyncSession = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> PostResponse:
    details = await post_service.get_post(
        session,
        post_id,
        viewer_id=current_user.id if current_user is not None else None,
    )
    return PostResponse.from_details(details)


@router.delete("/{post_id}", response_model=SuccessResponse)
async def delete_post(
    post_id: str,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    await post_service.delete_post(session, post_id, caller_id=current_user.id)
    return SuccessResponse()
