"""Post repository: create, fetch, page through and delete posts."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, cast

from fastapi import UploadFile
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import settings
from db.errors import is_foreign_key_violation
from models import Post, User

from .engagement import (
    EMPTY_POST_STATS,
    PostStats,
    collect_liked_post_ids,
    collect_post_stats,
)
from .errors import (
    Forbidden,
    InternalError,
    PayloadTooLarge,
    PostNotFound,
    UserNotFound,
    ValidationFailed,
)
from .images import UploadTooLargeError, process_image_bytes, read_upload_file
from .storage import (
    delete_object,
    new_post_image_key,
    post_image_prefix,
    run_storage_call,
    upload_object,
)

logger = logging.getLogger(__name__)

MAX_POST_CAPTION_LENGTH = 2200
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class PostDetails:
    post: Post
    author: User
    stats: PostStats
    is_liked: bool = False


@dataclass(frozen=True)
class PostPage:
    items: list[PostDetails]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


def clamp_page(limit: int | None, offset: int | None) -> tuple[int, int]:
    """Clamp limit to [1, MAX_PAGE_SIZE] and offset to >= 0."""
    resolved_limit = DEFAULT_PAGE_SIZE if limit is None else limit
    resolved_limit = max(1, min(resolved_limit, MAX_PAGE_SIZE))
    resolved_offset = max(0, offset or 0)
    return resolved_limit, resolved_offset


def normalize_caption(caption: str | None) -> str | None:
    if caption is None:
        return None

    normalized_caption = caption.strip()
    if len(normalized_caption) > MAX_POST_CAPTION_LENGTH:
        raise ValidationFailed(
            f"Caption must be at most {MAX_POST_CAPTION_LENGTH} characters"
        )
    if normalized_caption == "":
        return None
    return normalized_caption


async def require_post_exists(session: AsyncSession, post_id: str) -> str:
    """Return the post author id or raise ``PostNotFound``."""
    result = await session.execute(
        select(Post.user_id).where(_eq(Post.id, post_id)).limit(1)
    )
    author_id = result.scalar_one_or_none()
    if author_id is None:
        raise PostNotFound()
    return author_id


async def _annotate(
    session: AsyncSession,
    rows: list[tuple[Post, User]],
    viewer_id: str | None,
) -> list[PostDetails]:
    post_ids = [post.id for post, _author in rows]
    stats_map = await collect_post_stats(session, post_ids)
    liked_set = await collect_liked_post_ids(session, post_ids, viewer_id)
    return [
        PostDetails(
            post=post,
            author=author,
            stats=stats_map.get(post.id, EMPTY_POST_STATS),
            is_liked=post.id in liked_set,
        )
        for post, author in rows
    ]


async def create_post(
    session: AsyncSession,
    *,
    owner: User,
    image_key: str,
    caption: str | None,
) -> PostDetails:
    """Insert a post row for an already-stored image."""
    normalized_caption = normalize_caption(caption)
    normalized_key = image_key.strip()
    if not normalized_key:
        raise ValidationFailed("Image reference must not be empty")

    post = Post(user_id=owner.id, image_key=normalized_key, caption=normalized_caption)
    session.add(post)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_foreign_key_violation(exc):
            raise UserNotFound() from exc
        logger.exception("Failed to create post", extra={"user_id": owner.id})
        raise InternalError("Failed to create post") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to create post", extra={"user_id": owner.id})
        raise InternalError("Failed to create post") from exc
    await session.refresh(post)
    return PostDetails(post=post, author=owner, stats=EMPTY_POST_STATS, is_liked=False)


async def create_post_from_reference(
    session: AsyncSession,
    *,
    owner: User,
    image_ref: str,
    caption: str | None,
) -> PostDetails:
    """Complete a presigned upload by recording the uploaded object key."""
    normalized_ref = image_ref.strip().lstrip("/")
    prefix = post_image_prefix(owner.id)
    if not normalized_ref.startswith(prefix) or len(normalized_ref) == len(prefix):
        raise ValidationFailed("Image reference must point to one of your uploads")
    return await create_post(
        session,
        owner=owner,
        image_key=normalized_ref,
        caption=caption,
    )


async def create_post_from_upload(
    session: AsyncSession,
    *,
    owner: User,
    image: UploadFile,
    caption: str | None,
) -> PostDetails:
    """Normalise an uploaded image, store it, then insert the post row.

    If the row cannot be written the stored object is removed again.
    """
    # Oversized captions are rejected before any image bytes are touched.
    normalize_caption(caption)

    try:
        data = await read_upload_file(image, settings.upload_max_bytes)
        processed_bytes, content_type = await asyncio.to_thread(process_image_bytes, data)
    except UploadTooLargeError as exc:
        raise PayloadTooLarge(str(exc)) from exc
    except ValueError as exc:
        raise ValidationFailed(str(exc)) from exc

    object_key = new_post_image_key(owner.id)
    await run_storage_call(upload_object, object_key, processed_bytes, content_type)

    try:
        return await create_post(
            session,
            owner=owner,
            image_key=object_key,
            caption=caption,
        )
    except Exception:
        try:
            await run_storage_call(delete_object, object_key)
        except Exception as cleanup_error:
            logger.warning(
                "Failed to cleanup uploaded post image after insert failure",
                extra={"image_key": object_key},
                exc_info=cleanup_error,
            )
        raise


async def get_post(
    session: AsyncSession,
    post_id: str,
    *,
    viewer_id: str | None = None,
) -> PostDetails:
    result = await session.execute(
        select(Post, User)
        .join(User, _eq(User.id, Post.user_id))
        .where(_eq(Post.id, post_id))
        .limit(1)
    )
    row = result.first()
    if row is None:
        raise PostNotFound()

    post, author = row
    details = await _annotate(session, [(post, author)], viewer_id)
    return details[0]


async def list_posts(
    session: AsyncSession,
    *,
    limit: int | None = None,
    offset: int | None = None,
    viewer_id: str | None = None,
    author_id: str | None = None,
) -> PostPage:
    """Return one newest-first page of posts plus the total they are drawn from."""
    resolved_limit, resolved_offset = clamp_page(limit, offset)

    query = (
        select(Post, User)
        .join(User, _eq(User.id, Post.user_id))
        .order_by(
            _desc(Post.created_at),
            _desc(Post.id),
        )
        .offset(resolved_offset)
        .limit(resolved_limit)
    )
    count_query = select(cast(Any, func.count(cast(Any, Post.id))))
    if author_id is not None:
        query = query.where(_eq(Post.user_id, author_id))
        count_query = count_query.where(_eq(Post.user_id, author_id))

    result = await session.execute(query)
    rows = cast(list[tuple[Post, User]], [tuple(row) for row in result.all()])
    total_result = await session.execute(count_query)
    total = int(total_result.scalar_one() or 0)

    items = await _annotate(session, rows, viewer_id)
    return PostPage(items=items, total=total, limit=resolved_limit, offset=resolved_offset)


async def delete_post(
    session: AsyncSession,
    post_id: str,
    *,
    caller_id: str,
) -> None:
    """Delete a post owned by ``caller_id`` together with its stored image.

    Likes and comments go with the row through ON DELETE CASCADE. The image is
    removed after the row commits; a storage failure there is logged only.
    """
    result = await session.execute(
        select(Post.user_id, Post.image_key).where(_eq(Post.id, post_id)).limit(1)
    )
    row = result.first()
    if row is None:
        raise PostNotFound()
    owner_id, image_key = row
    if owner_id != caller_id:
        raise Forbidden("You can only delete your own posts")

    try:
        deleted = await session.execute(
            delete(Post).where(
                _eq(Post.id, post_id),
                _eq(Post.user_id, caller_id),
            )
        )
        if deleted.rowcount == 0:
            await session.rollback()
            # A concurrent delete removed the row after the ownership check.
            raise PostNotFound()
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to delete post", extra={"post_id": post_id})
        raise InternalError("Failed to delete post") from exc

    try:
        await run_storage_call(delete_object, image_key)
    except Exception as cleanup_error:
        logger.warning(
            "Failed to delete post image after post deletion",
            extra={"post_id": post_id, "image_key": image_key},
            exc_info=cleanup_error,
        )
