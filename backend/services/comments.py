"""Comment manager scoped to posts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, cast

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db.errors import is_foreign_key_violation
from models import Comment, User

from .errors import CommentNotFound, Forbidden, InternalError, PostNotFound, ValidationFailed
from .posts import require_post_exists

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 500
DEFAULT_COMMENT_PAGE_SIZE = 10
MAX_COMMENT_PAGE_SIZE = 100


@dataclass(frozen=True)
class CommentDetails:
    comment: Comment
    author: User


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


def clamp_comment_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_COMMENT_PAGE_SIZE
    return max(1, min(limit, MAX_COMMENT_PAGE_SIZE))


def normalize_comment_content(content: str) -> str:
    normalized = content.strip()
    if not normalized:
        raise ValidationFailed("Comment content cannot be empty")
    if len(normalized) > MAX_COMMENT_LENGTH:
        raise ValidationFailed(f"Comment must be at most {MAX_COMMENT_LENGTH} characters")
    return normalized


async def add_comment(
    session: AsyncSession,
    *,
    post_id: str,
    author: User,
    content: str,
) -> CommentDetails:
    normalized = normalize_comment_content(content)
    # Checked up front so a missing post is a 404 rather than an FK failure.
    await require_post_exists(session, post_id)

    comment = Comment(post_id=post_id, user_id=author.id, content=normalized)
    session.add(comment)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_foreign_key_violation(exc):
            raise PostNotFound() from exc
        logger.exception("Failed to add comment", extra={"post_id": post_id, "user_id": author.id})
        raise InternalError("Failed to add comment") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to add comment", extra={"post_id": post_id, "user_id": author.id})
        raise InternalError("Failed to add comment") from exc
    await session.refresh(comment)
    return CommentDetails(comment=comment, author=author)


async def list_comments(
    session: AsyncSession,
    post_id: str,
    *,
    limit: int | None = None,
) -> list[CommentDetails]:
    """Newest-first comments on a post.

    The same ordering serves the two-comment preview and the full thread, so a
    smaller limit always yields a prefix of a larger one. A post that does not
    exist (or was deleted) simply has no comments.
    """
    resolved_limit = clamp_comment_limit(limit)
    result = await session.execute(
        select(Comment, User)
        .join(User, _eq(User.id, Comment.user_id))
        .where(_eq(Comment.post_id, post_id))
        .order_by(
            _desc(Comment.created_at),
            _desc(Comment.id),
        )
        .limit(resolved_limit)
    )
    return [CommentDetails(comment=comment, author=author) for comment, author in result.all()]


async def delete_comment(
    session: AsyncSession,
    comment_id: str,
    *,
    caller_id: str,
) -> None:
    """Delete a comment only when ``caller_id`` wrote it.

    The delete itself is scoped to (id, author) so there is no window between
    the ownership check and the write.
    """
    try:
        result = await session.execute(
            delete(Comment).where(
                _eq(Comment.id, comment_id),
                _eq(Comment.user_id, caller_id),
            )
        )
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to delete comment", extra={"comment_id": comment_id})
        raise InternalError("Failed to delete comment") from exc

    if result.rowcount:
        return

    existing = await session.execute(
        select(Comment.id).where(_eq(Comment.id, comment_id)).limit(1)
    )
    if existing.scalar_one_or_none() is not None:
        raise Forbidden("You can only delete your own comments")
    raise CommentNotFound()
