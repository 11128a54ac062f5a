"""Like toggle: one (user, post) edge guarded by a unique constraint."""

from __future__ import annotations

import logging
from typing import Any, cast

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db.errors import is_foreign_key_violation, is_unique_violation
from models import Like

from .errors import AlreadyLiked, InternalError, PostNotFound
from .posts import require_post_exists

logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


async def like_post(session: AsyncSession, *, user_id: str, post_id: str) -> Like:
    """Insert the like edge.

    The unique constraint is the arbiter for concurrent likes: the losing
    insert surfaces as ``AlreadyLiked`` rather than a server error.
    """
    await require_post_exists(session, post_id)

    like = Like(user_id=user_id, post_id=post_id)
    session.add(like)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            raise AlreadyLiked() from exc
        if is_foreign_key_violation(exc):
            raise PostNotFound() from exc
        logger.exception("Failed to add like", extra={"post_id": post_id, "user_id": user_id})
        raise InternalError("Failed to add like") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to add like", extra={"post_id": post_id, "user_id": user_id})
        raise InternalError("Failed to add like") from exc
    await session.refresh(like)
    return like


async def unlike_post(session: AsyncSession, *, user_id: str, post_id: str) -> bool:
    """Remove the like edge; removing a missing edge is a no-op.

    Returns whether an edge was actually removed.
    """
    try:
        result = await session.execute(
            delete(Like).where(
                _eq(Like.user_id, user_id),
                _eq(Like.post_id, post_id),
            )
        )
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to remove like", extra={"post_id": post_id, "user_id": user_id})
        raise InternalError("Failed to remove like") from exc
    return bool(result.rowcount)
