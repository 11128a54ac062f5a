"""Follow toggle between two users."""

from __future__ import annotations

import logging
from typing import Any, cast

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db.errors import is_check_violation, is_foreign_key_violation, is_unique_violation
from models import Follow, User

from .errors import AlreadyFollowing, InternalError, InvalidSelfFollow, UserNotFound
from .identity import require_user_by_ref

logger = logging.getLogger(__name__)

TARGET_NOT_FOUND_DETAIL = "Target user not found"


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


async def is_following(
    session: AsyncSession,
    *,
    follower_id: str,
    following_id: str,
) -> bool:
    result = await session.execute(
        select(Follow.id).where(
            _eq(Follow.follower_id, follower_id),
            _eq(Follow.following_id, following_id),
        )
    )
    return result.scalar_one_or_none() is not None


async def resolve_follow_target(session: AsyncSession, target_ref: str) -> User:
    return await require_user_by_ref(session, target_ref, detail=TARGET_NOT_FOUND_DETAIL)


async def follow_user(
    session: AsyncSession,
    *,
    follower: User,
    target_ref: str,
) -> Follow:
    """Create the follower -> target edge.

    The database constraints are authoritative; the self-follow check here
    only turns the common case into a clean error before touching the table.
    """
    target = await resolve_follow_target(session, target_ref)
    if target.id == follower.id:
        raise InvalidSelfFollow()

    follow = Follow(follower_id=follower.id, following_id=target.id)
    session.add(follow)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            raise AlreadyFollowing() from exc
        if is_check_violation(exc):
            raise InvalidSelfFollow() from exc
        if is_foreign_key_violation(exc):
            raise UserNotFound(TARGET_NOT_FOUND_DETAIL) from exc
        logger.exception(
            "Failed to add follow",
            extra={"follower_id": follower.id, "following_id": target.id},
        )
        raise InternalError("Failed to add follow") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception(
            "Failed to add follow",
            extra={"follower_id": follower.id, "following_id": target.id},
        )
        raise InternalError("Failed to add follow") from exc
    await session.refresh(follow)
    return follow


async def unfollow_user(
    session: AsyncSession,
    *,
    follower: User,
    target_ref: str,
) -> bool:
    """Remove the edge if present; returns whether a row was deleted."""
    target = await resolve_follow_target(session, target_ref)
    try:
        result = await session.execute(
            delete(Follow).where(
                _eq(Follow.follower_id, follower.id),
                _eq(Follow.following_id, target.id),
            )
        )
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception(
            "Failed to remove follow",
            extra={"follower_id": follower.id, "following_id": target.id},
        )
        raise InternalError("Failed to remove follow") from exc
    return bool(result.rowcount)


async def get_follow_status(
    session: AsyncSession,
    *,
    follower: User,
    target_ref: str,
) -> bool:
    target = await resolve_follow_target(session, target_ref)
    return await is_following(
        session,
        follower_id=follower.id,
        following_id=target.id,
    )
