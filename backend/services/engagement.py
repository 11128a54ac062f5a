"""Engagement counters read from the aggregation views.

Nothing here is cached: every call recomputes from the ``post_stats`` and
``user_stats`` views, so a like or follow is visible to the very next read.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, cast

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db.views import post_stats, user_stats
from models import Like


@dataclass(frozen=True)
class PostStats:
    likes_count: int = 0
    comments_count: int = 0


@dataclass(frozen=True)
class UserStats:
    posts_count: int = 0
    followers_count: int = 0
    following_count: int = 0


EMPTY_POST_STATS = PostStats()
EMPTY_USER_STATS = UserStats()


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


async def collect_post_stats(
    session: AsyncSession,
    post_ids: Sequence[str],
) -> dict[str, PostStats]:
    """Return like/comment counts keyed by post id (missing ids are omitted)."""
    if not post_ids:
        return {}

    result = await session.execute(
        select(
            post_stats.c.post_id,
            post_stats.c.likes_count,
            post_stats.c.comments_count,
        ).where(post_stats.c.post_id.in_(list(post_ids)))
    )
    return {
        post_id: PostStats(
            likes_count=int(likes or 0),
            comments_count=int(comments or 0),
        )
        for post_id, likes, comments in result.all()
    }


async def collect_liked_post_ids(
    session: AsyncSession,
    post_ids: Sequence[str],
    viewer_id: str | None,
) -> set[str]:
    """Return the subset of ``post_ids`` the viewer has liked."""
    if viewer_id is None or not post_ids:
        return set()

    post_id_column = cast(ColumnElement[str], Like.post_id)
    result = await session.execute(
        select(post_id_column).where(
            _eq(Like.user_id, viewer_id),
            post_id_column.in_(list(post_ids)),
        )
    )
    return {row[0] for row in result.all()}


async def get_like_count(session: AsyncSession, post_id: str) -> int:
    user_id_column = cast(ColumnElement[str], Like.user_id)
    result = await session.execute(
        select(cast(Any, func.count(user_id_column))).where(_eq(Like.post_id, post_id))
    )
    return int(result.scalar_one() or 0)


async def get_user_stats(session: AsyncSession, user_id: str) -> UserStats:
    result = await session.execute(
        select(
            user_stats.c.posts_count,
            user_stats.c.followers_count,
            user_stats.c.following_count,
        )
        .where(user_stats.c.user_id == user_id)
        .limit(1)
    )
    row = result.first()
    if row is None:
        return EMPTY_USER_STATS
    posts_count, followers_count, following_count = row
    return UserStats(
        posts_count=int(posts_count or 0),
        followers_count=int(followers_count or 0),
        following_count=int(following_count or 0),
    )
