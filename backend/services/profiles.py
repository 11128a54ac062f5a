"""Profile lookups combining a user row with its live counters."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from models import User

from .engagement import UserStats, get_user_stats
from .follows import is_following
from .identity import require_user_by_ref


@dataclass(frozen=True)
class ProfileDetails:
    user: User
    stats: UserStats
    is_following: bool = False


async def build_profile(
    session: AsyncSession,
    user: User,
    *,
    viewer: User | None = None,
) -> ProfileDetails:
    stats = await get_user_stats(session, user.id)
    following = False
    if viewer is not None and viewer.id != user.id:
        following = await is_following(
            session,
            follower_id=viewer.id,
            following_id=user.id,
        )
    return ProfileDetails(user=user, stats=stats, is_following=following)


async def get_profile(
    session: AsyncSession,
    user_ref: str,
    *,
    viewer: User | None = None,
) -> ProfileDetails:
    user = await require_user_by_ref(session, user_ref)
    return await build_profile(session, user, viewer=viewer)
