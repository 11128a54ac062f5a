"""Database seed script for local development.

Usage:
    python scripts/seed.py

Creates demo users keyed by fake identity-provider ids, a few placeholder
image posts each, a follow ring between the users, and some likes and
comments so every counter has something to show. Running it twice does not
duplicate rows.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any, cast

from PIL import Image
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from db.session import AsyncSessionMaker  # noqa: E402
from models import Comment, Follow, Like, Post, User  # noqa: E402
from services.images import JPEG_CONTENT_TYPE, MAX_IMAGE_DIMENSION  # noqa: E402
from services.storage import post_image_prefix, upload_object  # noqa: E402


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


@dataclass(frozen=True)
class SeedUser:
    external_id: str
    name: str
    captions: Sequence[str]


SEED_USERS: Sequence[SeedUser] = [
    SeedUser("seed_alex", "Alex Demo", ["Sunny day snapshots.", "Morning run before work."]),
    SeedUser("seed_bella", "Bella Demo", ["First latte art attempt!", "Bookstore corner find."]),
    SeedUser("seed_cara", "Cara Demo", ["Golden hour on the way home."]),
    SeedUser("seed_dan", "Dan Demo", ["Sunday hill climb complete."]),
    SeedUser("seed_ella", "Ella Demo", ["Tiny museum with huge energy."]),
]

SEED_COMMENTS: Sequence[str] = ["Love this!", "Great light.", "Where is this?"]
PLACEHOLDER_COLORS: Sequence[tuple[int, int, int]] = [
    (243, 189, 80),
    (109, 163, 224),
    (170, 128, 215),
    (90, 170, 120),
    (219, 121, 146),
]


def _build_placeholder_jpeg(seed_index: int) -> bytes:
    color = PLACEHOLDER_COLORS[seed_index % len(PLACEHOLDER_COLORS)]
    image = Image.new("RGB", (MAX_IMAGE_DIMENSION, MAX_IMAGE_DIMENSION), color)
    buffer = BytesIO()
    image.save(buffer, format="JPEG", quality=88)
    return buffer.getvalue()


def _seed_image_key(user: User, index: int) -> str:
    return f"{post_image_prefix(user.id)}seed-{index}.jpg"


def upload_placeholder(object_key: str, seed_index: int) -> None:
    """Best-effort media seeding so demo posts render immediately."""
    try:
        upload_object(object_key, _build_placeholder_jpeg(seed_index), JPEG_CONTENT_TYPE)
    except Exception as exc:
        print(f"Failed to seed media object '{object_key}': {exc}")


async def get_or_create_user(session: AsyncSession, payload: SeedUser) -> User:
    result = await session.execute(
        select(User).where(_eq(User.external_id, payload.external_id))
    )
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(external_id=payload.external_id, name=payload.name)
    session.add(user)
    await session.flush()
    return user


async def ensure_posts(session: AsyncSession, user: User, captions: Sequence[str]) -> list[Post]:
    posts: list[Post] = []
    for index, caption in enumerate(captions):
        image_key = _seed_image_key(user, index)
        result = await session.execute(
            select(Post).where(
                _eq(Post.user_id, user.id),
                _eq(Post.image_key, image_key),
            )
        )
        post = result.scalar_one_or_none()
        if post is None:
            upload_placeholder(image_key, index)
            post = Post(user_id=user.id, image_key=image_key, caption=caption)
            session.add(post)
            await session.flush()
        posts.append(post)
    return posts


async def ensure_follow(session: AsyncSession, follower: User, following: User) -> None:
    result = await session.execute(
        select(Follow).where(
            _eq(Follow.follower_id, follower.id),
            _eq(Follow.following_id, following.id),
        )
    )
    if result.scalar_one_or_none() is None:
        session.add(Follow(follower_id=follower.id, following_id=following.id))


async def ensure_like(session: AsyncSession, user: User, post: Post) -> None:
    result = await session.execute(
        select(Like).where(
            _eq(Like.user_id, user.id),
            _eq(Like.post_id, post.id),
        )
    )
    if result.scalar_one_or_none() is None:
        session.add(Like(user_id=user.id, post_id=post.id))


async def ensure_comment(session: AsyncSession, user: User, post: Post, content: str) -> None:
    result = await session.execute(
        select(Comment).where(
            _eq(Comment.user_id, user.id),
            _eq(Comment.post_id, post.id),
            _eq(Comment.content, content),
        )
    )
    if result.scalar_one_or_none() is None:
        session.add(Comment(user_id=user.id, post_id=post.id, content=content))


async def seed() -> None:
    async with AsyncSessionMaker() as session:
        users: list[User] = []
        posts_by_user: dict[str, list[Post]] = {}
        for payload in SEED_USERS:
            user = await get_or_create_user(session, payload)
            users.append(user)
            posts_by_user[user.id] = await ensure_posts(session, user, payload.captions)

        total = len(users)
        for index, user in enumerate(users):
            neighbour = users[(index + 1) % total]
            await ensure_follow(session, user, neighbour)
            # Each user engages with the first post of the user they follow.
            neighbour_posts = posts_by_user[neighbour.id]
            if neighbour_posts:
                await ensure_like(session, user, neighbour_posts[0])
                await ensure_comment(
                    session,
                    user,
                    neighbour_posts[0],
                    SEED_COMMENTS[index % len(SEED_COMMENTS)],
                )

        await session.commit()

    print("Seed data inserted.")
    print("   Users:", ", ".join(payload.external_id for payload in SEED_USERS))
    print("   Posts:", sum(len(posts) for posts in posts_by_user.values()))
    print("   Follows:", total)


if __name__ == "__main__":
    asyncio.run(seed())
