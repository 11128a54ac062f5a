"""Read-only aggregation views.

``post_stats`` and ``user_stats`` are created by the Alembic migrations and
recompute counts from the source tables on every read. They live on their own
MetaData so ``SQLModel.metadata`` never tries to create or truncate them.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, String, Table

view_metadata = MetaData()

post_stats = Table(
    "post_stats",
    view_metadata,
    Column("post_id", String(36), primary_key=True),
    Column("user_id", String(36)),
    Column("likes_count", Integer),
    Column("comments_count", Integer),
)

user_stats = Table(
    "user_stats",
    view_metadata,
    Column("user_id", String(36), primary_key=True),
    Column("posts_count", Integer),
    Column("followers_count", Integer),
    Column("following_count", Integer),
)

POST_STATS_VIEW_SQL = """
CREATE VIEW post_stats AS
SELECT
    p.id AS post_id,
    p.user_id AS user_id,
    (SELECT COUNT(*) FROM likes l WHERE l.post_id = p.id) AS likes_count,
    (SELECT COUNT(*) FROM comments c WHERE c.post_id = p.id) AS comments_count
FROM posts p
"""

USER_STATS_VIEW_SQL = """
CREATE VIEW user_stats AS
SELECT
    u.id AS user_id,
    (SELECT COUNT(*) FROM posts p WHERE p.user_id = u.id) AS posts_count,
    (SELECT COUNT(*) FROM follows f WHERE f.following_id = u.id) AS followers_count,
    (SELECT COUNT(*) FROM follows f WHERE f.follower_id = u.id) AS following_count
FROM users u
"""

__all__ = [
    "view_metadata",
    "post_stats",
    "user_stats",
    "POST_STATS_VIEW_SQL",
    "USER_STATS_VIEW_SQL",
]
