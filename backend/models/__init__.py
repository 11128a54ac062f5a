"""SQLModel models package."""

from .comment import Comment
from .follow import Follow
from .like import Like
from .post import Post
from .user import User

__all__ = [
    "User",
    "Follow",
    "Post",
    "Like",
    "Comment",
]
