"""Version 1 API routers."""

from fastapi import APIRouter

from . import comments, follows, likes, media, posts, users

api_router = APIRouter()
api_router.include_router(posts.router)
api_router.include_router(comments.router)
api_router.include_router(likes.router)
api_router.include_router(follows.router)
api_router.include_router(users.router)
api_router.include_router(media.router)

__all__ = ["api_router"]
