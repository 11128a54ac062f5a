"""Error taxonomy shared by the data-access services.

Each kind is an ``HTTPException`` so services can raise it directly and the
framework renders ``{"detail": ...}`` with the matching status code.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class FeedError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None) -> None:
        super().__init__(
            status_code=type(self).status_code,
            detail=detail or type(self).default_detail,
            headers=headers,
        )


class Unauthenticated(FeedError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(FeedError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class NotFound(FeedError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class UserNotFound(NotFound):
    default_detail = "User not found"


class PostNotFound(NotFound):
    default_detail = "Post not found"


class CommentNotFound(NotFound):
    default_detail = "Comment not found"


class ValidationFailed(FeedError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class InvalidSelfFollow(ValidationFailed):
    default_detail = "Cannot follow yourself"


class PayloadTooLarge(FeedError):
    status_code = status.HTTP_413_CONTENT_TOO_LARGE
    default_detail = "Upload too large"


class Conflict(FeedError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class AlreadyLiked(Conflict):
    default_detail = "Already liked"


class AlreadyFollowing(Conflict):
    default_detail = "Already following"


class InternalError(FeedError):
    pass


class UpstreamTimeout(FeedError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    default_detail = "Upstream request timed out"


__all__ = [
    "FeedError",
    "Unauthenticated",
    "Forbidden",
    "NotFound",
    "UserNotFound",
    "PostNotFound",
    "CommentNotFound",
    "ValidationFailed",
    "InvalidSelfFollow",
    "PayloadTooLarge",
    "Conflict",
    "AlreadyLiked",
    "AlreadyFollowing",
    "InternalError",
    "UpstreamTimeout",
]
