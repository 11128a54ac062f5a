"""FastAPI dependencies for database sessions and caller identity."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core import decode_identity_token, extract_bearer_token, settings
from db.session import AsyncSessionMaker
from models import User
from services.errors import Unauthenticated
from services.identity import resolve_user


async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionMaker() as session:
        yield session


def _read_session_token(request: Request) -> str | None:
    token = extract_bearer_token(request.headers.get("authorization"))
    if token is None:
        token = request.cookies.get(settings.identity_session_cookie) or None
    return token


def _decode_or_reject(token: str) -> dict[str, Any]:
    try:
        return decode_identity_token(token)
    except ValueError as exc:
        raise Unauthenticated("Invalid session") from exc


async def get_identity_claims(request: Request) -> dict[str, Any]:
    """Claims of a verified session; 401 when there is none."""
    token = _read_session_token(request)
    if token is None:
        raise Unauthenticated()
    return _decode_or_reject(token)


async def get_optional_identity_claims(request: Request) -> dict[str, Any] | None:
    """Claims of a verified session, or None for anonymous callers.

    A token that is present but fails verification is still rejected.
    """
    token = _read_session_token(request)
    if token is None:
        return None
    return _decode_or_reject(token)


async def get_current_user(
    claims: dict[str, Any] = Depends(get_identity_claims),
    session: AsyncSession = Depends(get_db),
) -> User:
    return await resolve_user(session, claims["sub"])


async def get_optional_user(
    claims: dict[str, Any] | None = Depends(get_optional_identity_claims),
    session: AsyncSession = Depends(get_db),
) -> User | None:
    if claims is None:
        return None
    return await resolve_user(session, claims["sub"])
