"""Mapping from identity-provider subjects to internal user rows."""

from __future__ import annotations

import logging
from typing import Any, cast

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db.errors import is_unique_violation
from models import User

from .errors import InternalError, UserNotFound, ValidationFailed

logger = logging.getLogger(__name__)

MAX_DISPLAY_NAME_LENGTH = 255


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


async def get_user_by_external_id(
    session: AsyncSession,
    external_id: str,
) -> User | None:
    result = await session.execute(
        select(User).where(_eq(User.external_id, external_id)).limit(1)
    )
    return result.scalar_one_or_none()


async def resolve_user(session: AsyncSession, external_id: str) -> User:
    """Return the internal user for a verified session subject.

    A verified subject without a row means the identity sync has not caught
    up yet; that is reported as ``UserNotFound`` instead of anonymous access.
    """
    normalized = external_id.strip()
    if not normalized:
        raise ValidationFailed("External identity id must not be empty")
    user = await get_user_by_external_id(session, normalized)
    if user is None:
        raise UserNotFound()
    return user


async def find_user_by_ref(session: AsyncSession, user_ref: str) -> User | None:
    """Look a user up by internal id, falling back to external identity id.

    An internal id match always wins over an external id that happens to
    carry the same value.
    """
    result = await session.execute(
        select(User).where(_eq(User.id, user_ref)).limit(1)
    )
    user = result.scalar_one_or_none()
    if user is not None:
        return user
    return await get_user_by_external_id(session, user_ref)


async def require_user_by_ref(
    session: AsyncSession,
    user_ref: str,
    *,
    detail: str = "User not found",
) -> User:
    user = await find_user_by_ref(session, user_ref)
    if user is None:
        raise UserNotFound(detail)
    return user


def _normalize_display_name(name: str | None, fallback: str) -> str:
    normalized = (name or "").strip()
    if not normalized:
        normalized = fallback
    return normalized[:MAX_DISPLAY_NAME_LENGTH]


async def sync_user(
    session: AsyncSession,
    *,
    external_id: str,
    name: str | None,
) -> tuple[User, bool]:
    """Create or refresh the internal row for an identity subject.

    Returns the user and whether it was created by this call.
    """
    display_name = _normalize_display_name(name, external_id)
    user = await get_user_by_external_id(session, external_id)
    if user is not None:
        if user.name != display_name:
            user.name = display_name
            session.add(user)
            try:
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.exception("Failed to update synced user", extra={"external_id": external_id})
                raise InternalError("Failed to sync user") from exc
            await session.refresh(user)
        return user, False

    user = User(external_id=external_id, name=display_name)
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if not is_unique_violation(exc):
            logger.exception("Failed to create synced user", extra={"external_id": external_id})
            raise InternalError("Failed to sync user") from exc
        # A concurrent sync for the same subject won the insert.
        existing = await get_user_by_external_id(session, external_id)
        if existing is None:
            raise InternalError("Failed to sync user") from exc
        return existing, False
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to create synced user", extra={"external_id": external_id})
        raise InternalError("Failed to sync user") from exc
    await session.refresh(user)
    logger.info("Synced new user", extra={"user_id": user.id, "external_id": external_id})
    return user, True
