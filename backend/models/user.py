"""User domain model."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, func
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """Internal account mapped to an identity-provider subject."""

    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    # Subject of the identity provider's session token; rows are created by
    # the identity sync step, never by the feed endpoints.
    external_id: str = Field(
        sa_column=Column(String(255), unique=True, nullable=False, index=True)
    )
    name: str = Field(
        sa_column=Column(String(255), nullable=False)
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        ),
    )
