"""Identity-provider session token verification."""

from __future__ import annotations

from typing import Any

from jose import JWTError, jwt

from .config import settings


def decode_identity_token(token: str) -> dict[str, Any]:
    """Verify a session token issued by the identity provider and return its claims.

    Raises ValueError when the signature, expiry or configured issuer/audience
    checks fail, or when the token carries no subject.
    """
    options = {"verify_aud": settings.identity_jwt_audience is not None}
    try:
        payload = jwt.decode(
            token,
            settings.identity_jwt_key,
            algorithms=settings.identity_jwt_algorithms,
            audience=settings.identity_jwt_audience,
            issuer=settings.identity_jwt_issuer,
            options=options,
        )
    except JWTError as exc:
        raise ValueError("Invalid identity token") from exc

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise ValueError("Identity token missing subject")
    return payload


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    credentials = credentials.strip()
    return credentials or None
