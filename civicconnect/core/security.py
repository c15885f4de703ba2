"""
Identity-provider token verification (JWT).

The identity provider signs bearer tokens; this module only verifies
them and extracts the verified email. ``create_identity_token`` mints
compatible tokens for local tooling and the test suite.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from civicconnect.core.config import settings
from civicconnect.core.exceptions import UnauthenticatedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedIdentity:
    email: str
    name: str | None = None
    picture: str | None = None


def create_identity_token(
    email: str,
    name: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.IDENTITY_TOKEN_EXPIRE_MINUTES)
    )
    claims: dict = {"exp": expire, "sub": email, "email": email}
    if name:
        claims["name"] = name
    if settings.IDENTITY_ISSUER:
        claims["iss"] = settings.IDENTITY_ISSUER
    if settings.IDENTITY_AUDIENCE:
        claims["aud"] = settings.IDENTITY_AUDIENCE
    return jwt.encode(claims, settings.IDENTITY_SECRET_KEY, algorithm=settings.IDENTITY_ALGORITHM)


def verify_identity_token(token: str) -> VerifiedIdentity:
    """Return the verified identity carried by *token*.

    Raises ``UnauthenticatedError`` for a malformed, expired or
    wrongly-signed token, or one without an email.
    """
    try:
        payload = jwt.decode(
            token,
            settings.IDENTITY_SECRET_KEY,
            algorithms=[settings.IDENTITY_ALGORITHM],
            audience=settings.IDENTITY_AUDIENCE,
            issuer=settings.IDENTITY_ISSUER,
            options={"verify_aud": settings.IDENTITY_AUDIENCE is not None},
        )
    except JWTError as exc:
        logger.warning("Identity token rejected: %s", exc)
        raise UnauthenticatedError("Unauthorized: invalid token") from exc

    email = payload.get("email") or payload.get("sub")
    if not isinstance(email, str) or "@" not in email:
        raise UnauthenticatedError("Unauthorized: token carries no email")

    return VerifiedIdentity(
        email=email.strip().lower(),
        name=payload.get("name"),
        picture=payload.get("picture"),
    )
