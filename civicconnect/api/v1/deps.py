"""
FastAPI dependencies — database session, identity guards and the
checkout provider.

Every engine call receives the resolved ``Actor`` as an explicit
argument; nothing downstream reads identity from the request.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.config import settings
from civicconnect.core.exceptions import (ForbiddenError,
                                          UnauthenticatedError)
from civicconnect.core.security import VerifiedIdentity, verify_identity_token
from civicconnect.db.session import async_session_factory
from civicconnect.models.enums import Role
from civicconnect.models.user import User
from civicconnect.services import users as user_service
from civicconnect.services.access import Actor
from civicconnect.services.checkout import (CheckoutProvider,
                                            StripeCheckoutProvider)

bearer_scheme = HTTPBearer(auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Identity ────────────────────────────────────────────────────────
async def get_verified_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> VerifiedIdentity:
    """Verify the bearer token with the identity provider's key."""
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("Unauthorized: no token")
    return verify_identity_token(credentials.credentials)


async def get_current_user(
    identity: VerifiedIdentity = Depends(get_verified_identity),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Look up the signed-in user, provisioning a citizen account on first sign-in."""
    return await user_service.get_or_provision(db, identity)


async def get_current_actor(
    user: User = Depends(get_current_user),
) -> Actor:
    return Actor.from_user(user)


async def require_admin(
    actor: Actor = Depends(get_current_actor),
) -> Actor:
    """Only allow admin role to proceed."""
    if actor.role is not Role.ADMIN:
        raise ForbiddenError("Admin privileges required")
    return actor


async def require_staff(
    actor: Actor = Depends(get_current_actor),
) -> Actor:
    if actor.role is not Role.STAFF:
        raise ForbiddenError("Staff privileges required")
    return actor


# ── External services ───────────────────────────────────────────────
@lru_cache
def _stripe_provider() -> StripeCheckoutProvider:
    return StripeCheckoutProvider(settings.STRIPE_SECRET_KEY)


def get_checkout_provider() -> CheckoutProvider:
    return _stripe_provider()
