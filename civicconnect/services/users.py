"""
User directory — provisioning on first sign-in, registration, profile
edits and admin account management.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.exceptions import (ConflictError, InvalidStateError,
                                          NotFoundError)
from civicconnect.core.security import VerifiedIdentity
from civicconnect.models.enums import Role
from civicconnect.models.user import User
from civicconnect.repositories.users import UserRepository
from civicconnect.services.access import (Action, Actor, Resource,
                                          ensure_authorized)

logger = logging.getLogger(__name__)

PROFILE_FIELDS = frozenset({"display_name", "photo_url"})
ADMIN_FIELDS = frozenset({"role", "is_blocked", "region", "district", "display_name"})


async def get_or_provision(db: AsyncSession, identity: VerifiedIdentity) -> User:
    """Return the user for *identity*, creating a citizen account on first sign-in."""
    users = UserRepository(db)
    user = await users.get_by_email(identity.email)
    if user is not None:
        return user

    try:
        user = await users.insert(
            User(
                email=identity.email,
                display_name=identity.name,
                photo_url=identity.picture,
                role=Role.CITIZEN.value,
            )
        )
        await db.commit()
        logger.info("Provisioned citizen account for %s", identity.email)
    except IntegrityError:
        await db.rollback()
        user = await users.get_by_email(identity.email)
        if user is None:
            raise
        logger.info("Concurrent first sign-in handled for %s", identity.email)
    return user


async def register(
    db: AsyncSession,
    identity: VerifiedIdentity,
    display_name: str | None = None,
    photo_url: str | None = None,
) -> User:
    users = UserRepository(db)
    if await users.get_by_email(identity.email) is not None:
        raise ConflictError("User already exists")

    try:
        user = await users.insert(
            User(
                email=identity.email,
                display_name=display_name or identity.name,
                photo_url=photo_url or identity.picture,
                role=Role.CITIZEN.value,
            )
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("User already exists") from None

    logger.info("Registered user %s", user.email)
    return user


async def update_profile(db: AsyncSession, actor: Actor, changes: dict[str, Any]) -> User:
    ensure_authorized(actor, Action.EDIT_PROFILE, Resource.owned_by(actor.email))
    users = UserRepository(db)
    changes = {k: v for k, v in changes.items() if k in PROFILE_FIELDS}
    if changes:
        await users.update_where(actor.email, **changes)
        await db.commit()
        logger.info("Profile of %s updated (%s)", actor.email, sorted(changes))
    user = await users.get_by_email(actor.email)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def list_users(
    db: AsyncSession, actor: Actor, search: str | None = None, role: str | None = None, limit: int = 20
) -> list[User]:
    ensure_authorized(actor, Action.MANAGE_USERS)
    return await UserRepository(db).search(search, role=role, limit=limit)


async def admin_update_user(
    db: AsyncSession, actor: Actor, email: str, changes: dict[str, Any]
) -> User:
    """Change another account's role, block flag or district (admin only)."""
    ensure_authorized(actor, Action.MANAGE_USERS)
    users = UserRepository(db)
    target = await users.get_by_email_for_update(email)
    if target is None:
        raise NotFoundError("User not found")

    changes = {k: v for k, v in changes.items() if k in ADMIN_FIELDS}
    for flag in ("role", "is_blocked"):
        if changes.get(flag, False) is None:
            del changes[flag]
    if target.email == actor.email and (
        changes.get("is_blocked") or changes.get("role", Role.ADMIN.value) != Role.ADMIN.value
    ):
        raise InvalidStateError("Administrators cannot demote or block themselves")

    if changes:
        await users.update_where(target.email, **changes)
        await db.commit()
        logger.info("Admin %s updated %s: %s", actor.email, target.email, changes)
    return await users.get_by_email(target.email)
