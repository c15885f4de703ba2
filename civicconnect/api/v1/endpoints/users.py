"""
User endpoints — explicit registration and the signed-in user's profile.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.api.v1.deps import (get_current_actor, get_current_user,
                                      get_db, get_verified_identity)
from civicconnect.core.rate_limit import WRITE_LIMIT, limiter
from civicconnect.core.security import VerifiedIdentity
from civicconnect.models.user import User
from civicconnect.schemas.user import ProfileUpdate, UserCreate, UserRead
from civicconnect.services import users as user_service
from civicconnect.services.access import Actor

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserRead, status_code=201)
@limiter.limit(WRITE_LIMIT)
async def register_user(
    request: Request,
    body: UserCreate,
    identity: VerifiedIdentity = Depends(get_verified_identity),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Register the verified identity as a citizen account (409 if it exists)."""
    return await user_service.register(db, identity, body.display_name, body.photo_url)


@router.get("/me", response_model=UserRead)
async def read_current_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Return profile of the currently authenticated user."""
    return current_user


@router.patch("/me", response_model=UserRead)
async def update_current_user(
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> User:
    return await user_service.update_profile(db, actor, body.model_dump(exclude_unset=True))
