"""
Admin endpoints — user management, assignable staff and simple counts.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.api.v1.deps import get_db, require_admin
from civicconnect.models.issue import Issue
from civicconnect.models.user import User
from civicconnect.repositories.issues import IssueRepository
from civicconnect.repositories.payments import PaymentRepository
from civicconnect.repositories.users import UserRepository
from civicconnect.schemas.common import PaymentTotals, StatsResponse
from civicconnect.schemas.user import AdminUserUpdate, UserRead
from civicconnect.services import assignment
from civicconnect.services import users as user_service
from civicconnect.services.access import Action, Actor, ensure_authorized

router = APIRouter(tags=["admin"])


@router.get("/admin/users", response_model=list[UserRead])
async def list_users(
    search: str | None = None,
    role: str | None = None,
    limit: int = Query(default=20, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_admin),
) -> list[User]:
    return await user_service.list_users(db, actor, search=search, role=role, limit=limit)


@router.patch("/admin/users/{email}", response_model=UserRead)
async def update_user(
    email: str,
    body: AdminUserUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_admin),
) -> User:
    """Change a user's role, district or blocked flag."""
    return await user_service.admin_update_user(
        db, actor, email, body.model_dump(exclude_unset=True)
    )


@router.get("/admin/staff", response_model=list[UserRead])
async def list_assignable_staff(
    district: str | None = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_admin),
) -> list[User]:
    return await assignment.assignable_staff(db, actor, district)


@router.get("/admin/stats", response_model=StatsResponse)
async def stats(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_admin),
) -> StatsResponse:
    ensure_authorized(actor, Action.VIEW_STATISTICS)
    issues = IssueRepository(db)
    by_status = await issues.count_by(Issue.status)
    by_priority = await issues.count_by(Issue.priority)
    payments = await PaymentRepository(db).totals_by_kind()
    return StatsResponse(
        issues_total=sum(by_status.values()),
        issues_by_status=by_status,
        issues_by_priority=by_priority,
        users_by_role=await UserRepository(db).count_by_role(),
        payments_by_kind={
            kind: PaymentTotals(count=count, amount=round(total / 100, 2))
            for kind, (count, total) in payments.items()
        },
    )
