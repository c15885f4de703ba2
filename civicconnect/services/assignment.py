"""
Assignment resolver — which issues a staff member can work on.

District matching is exact string equality: ``"Dhaka"`` and ``"dhaka "``
are different districts.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.exceptions import ForbiddenError
from civicconnect.models.enums import Role
from civicconnect.models.issue import Issue
from civicconnect.models.user import User
from civicconnect.repositories.issues import IssueRepository
from civicconnect.repositories.users import UserRepository
from civicconnect.services.access import (Action, Actor, Resource, authorize,
                                          ensure_authorized)


async def staff_worklist(db: AsyncSession, actor: Actor) -> list[Issue]:
    """Issues assigned to *actor*, plus pending unassigned issues in their district."""
    if actor.role is not Role.STAFF:
        raise ForbiddenError("Staff privileges required")
    return await IssueRepository(db).staff_worklist(actor.email, actor.district)


def is_claimable(issue: Issue, actor: Actor) -> bool:
    if issue.assigned_email is not None:
        return False
    return bool(authorize(actor, Action.CLAIM_ISSUE, Resource.for_issue(issue)))


async def assignable_staff(
    db: AsyncSession, actor: Actor, district: str | None = None
) -> list[User]:
    """Staff an admin may assign to; admin assignment ignores districts unless filtered."""
    ensure_authorized(actor, Action.ASSIGN_ISSUE)
    staff = await UserRepository(db).search(role=Role.STAFF.value, limit=500)
    if district is not None:
        staff = [s for s in staff if s.district == district]
    return [s for s in staff if not s.is_blocked]
