"""
Staff endpoints — the staff worklist and staff applications.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.api.v1.deps import get_current_actor, get_db, require_staff
from civicconnect.models.enums import ApplicationStatus
from civicconnect.models.staff_application import StaffApplication
from civicconnect.schemas.issue import StaffIssueRead
from civicconnect.schemas.staff import (ApplicationReview,
                                        StaffApplicationCreate,
                                        StaffApplicationRead)
from civicconnect.services import assignment, staff_applications
from civicconnect.services.access import Actor

router = APIRouter(tags=["staff"])


@router.get("/staff/issues", response_model=list[StaffIssueRead])
async def staff_issues(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_staff),
) -> list[StaffIssueRead]:
    """Issues assigned to me, plus unassigned pending issues in my district."""
    issues = await assignment.staff_worklist(db, actor)
    rows = []
    for issue in issues:
        row = StaffIssueRead.model_validate(issue)
        row.claimable = assignment.is_claimable(issue, actor)
        rows.append(row)
    return rows


@router.post("/staff-applications", response_model=StaffApplicationRead, status_code=201)
async def apply_for_staff(
    body: StaffApplicationCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> StaffApplication:
    return await staff_applications.submit_application(
        db,
        actor,
        name=body.name,
        region=body.region,
        district=body.district,
        phone=body.phone,
    )


@router.get("/staff-applications", response_model=list[StaffApplicationRead])
async def list_staff_applications(
    status: ApplicationStatus | None = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[StaffApplication]:
    """All applications for admins; a citizen sees only their own."""
    return await staff_applications.list_applications(
        db, actor, status.value if status else None
    )


@router.patch("/staff-applications/{application_id}", response_model=StaffApplicationRead)
async def review_staff_application(
    application_id: int,
    body: ApplicationReview,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> StaffApplication:
    return await staff_applications.review_application(
        db, application_id, actor, ApplicationStatus(body.decision), body.note
    )
