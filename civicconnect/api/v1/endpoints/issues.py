"""
Issue endpoints — reporting, browsing, lifecycle transitions, assignment,
upvotes and deletion.

- GET operations are public.
- Every mutation requires a verified identity; what each actor may do is
  decided by ``civicconnect.services.access``.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.api.v1.deps import get_current_actor, get_db
from civicconnect.core.exceptions import NotFoundError
from civicconnect.core.rate_limit import WRITE_LIMIT, limiter
from civicconnect.models.enums import IssueStatus
from civicconnect.models.issue import Issue
from civicconnect.repositories.issues import IssueRepository
from civicconnect.schemas.issue import (AssignRequest, DeleteResponse,
                                        IssueCreate, IssueCreated, IssueRead,
                                        IssueUpdate, StatusChangeRequest,
                                        StatusChangeResponse, UpvoteResponse)
from civicconnect.services import lifecycle, upvotes
from civicconnect.services.access import (Action, Actor, Resource,
                                          ensure_authorized)

router = APIRouter(prefix="/issues", tags=["issues"])
logger = logging.getLogger(__name__)


# ── Create ──────────────────────────────────────────────────────────
@router.post("", response_model=IssueCreated, status_code=201)
@limiter.limit(WRITE_LIMIT)
async def create_issue(
    request: Request,
    body: IssueCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> IssueCreated:
    """Report a new issue. It starts ``Pending`` with ``Normal`` priority."""
    issue = await lifecycle.create_issue(db, actor, body.model_dump())
    return IssueCreated(id=issue.id)


# ── Read ────────────────────────────────────────────────────────────
@router.get("", response_model=list[IssueRead])
async def list_issues(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    status: IssueStatus | None = None,
    category: str | None = None,
    district: str | None = None,
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> list[Issue]:
    return await IssueRepository(db).list(
        status=status.value if status else None,
        category=category,
        district=district,
        search=search,
        skip=skip,
        limit=limit,
    )


@router.get("/mine", response_model=list[IssueRead])
async def my_issues(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[Issue]:
    """Issues reported by the signed-in user (their dashboard)."""
    ensure_authorized(actor, Action.VIEW_DASHBOARD, Resource.owned_by(actor.email))
    return await IssueRepository(db).list(owner_email=actor.email, limit=500)


@router.get("/{issue_id}", response_model=IssueRead)
async def get_issue(
    issue_id: int,
    db: AsyncSession = Depends(get_db),
) -> Issue:
    issue = await IssueRepository(db).get(issue_id)
    if issue is None:
        raise NotFoundError("Issue not found")
    return issue


# ── Edit / delete (owner) ───────────────────────────────────────────
@router.patch("/{issue_id}", response_model=IssueRead)
async def edit_issue(
    issue_id: int,
    body: IssueUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> Issue:
    """Edit a pending issue's details (owner only)."""
    return await lifecycle.update_issue(
        db, issue_id, actor, body.model_dump(exclude_unset=True, exclude_none=True)
    )


@router.delete("/{issue_id}", response_model=DeleteResponse)
async def delete_issue(
    issue_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> DeleteResponse:
    """Delete a pending issue (owner only)."""
    await lifecycle.delete_issue(db, issue_id, actor)
    return DeleteResponse(success=True, message="Issue deleted successfully")


# ── Lifecycle ───────────────────────────────────────────────────────
@router.patch("/{issue_id}/status", response_model=StatusChangeResponse)
async def change_status(
    issue_id: int,
    body: StatusChangeRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> Issue:
    return await lifecycle.request_transition(db, issue_id, actor, body.status, body.note)


@router.post("/{issue_id}/assign", response_model=StatusChangeResponse)
async def assign_issue(
    issue_id: int,
    body: AssignRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> Issue:
    """Assign a pending issue to a staff member (admin only)."""
    return await lifecycle.assign_issue(db, issue_id, actor, body.staff_email, body.staff_name)


@router.post("/{issue_id}/claim", response_model=StatusChangeResponse)
async def claim_issue(
    issue_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> Issue:
    """Staff self-assignment of a pending issue in their district."""
    return await lifecycle.claim_issue(db, issue_id, actor)


# ── Upvote ──────────────────────────────────────────────────────────
@router.patch("/{issue_id}/upvote", response_model=UpvoteResponse)
async def upvote_issue(
    issue_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> UpvoteResponse:
    issue = await upvotes.upvote(db, issue_id, actor)
    return UpvoteResponse(issue_id=issue.id, upvotes=issue.upvotes)
