"""
Issue lifecycle state machine.

    Pending ──assign/claim──▶ In-Progress ──▶ Working ──▶ Resolved ──▶ Closed
       │                          │              │
       └──────────── admin rejection (reason required) ─────────────▶ Closed

Every mutation locks the issue row, applies a conditional update and
appends a timeline entry in the same transaction. Statuses never move
backwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.exceptions import (AlreadyAssignedError, ConflictError,
                                          ForbiddenError, InvalidInputError,
                                          InvalidStateError,
                                          InvalidTransitionError,
                                          NotFoundError)
from civicconnect.models.enums import IssueStatus, Priority, Role
from civicconnect.models.issue import Issue
from civicconnect.repositories.issues import IssueRepository
from civicconnect.repositories.users import UserRepository
from civicconnect.services import timeline
from civicconnect.services.access import (Action, Actor, Resource,
                                          ensure_authorized)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Edge:
    roles: frozenset[Role]
    requires_reason: bool = False
    via_assignment: bool = False


_ADMIN = frozenset({Role.ADMIN})
_STAFF = frozenset({Role.STAFF})
_REJECT = Edge(_ADMIN, requires_reason=True)

TRANSITIONS: dict[IssueStatus, dict[IssueStatus, Edge]] = {
    IssueStatus.PENDING: {
        IssueStatus.IN_PROGRESS: Edge(frozenset({Role.ADMIN, Role.STAFF}), via_assignment=True),
        IssueStatus.CLOSED: _REJECT,
    },
    IssueStatus.IN_PROGRESS: {
        IssueStatus.WORKING: Edge(_STAFF),
        IssueStatus.CLOSED: _REJECT,
    },
    IssueStatus.WORKING: {
        IssueStatus.RESOLVED: Edge(_STAFF),
        IssueStatus.CLOSED: _REJECT,
    },
    IssueStatus.RESOLVED: {
        IssueStatus.CLOSED: Edge(frozenset({Role.ADMIN, Role.STAFF})),
    },
    IssueStatus.CLOSED: {},
}

EDITABLE_FIELDS = frozenset({"title", "description", "category", "location", "image_url"})


def allowed_targets(current: IssueStatus | str) -> set[IssueStatus]:
    return set(TRANSITIONS[IssueStatus(current)])


def is_reachable(current: IssueStatus | str, target: IssueStatus | str) -> bool:
    return IssueStatus(target) in TRANSITIONS[IssueStatus(current)]


def _default_message(target: IssueStatus, actor: Actor) -> str:
    if target is IssueStatus.WORKING:
        return f"Work started by {actor.name}"
    if target is IssueStatus.RESOLVED:
        return f"Issue marked as resolved by {actor.name}"
    return f"Issue closed by {actor.name}"


async def _locked_issue(issues: IssueRepository, issue_id: int) -> Issue:
    issue = await issues.get_for_update(issue_id)
    if issue is None:
        raise NotFoundError("Issue not found")
    return issue


# ── Creation / editing / deletion ───────────────────────────────────
async def create_issue(db: AsyncSession, actor: Actor, data: dict[str, Any]) -> Issue:
    ensure_authorized(actor, Action.CREATE_ISSUE)

    issues = IssueRepository(db)
    issue = await issues.insert(
        Issue(
            **data,
            owner_email=actor.email,
            status=IssueStatus.PENDING.value,
            priority=Priority.NORMAL.value,
            upvotes=0,
        )
    )
    await timeline.append(
        db,
        issue.id,
        status=IssueStatus.PENDING,
        message=f"Issue reported by {actor.name}",
        actor=actor,
    )
    await db.commit()
    logger.info("Issue %d created by %s", issue.id, actor.email)
    return await issues.get(issue.id)


async def update_issue(
    db: AsyncSession, issue_id: int, actor: Actor, changes: dict[str, Any]
) -> Issue:
    """Edit the descriptive fields of a still-pending issue."""
    issues = IssueRepository(db)
    issue = await _locked_issue(issues, issue_id)
    ensure_authorized(actor, Action.EDIT_ISSUE, Resource.for_issue(issue))

    if issue.status != IssueStatus.PENDING.value:
        raise InvalidStateError("Only pending issues can be edited")

    changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
    if not changes:
        return await issues.get(issue_id)

    changed = await issues.update_where(
        issue_id, [Issue.status == IssueStatus.PENDING.value], **changes
    )
    if not changed:
        raise InvalidStateError("Only pending issues can be edited")

    await timeline.append(
        db,
        issue_id,
        status=None,
        message=f"Issue details updated: {', '.join(sorted(changes))}",
        actor=actor,
    )
    await db.commit()
    logger.info("Issue %d edited by %s (%s)", issue_id, actor.email, sorted(changes))
    return await issues.get(issue_id)


async def delete_issue(db: AsyncSession, issue_id: int, actor: Actor) -> Issue:
    issues = IssueRepository(db)
    issue = await _locked_issue(issues, issue_id)
    ensure_authorized(actor, Action.DELETE_ISSUE, Resource.for_issue(issue))

    if issue.status != IssueStatus.PENDING.value:
        raise InvalidStateError("Only pending issues can be deleted")

    deleted = await issues.delete_where(issue_id, [Issue.status == IssueStatus.PENDING.value])
    if not deleted:
        raise InvalidStateError("Only pending issues can be deleted")

    await db.commit()
    logger.info("Issue %d deleted by %s", issue_id, actor.email)
    return issue


# ── Assignment ──────────────────────────────────────────────────────
async def _apply_assignment(
    db: AsyncSession,
    issues: IssueRepository,
    issue: Issue,
    actor: Actor,
    staff_email: str,
    staff_name: str | None,
    note: str | None = None,
) -> Issue:
    if issue.assigned_email is not None:
        raise AlreadyAssignedError(f"Issue is already assigned to {issue.assigned_email}")
    if issue.status != IssueStatus.PENDING.value:
        raise InvalidTransitionError(
            f"Cannot assign an issue in status {issue.status}; only pending issues can be assigned"
        )

    # Assignment and the status change land in one conditional update
    changed = await issues.update_where(
        issue.id,
        [Issue.assigned_email.is_(None), Issue.status == IssueStatus.PENDING.value],
        assigned_email=staff_email,
        assigned_name=staff_name,
        status=IssueStatus.IN_PROGRESS.value,
    )
    if not changed:
        raise AlreadyAssignedError()

    await timeline.append(
        db,
        issue.id,
        status=IssueStatus.IN_PROGRESS,
        message=note or f"Issue assigned to staff {staff_name or staff_email}",
        actor=actor,
    )
    await db.commit()
    logger.info("Issue %d assigned to %s by %s", issue.id, staff_email, actor.email)
    return await issues.get(issue.id)


async def assign_issue(
    db: AsyncSession,
    issue_id: int,
    actor: Actor,
    staff_email: str,
    staff_name: str | None = None,
) -> Issue:
    """Admin assignment: any pending, unassigned issue to any staff member."""
    issues = IssueRepository(db)
    issue = await _locked_issue(issues, issue_id)
    ensure_authorized(actor, Action.ASSIGN_ISSUE, Resource.for_issue(issue))

    staff = await UserRepository(db).get_by_email(staff_email)
    if staff is None or staff.role != Role.STAFF.value or staff.is_blocked:
        raise NotFoundError("Staff member not found")

    return await _apply_assignment(
        db, issues, issue, actor, staff.email, staff_name or staff.display_name
    )


async def claim_issue(
    db: AsyncSession, issue_id: int, actor: Actor, note: str | None = None
) -> Issue:
    """Staff self-claim of a pending issue in their own district."""
    issues = IssueRepository(db)
    issue = await _locked_issue(issues, issue_id)
    ensure_authorized(actor, Action.CLAIM_ISSUE, Resource.for_issue(issue))
    note = (note or "").strip() or None
    return await _apply_assignment(
        db, issues, issue, actor, actor.email, actor.display_name, note
    )


# ── Status transitions ──────────────────────────────────────────────
async def request_transition(
    db: AsyncSession,
    issue_id: int,
    actor: Actor,
    target_status: IssueStatus | str,
    note: str | None = None,
) -> Issue:
    issues = IssueRepository(db)
    issue = await _locked_issue(issues, issue_id)
    current = IssueStatus(issue.status)
    target = IssueStatus(target_status)
    edge = TRANSITIONS[current].get(target)

    if edge is None:
        raise InvalidTransitionError(
            f"Cannot move issue from {current.value} to {target.value}"
        )

    # Staff starting a pending issue is a self-claim, authorized as such
    if edge.via_assignment and actor.role is Role.STAFF:
        return await claim_issue(db, issue_id, actor, note)

    ensure_authorized(actor, Action.CHANGE_STATUS, Resource.for_issue(issue))

    if edge.via_assignment:
        raise InvalidTransitionError(
            "An issue moves to In-Progress only by assigning it to a staff member"
        )

    if actor.role not in edge.roles:
        raise ForbiddenError(
            f"{actor.role.label} cannot move an issue from {current.value} to {target.value}"
        )

    note = (note or "").strip() or None
    if edge.requires_reason and actor.role is Role.ADMIN:
        if note is None:
            raise InvalidInputError("A reason is required to reject an issue")
        message = f"Issue rejected by admin: {note}"
    else:
        message = note or _default_message(target, actor)

    changed = await issues.update_where(
        issue_id, [Issue.status == current.value], status=target.value
    )
    if not changed:
        raise ConflictError("Issue status changed concurrently, please retry")

    await timeline.append(db, issue_id, status=target, message=message, actor=actor)
    await db.commit()
    logger.info(
        "Issue %d: %s -> %s by %s (%s)",
        issue_id,
        current.value,
        target.value,
        actor.email,
        actor.role.value,
    )
    return await issues.get(issue_id)
