"""
Audit timeline — the only code that writes timeline entries.

Entries are appended inside the caller's transaction, so they commit
together with the mutation they describe. The timestamp and sequence
number are assigned here: each entry is stamped with
``max(now, previous entry's timestamp)`` so timestamps never decrease in
append order, even if the wall clock steps backwards.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.exceptions import NotFoundError
from civicconnect.models.enums import ApplicationStatus, IssueStatus, Role
from civicconnect.models.issue import Issue, TimelineEntry
from civicconnect.models.staff_application import (StaffApplication,
                                                   StaffApplicationEvent)
from civicconnect.services.access import Actor


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Normalise a potentially-naive timestamp to UTC-aware."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


async def _next_slot(db: AsyncSession, model, owner_column, owner_id: int) -> tuple[int, datetime]:
    result = await db.execute(
        select(model.seq, model.created_at)
        .where(owner_column == owner_id)
        .order_by(model.seq.desc())
        .limit(1)
    )
    last = result.first()
    now = utcnow()
    if last is None:
        return 1, now
    last_seq, last_ts = last
    return last_seq + 1, max(now, ensure_utc(last_ts))


async def append(
    db: AsyncSession,
    issue_id: int,
    *,
    status: IssueStatus | None,
    message: str,
    actor: Actor,
    role: Role | None = None,
) -> TimelineEntry:
    """Append an entry to an issue's timeline.

    *role* overrides the role recorded for the actor (upvotes are always
    recorded as citizen actions).
    """
    if await db.get(Issue, issue_id) is None:
        raise NotFoundError("Issue not found")

    seq, stamped_at = await _next_slot(db, TimelineEntry, TimelineEntry.issue_id, issue_id)
    entry = TimelineEntry(
        issue_id=issue_id,
        seq=seq,
        status=status.value if status is not None else None,
        message=message,
        actor_email=actor.email,
        actor_role=(role or actor.role).label,
        created_at=stamped_at,
    )
    db.add(entry)
    await db.flush()
    return entry


async def append_application_event(
    db: AsyncSession,
    application_id: int,
    *,
    status: ApplicationStatus,
    message: str,
    actor: Actor,
) -> StaffApplicationEvent:
    if await db.get(StaffApplication, application_id) is None:
        raise NotFoundError("Staff application not found")

    seq, stamped_at = await _next_slot(
        db, StaffApplicationEvent, StaffApplicationEvent.application_id, application_id
    )
    event = StaffApplicationEvent(
        application_id=application_id,
        seq=seq,
        status=status.value,
        message=message,
        actor_email=actor.email,
        actor_role=actor.role.label,
        created_at=stamped_at,
    )
    db.add(event)
    await db.flush()
    return event
