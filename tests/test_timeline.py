"""
Audit timeline tests — entries are append-only, numbered in order and
stamped with timestamps that never go backwards.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.exceptions import InvalidTransitionError, NotFoundError
from civicconnect.models.enums import IssueStatus
from civicconnect.models.issue import TimelineEntry
from civicconnect.services import lifecycle, timeline

ISSUE = {
    "title": "Overflowing drain",
    "description": "Drain overflows after every rain.",
    "category": "Drainage",
    "district": "Dhaka",
}


async def _entries(db: AsyncSession, issue_id: int) -> list[TimelineEntry]:
    result = await db.execute(
        select(TimelineEntry)
        .where(TimelineEntry.issue_id == issue_id)
        .order_by(TimelineEntry.seq)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_timestamps_never_decrease_when_clock_steps_back(
    db_session: AsyncSession, citizen, monkeypatch
):
    issue = await lifecycle.create_issue(db_session, citizen, dict(ISSUE))
    first = (await _entries(db_session, issue.id))[0]

    past = timeline.ensure_utc(first.created_at) - timedelta(hours=1)
    monkeypatch.setattr(timeline, "utcnow", lambda: past)

    await timeline.append(
        db_session, issue.id, status=None, message="Clock went backwards", actor=citizen
    )
    await db_session.commit()

    entries = await _entries(db_session, issue.id)
    assert [e.seq for e in entries] == [1, 2]
    stamps = [timeline.ensure_utc(e.created_at) for e in entries]
    assert stamps[1] >= stamps[0]


@pytest.mark.asyncio
async def test_entries_follow_mutation_order(db_session: AsyncSession, citizen, admin, staff):
    issue = await lifecycle.create_issue(db_session, citizen, dict(ISSUE))
    await lifecycle.assign_issue(db_session, issue.id, admin, staff.email)
    await lifecycle.request_transition(db_session, issue.id, staff, IssueStatus.WORKING)

    entries = await _entries(db_session, issue.id)
    assert [e.seq for e in entries] == [1, 2, 3]
    assert [e.status for e in entries] == ["Pending", "In-Progress", "Working"]
    assert [e.actor_role for e in entries] == ["Citizen", "Admin", "Staff"]
    stamps = [timeline.ensure_utc(e.created_at) for e in entries]
    assert stamps == sorted(stamps)


@pytest.mark.asyncio
async def test_failed_transition_leaves_timeline_untouched(
    db_session: AsyncSession, citizen, staff
):
    issue = await lifecycle.create_issue(db_session, citizen, dict(ISSUE))
    issue_id = issue.id
    with pytest.raises(InvalidTransitionError):
        await lifecycle.request_transition(db_session, issue_id, staff, IssueStatus.RESOLVED)
    await db_session.rollback()

    assert len(await _entries(db_session, issue_id)) == 1


@pytest.mark.asyncio
async def test_append_to_missing_issue(db_session: AsyncSession, citizen):
    with pytest.raises(NotFoundError):
        await timeline.append(
            db_session, 12345, status=None, message="orphan", actor=citizen
        )
