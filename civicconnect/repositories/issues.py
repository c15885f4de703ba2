"""
Issue repository — every read and write of the ``issues`` table and its
vote rows goes through here.

Mutations are conditional (``update_where`` / ``delete_where`` return the
number of affected rows) so callers can compare-and-set instead of
blindly overwriting.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from civicconnect.models.issue import Issue, IssueVote, TimelineEntry


class IssueRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, issue_id: int) -> Issue | None:
        """Fetch an issue with its votes and timeline loaded."""
        result = await self.db.execute(
            select(Issue)
            .where(Issue.id == issue_id)
            .options(selectinload(Issue.votes), selectinload(Issue.timeline))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, issue_id: int) -> Issue | None:
        """Fetch and row-lock an issue for the rest of the transaction."""
        result = await self.db.execute(
            select(Issue)
            .where(Issue.id == issue_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list(
        self,
        *,
        status: str | None = None,
        category: str | None = None,
        district: str | None = None,
        owner_email: str | None = None,
        search: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Issue]:
        query = (
            select(Issue)
            .options(selectinload(Issue.votes), selectinload(Issue.timeline))
            # Boosted issues first, newest first within a priority
            .order_by((Issue.priority == "High").desc(), Issue.created_at.desc(), Issue.id.desc())
            .offset(skip)
            .limit(limit)
        )
        if status:
            query = query.where(Issue.status == status)
        if category:
            query = query.where(Issue.category == category)
        if district:
            query = query.where(Issue.district == district)
        if owner_email:
            query = query.where(Issue.owner_email == owner_email)
        if search:
            # Escape SQL LIKE metacharacters to prevent wildcard injection
            safe_search = search.replace("%", r"\%").replace("_", r"\_")
            pattern = f"%{safe_search}%"
            query = query.where(
                or_(
                    Issue.title.ilike(pattern, escape="\\"),
                    Issue.category.ilike(pattern, escape="\\"),
                    Issue.location.ilike(pattern, escape="\\"),
                )
            )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def staff_worklist(self, staff_email: str, district: str | None) -> list[Issue]:
        """Issues assigned to *staff_email* plus unassigned pending issues in *district*."""
        criteria = [Issue.assigned_email == staff_email]
        if district is not None:
            criteria.append(
                (Issue.status == "Pending")
                & Issue.assigned_email.is_(None)
                & (Issue.district == district)
            )
        result = await self.db.execute(
            select(Issue)
            .where(or_(*criteria))
            .options(selectinload(Issue.votes), selectinload(Issue.timeline))
            .order_by((Issue.priority == "High").desc(), Issue.created_at.asc(), Issue.id.asc())
        )
        return list(result.scalars().all())

    async def insert(self, issue: Issue) -> Issue:
        self.db.add(issue)
        await self.db.flush()
        return issue

    async def update_where(
        self, issue_id: int, conditions: Sequence[Any] = (), **values: Any
    ) -> int:
        """Apply *values* to the issue only if every condition holds; return rows changed."""
        result = await self.db.execute(
            update(Issue)
            .where(Issue.id == issue_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete_where(self, issue_id: int, conditions: Sequence[Any] = ()) -> int:
        result = await self.db.execute(
            delete(Issue)
            .where(Issue.id == issue_id, *conditions)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            # Children go explicitly; SQLite does not enforce ON DELETE CASCADE by default
            await self.db.execute(delete(IssueVote).where(IssueVote.issue_id == issue_id))
            await self.db.execute(delete(TimelineEntry).where(TimelineEntry.issue_id == issue_id))
        return result.rowcount

    # ── Votes ───────────────────────────────────────────────────────
    async def has_voter(self, issue_id: int, voter_email: str) -> bool:
        result = await self.db.execute(
            select(IssueVote.id).where(
                IssueVote.issue_id == issue_id, IssueVote.voter_email == voter_email
            )
        )
        return result.first() is not None

    async def add_vote(self, issue_id: int, voter_email: str) -> IssueVote:
        """Insert a vote row; raises ``IntegrityError`` on a duplicate voter."""
        vote = IssueVote(issue_id=issue_id, voter_email=voter_email)
        self.db.add(vote)
        await self.db.flush()
        return vote

    # ── Counts ──────────────────────────────────────────────────────
    async def count_by(self, column: Any) -> dict[str, int]:
        result = await self.db.execute(select(column, func.count(Issue.id)).group_by(column))
        return {key: count for key, count in result.all()}
