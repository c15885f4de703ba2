"""
Upvote ledger — at most one vote per voter, never on one's own issue.

The vote row (unique per issue and voter) and the counter increment are
written in the same transaction while the issue row is locked, so
``issues.upvotes`` always equals the number of vote rows.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.exceptions import (DuplicateVoteError, NotFoundError,
                                          SelfVoteError)
from civicconnect.models.enums import Role
from civicconnect.models.issue import Issue
from civicconnect.repositories.issues import IssueRepository
from civicconnect.services import timeline
from civicconnect.services.access import (Action, Actor, Resource,
                                          ensure_authorized)

logger = logging.getLogger(__name__)


async def upvote(db: AsyncSession, issue_id: int, actor: Actor) -> Issue:
    issues = IssueRepository(db)
    issue = await issues.get_for_update(issue_id)
    if issue is None:
        raise NotFoundError("Issue not found")
    ensure_authorized(actor, Action.UPVOTE_ISSUE, Resource.for_issue(issue))

    if actor.email == issue.owner_email:
        raise SelfVoteError()
    if await issues.has_voter(issue_id, actor.email):
        raise DuplicateVoteError()

    try:
        await issues.add_vote(issue_id, actor.email)
    except IntegrityError:
        # Lost the race against a concurrent vote by the same voter
        await db.rollback()
        raise DuplicateVoteError() from None

    await issues.update_where(issue_id, upvotes=Issue.upvotes + 1)
    await timeline.append(
        db,
        issue_id,
        status=None,
        message=f"Issue upvoted by {actor.email}",
        actor=actor,
        role=Role.CITIZEN,
    )
    await db.commit()

    issue = await issues.get(issue_id)
    logger.info("Issue %d upvoted by %s (now %d)", issue_id, actor.email, issue.upvotes)
    return issue
