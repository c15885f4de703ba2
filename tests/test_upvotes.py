"""
Upvote Ledger Tests.

One vote per voter, none on your own issue, and the counter always
equals the number of recorded voters.
"""

import asyncio

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.models.issue import Issue, IssueVote
from conftest import auth_headers


async def _vote_rows(db: AsyncSession, issue_id: int) -> int:
    result = await db.execute(
        select(func.count(IssueVote.id)).where(IssueVote.issue_id == issue_id)
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_upvote_then_duplicate_then_self(
    async_client: AsyncClient, issue_id, citizen, create_user
):
    voter = await create_user("voter@example.com")

    resp = await async_client.patch(
        f"/api/v1/issues/{issue_id}/upvote", headers=auth_headers(voter.email)
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["upvotes"] == 1

    resp = await async_client.get(f"/api/v1/issues/{issue_id}")
    body = resp.json()
    assert body["upvotes"] == 1
    assert body["voter_emails"] == [voter.email]
    assert body["timeline"][-1]["actor_role"] == "Citizen"
    assert body["timeline"][-1]["status"] is None

    resp = await async_client.patch(
        f"/api/v1/issues/{issue_id}/upvote", headers=auth_headers(voter.email)
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "duplicate_vote"

    resp = await async_client.patch(
        f"/api/v1/issues/{issue_id}/upvote", headers=auth_headers(citizen.email)
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "self_vote"

    resp = await async_client.get(f"/api/v1/issues/{issue_id}")
    assert resp.json()["upvotes"] == 1
    assert len(resp.json()["timeline"]) == 2


@pytest.mark.asyncio
async def test_staff_upvote_is_recorded_as_citizen_action(
    async_client: AsyncClient, issue_id, staff
):
    resp = await async_client.patch(
        f"/api/v1/issues/{issue_id}/upvote", headers=auth_headers(staff.email)
    )
    assert resp.status_code == 200
    resp = await async_client.get(f"/api/v1/issues/{issue_id}")
    assert resp.json()["timeline"][-1]["actor_role"] == "Citizen"


@pytest.mark.asyncio
async def test_upvote_missing_issue(async_client: AsyncClient, citizen):
    resp = await async_client.patch(
        "/api/v1/issues/4242/upvote", headers=auth_headers(citizen.email)
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_count_matches_voters(
    async_client: AsyncClient, db_session: AsyncSession, issue_id, create_user
):
    voters = [await create_user(f"voter{i}@example.com") for i in range(5)]
    for voter in voters:
        resp = await async_client.patch(
            f"/api/v1/issues/{issue_id}/upvote", headers=auth_headers(voter.email)
        )
        assert resp.status_code == 200

    issue = await db_session.get(Issue, issue_id)
    assert issue.upvotes == 5
    assert await _vote_rows(db_session, issue_id) == 5


@pytest.mark.asyncio
async def test_concurrent_duplicate_upvotes(
    async_client: AsyncClient, db_session: AsyncSession, issue_id, create_user
):
    """The same voter firing several upvotes at once gets exactly one counted."""
    voter = await create_user("eager@example.com")
    headers = auth_headers(voter.email)

    async def vote():
        return await async_client.patch(f"/api/v1/issues/{issue_id}/upvote", headers=headers)

    if "sqlite" in str(db_session.bind.url):
        # SQLite has no row locks; serialise the calls
        responses = [await vote() for _ in range(3)]
    else:
        responses = await asyncio.gather(*(vote() for _ in range(3)))

    codes = sorted(r.status_code for r in responses)
    assert codes == [200, 400, 400]

    issue = await db_session.get(Issue, issue_id)
    assert issue.upvotes == 1
    assert await _vote_rows(db_session, issue_id) == 1


@pytest.mark.asyncio
async def test_concurrent_upvotes_from_distinct_voters(
    async_client: AsyncClient, db_session: AsyncSession, issue_id, create_user
):
    """Simultaneous votes from different voters are all counted."""
    voters = [await create_user(f"crowd{i}@example.com") for i in range(4)]

    async def vote(email: str):
        return await async_client.patch(
            f"/api/v1/issues/{issue_id}/upvote", headers=auth_headers(email)
        )

    if "sqlite" in str(db_session.bind.url):
        responses = [await vote(v.email) for v in voters]
    else:
        responses = await asyncio.gather(*(vote(v.email) for v in voters))

    assert [r.status_code for r in responses] == [200] * 4

    issue = await db_session.get(Issue, issue_id)
    assert issue.upvotes == 4
    assert await _vote_rows(db_session, issue_id) == 4

    body = (await async_client.get(f"/api/v1/issues/{issue_id}")).json()
    assert sorted(body["voter_emails"]) == sorted(v.email for v in voters)
    assert len(body["timeline"]) == 1 + 4
    assert [e["seq"] for e in body["timeline"]] == list(range(1, 6))
