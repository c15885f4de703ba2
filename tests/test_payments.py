"""
Payment Reconciliation Tests.

Boosts and subscriptions are applied exactly once per provider
transaction, however often confirmation is replayed.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.models.payment import PaymentRecord
from civicconnect.models.user import User
from conftest import auth_headers


async def _payment_count(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(PaymentRecord.id)))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_boost_replay_applies_once(
    async_client: AsyncClient, db_session: AsyncSession, checkout, issue_id, citizen
):
    checkout.add_paid_session(
        "tx-1",
        citizen.email,
        {"purpose": "boost", "issue_id": str(issue_id), "title": "Broken streetlight"},
    )

    first = await async_client.get("/api/v1/payments/confirm", params={"session_id": "tx-1"})
    assert first.status_code == 200, first.text
    assert first.json()["status"] == "applied"
    assert first.json()["already_applied"] is False

    issue = (await async_client.get(f"/api/v1/issues/{issue_id}")).json()
    assert issue["priority"] == "High"
    entries_after_first = len(issue["timeline"])
    assert entries_after_first == 2
    assert issue["timeline"][-1]["status"] is None

    second = await async_client.get("/api/v1/payments/confirm", params={"session_id": "tx-1"})
    assert second.status_code == 200
    assert second.json()["status"] == "already_applied"
    assert second.json()["transaction_id"] == "tx-1"
    assert second.json()["amount"] == first.json()["amount"]

    issue = (await async_client.get(f"/api/v1/issues/{issue_id}")).json()
    assert len(issue["timeline"]) == entries_after_first
    assert await _payment_count(db_session) == 1


@pytest.mark.asyncio
async def test_boost_checkout_then_confirm(
    async_client: AsyncClient, checkout, issue_id, citizen
):
    resp = await async_client.post(
        "/api/v1/payments/boost-session",
        json={"issue_id": issue_id},
        headers=auth_headers(citizen.email),
    )
    assert resp.status_code == 200, resp.text
    session_id = resp.json()["session_id"]
    assert resp.json()["url"]
    assert checkout.created[0]["amount_minor"] == 10000
    assert checkout.created[0]["metadata"]["issue_id"] == str(issue_id)

    # Unpaid sessions are not applied
    resp = await async_client.get("/api/v1/payments/confirm", params={"session_id": session_id})
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_session"

    checkout.add_paid_session(
        session_id, citizen.email, checkout.sessions[session_id].metadata
    )
    resp = await async_client.get("/api/v1/payments/confirm", params={"session_id": session_id})
    assert resp.status_code == 200
    assert resp.json()["kind"] == "boost"
    assert resp.json()["issue_id"] == issue_id


@pytest.mark.asyncio
async def test_boosted_issue_cannot_be_boosted_again(
    async_client: AsyncClient, checkout, issue_id, citizen
):
    checkout.add_paid_session("tx-boost", citizen.email, {"purpose": "boost", "issue_id": str(issue_id)})
    await async_client.get("/api/v1/payments/confirm", params={"session_id": "tx-boost"})

    resp = await async_client.post(
        "/api/v1/payments/boost-session",
        json={"issue_id": issue_id},
        headers=auth_headers(citizen.email),
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "invalid_state"


@pytest.mark.asyncio
async def test_boost_missing_issue(async_client: AsyncClient, checkout, citizen):
    resp = await async_client.post(
        "/api/v1/payments/boost-session",
        json={"issue_id": 999},
        headers=auth_headers(citizen.email),
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_unknown_session_is_invalid(async_client: AsyncClient, checkout):
    resp = await async_client.get("/api/v1/payments/confirm", params={"session_id": "nope"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_session"


@pytest.mark.asyncio
async def test_subscription_marks_user_premium_once(
    async_client: AsyncClient, db_session: AsyncSession, checkout, citizen
):
    resp = await async_client.post(
        "/api/v1/payments/subscription-session", headers=auth_headers(citizen.email)
    )
    assert resp.status_code == 200, resp.text
    assert checkout.created[0]["amount_minor"] == 100000

    checkout.add_paid_session(
        "tx-sub", citizen.email, {"purpose": "subscription"}, amount_total=100000
    )
    for expected in ("applied", "already_applied"):
        resp = await async_client.get("/api/v1/payments/confirm", params={"session_id": "tx-sub"})
        assert resp.status_code == 200
        assert resp.json()["status"] == expected
        assert resp.json()["amount"] == 1000.0

    user = (
        await db_session.execute(select(User).where(User.email == citizen.email))
    ).scalar_one()
    assert user.is_premium is True
    assert await _payment_count(db_session) == 1

    resp = await async_client.post(
        "/api/v1/payments/subscription-session", headers=auth_headers(citizen.email)
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_payment_history(async_client: AsyncClient, checkout, issue_id, citizen, admin):
    checkout.add_paid_session("tx-h", citizen.email, {"purpose": "boost", "issue_id": str(issue_id)})
    await async_client.get("/api/v1/payments/confirm", params={"session_id": "tx-h"})

    mine = await async_client.get("/api/v1/payments/mine", headers=auth_headers(citizen.email))
    assert [p["transaction_id"] for p in mine.json()] == ["tx-h"]

    resp = await async_client.get("/api/v1/payments", headers=auth_headers(citizen.email))
    assert resp.status_code == 403

    resp = await async_client.get("/api/v1/payments", headers=auth_headers(admin.email))
    assert resp.status_code == 200
    assert resp.json()[0]["issue_title"] == "Broken streetlight"


@pytest.mark.asyncio
async def test_boost_for_deleted_issue_is_not_recorded(
    async_client: AsyncClient, db_session: AsyncSession, checkout, issue_id, citizen
):
    resp = await async_client.post(
        "/api/v1/payments/boost-session",
        json={"issue_id": issue_id},
        headers=auth_headers(citizen.email),
    )
    session_id = resp.json()["session_id"]

    resp = await async_client.delete(
        f"/api/v1/issues/{issue_id}", headers=auth_headers(citizen.email)
    )
    assert resp.status_code == 200, resp.text

    checkout.add_paid_session(
        session_id, citizen.email, checkout.sessions[session_id].metadata
    )
    resp = await async_client.get("/api/v1/payments/confirm", params={"session_id": session_id})
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"
    assert await _payment_count(db_session) == 0

    user = (
        await db_session.execute(select(User).where(User.email == citizen.email))
    ).scalar_one()
    assert user.is_premium is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "metadata",
    [
        {"purpose": "boost"},
        {"purpose": "boost", "issue_id": "abc"},
        {"purpose": "donation"},
        {},
    ],
)
async def test_session_without_usable_metadata_is_invalid(
    async_client: AsyncClient, db_session: AsyncSession, checkout, citizen, metadata
):
    checkout.add_paid_session("tx-bad", citizen.email, metadata)
    resp = await async_client.get("/api/v1/payments/confirm", params={"session_id": "tx-bad"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_session"
    assert await _payment_count(db_session) == 0
