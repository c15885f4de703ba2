"""
Payment reconciliation — applies a confirmed checkout session exactly once.

The checkout confirmation can arrive many times (redirect reloads,
retries, back-navigation). A ``PaymentRecord`` keyed by the provider's
session id is written in the same transaction as the mutation it pays
for; if one already exists the earlier outcome is returned unchanged.
Two racing confirmations are settled by the unique constraint on the
transaction id: the loser rolls back and reports the winner's record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.config import settings
from civicconnect.core.exceptions import (InvalidSessionError,
                                          InvalidStateError, NotFoundError)
from civicconnect.models.enums import IssueStatus, PaymentKind, Priority, Role
from civicconnect.models.issue import Issue
from civicconnect.models.payment import PaymentRecord
from civicconnect.repositories.issues import IssueRepository
from civicconnect.repositories.payments import PaymentRepository
from civicconnect.repositories.users import UserRepository, normalise_email
from civicconnect.services import timeline
from civicconnect.services.access import (Action, Actor, Resource,
                                          ensure_authorized)
from civicconnect.services.checkout import CheckoutProvider, CheckoutSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutStart:
    session_id: str
    url: str | None


@dataclass(frozen=True)
class ReconciliationOutcome:
    transaction_id: str
    kind: str
    payer_email: str
    issue_id: int | None
    amount: float
    currency: str
    payment_status: str
    already_applied: bool

    @classmethod
    def from_record(cls, record: PaymentRecord, already_applied: bool) -> ReconciliationOutcome:
        return cls(
            transaction_id=record.transaction_id,
            kind=record.kind,
            payer_email=record.payer_email,
            issue_id=record.issue_id,
            amount=record.amount,
            currency=record.currency,
            payment_status=record.payment_status,
            already_applied=already_applied,
        )


def _success_url() -> str:
    return f"{settings.SITE_DOMAIN}/payment-success?session_id={{CHECKOUT_SESSION_ID}}"


# ── Starting a checkout ─────────────────────────────────────────────
async def start_boost_checkout(
    db: AsyncSession, provider: CheckoutProvider, actor: Actor, issue_id: int
) -> CheckoutStart:
    issue = await IssueRepository(db).get(issue_id)
    if issue is None:
        raise NotFoundError("Issue not found")
    ensure_authorized(actor, Action.BOOST_ISSUE, Resource.for_issue(issue))

    if issue.status == IssueStatus.CLOSED.value:
        raise InvalidStateError("Closed issues cannot be boosted")
    if issue.priority == Priority.HIGH.value:
        raise InvalidStateError("Issue is already boosted")

    session = await provider.create_session(
        payer_email=actor.email,
        amount_minor=settings.BOOST_PRICE,
        currency=settings.PAYMENT_CURRENCY,
        product_name=f"Boost Issue: {issue.title}",
        metadata={
            "purpose": PaymentKind.BOOST.value,
            "issue_id": str(issue.id),
            "title": issue.title,
        },
        success_url=_success_url(),
        cancel_url=f"{settings.SITE_DOMAIN}/issues/{issue.id}",
    )
    return CheckoutStart(session_id=session.id, url=session.url)


async def start_subscription_checkout(
    db: AsyncSession, provider: CheckoutProvider, actor: Actor
) -> CheckoutStart:
    ensure_authorized(actor, Action.SUBSCRIBE)
    user = await UserRepository(db).get_by_email(actor.email)
    if user is None:
        raise NotFoundError("User not found")
    if user.is_premium:
        raise InvalidStateError("You already have a premium subscription")

    session = await provider.create_session(
        payer_email=actor.email,
        amount_minor=settings.SUBSCRIPTION_PRICE,
        currency=settings.PAYMENT_CURRENCY,
        product_name="Premium subscription",
        metadata={"purpose": PaymentKind.SUBSCRIPTION.value},
        success_url=_success_url(),
        cancel_url=f"{settings.SITE_DOMAIN}/profile",
    )
    return CheckoutStart(session_id=session.id, url=session.url)


# ── Reconciliation ──────────────────────────────────────────────────
def _record_for(session: CheckoutSession, kind: PaymentKind, payer: str, issue: Issue | None) -> PaymentRecord:
    return PaymentRecord(
        transaction_id=session.id,
        kind=kind.value,
        issue_id=issue.id if issue is not None else None,
        issue_title=issue.title if issue is not None else None,
        payer_email=payer,
        amount_minor=session.amount_total or 0,
        currency=session.currency or settings.PAYMENT_CURRENCY,
        payment_status=session.payment_status,
    )


async def _payer_actor(db: AsyncSession, payer: str) -> Actor:
    user = await UserRepository(db).get_by_email(payer)
    if user is None:
        return Actor(email=payer, role=Role.CITIZEN)
    return Actor.from_user(user)


async def _apply_boost(db: AsyncSession, session: CheckoutSession, payer: str) -> PaymentRecord:
    try:
        issue_id = int(session.metadata.get("issue_id", ""))
    except ValueError:
        raise InvalidSessionError("Boost session does not reference an issue") from None

    issues = IssueRepository(db)
    issue = await issues.get_for_update(issue_id)
    if issue is None:
        raise NotFoundError("Boosted issue no longer exists")

    await issues.update_where(issue_id, priority=Priority.HIGH.value)
    await timeline.append(
        db,
        issue_id,
        status=None,
        message=f"Issue boosted to High priority by {payer}",
        actor=await _payer_actor(db, payer),
    )
    return await PaymentRepository(db).insert(_record_for(session, PaymentKind.BOOST, payer, issue))


async def _apply_subscription(db: AsyncSession, session: CheckoutSession, payer: str) -> PaymentRecord:
    users = UserRepository(db)
    if await users.get_by_email_for_update(payer) is None:
        raise NotFoundError("Subscribing user no longer exists")

    await users.update_where(payer, is_premium=True)
    return await PaymentRepository(db).insert(
        _record_for(session, PaymentKind.SUBSCRIPTION, payer, None)
    )


async def reconcile(
    db: AsyncSession, provider: CheckoutProvider, session_id: str
) -> ReconciliationOutcome:
    if not session_id or not session_id.strip():
        raise InvalidSessionError("Missing payment session id")

    session = await provider.retrieve_session(session_id.strip())
    payments = PaymentRepository(db)

    existing = await payments.get_by_transaction(session.id)
    if existing is not None:
        logger.info("Payment %s already reconciled; returning prior outcome", session.id)
        return ReconciliationOutcome.from_record(existing, already_applied=True)

    if session.payment_status != "paid":
        raise InvalidSessionError("Payment has not been completed")
    if not session.payer_email:
        raise InvalidSessionError("Payment session has no payer email")
    payer = normalise_email(session.payer_email)

    purpose = session.metadata.get("purpose")
    try:
        if purpose == PaymentKind.BOOST.value:
            record = await _apply_boost(db, session, payer)
        elif purpose == PaymentKind.SUBSCRIPTION.value:
            record = await _apply_subscription(db, session, payer)
        else:
            raise InvalidSessionError("Payment session has no recognised purpose")
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await payments.get_by_transaction(session.id)
        if existing is None:
            raise
        logger.info("Payment %s reconciled concurrently; returning prior outcome", session.id)
        return ReconciliationOutcome.from_record(existing, already_applied=True)

    logger.info(
        "Payment %s reconciled: %s for %s (%s %s)",
        session.id,
        record.kind,
        payer,
        record.amount,
        record.currency,
    )
    return ReconciliationOutcome.from_record(record, already_applied=False)
