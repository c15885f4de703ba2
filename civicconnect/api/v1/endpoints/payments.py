"""
Payment endpoints — start a checkout, confirm it, and payment history.

``GET /payments/confirm`` is what the checkout success page calls with
the provider's session id. It is safe to call any number of times.
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.api.v1.deps import (get_checkout_provider, get_current_actor,
                                      get_db, require_admin)
from civicconnect.core.rate_limit import WRITE_LIMIT, limiter
from civicconnect.models.payment import PaymentRecord
from civicconnect.repositories.payments import PaymentRepository
from civicconnect.schemas.payment import (BoostCheckoutRequest,
                                          CheckoutSessionResponse,
                                          PaymentRead,
                                          ReconciliationResponse)
from civicconnect.services import payments
from civicconnect.services.access import Actor
from civicconnect.services.checkout import CheckoutProvider

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/boost-session", response_model=CheckoutSessionResponse)
@limiter.limit(WRITE_LIMIT)
async def create_boost_session(
    request: Request,
    body: BoostCheckoutRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    provider: CheckoutProvider = Depends(get_checkout_provider),
) -> CheckoutSessionResponse:
    start = await payments.start_boost_checkout(db, provider, actor, body.issue_id)
    return CheckoutSessionResponse(session_id=start.session_id, url=start.url)


@router.post("/subscription-session", response_model=CheckoutSessionResponse)
@limiter.limit(WRITE_LIMIT)
async def create_subscription_session(
    request: Request,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    provider: CheckoutProvider = Depends(get_checkout_provider),
) -> CheckoutSessionResponse:
    start = await payments.start_subscription_checkout(db, provider, actor)
    return CheckoutSessionResponse(session_id=start.session_id, url=start.url)


@router.get("/confirm", response_model=ReconciliationResponse)
@limiter.limit(WRITE_LIMIT)
async def confirm_payment(
    request: Request,
    session_id: str = Query(..., min_length=1, max_length=255),
    db: AsyncSession = Depends(get_db),
    provider: CheckoutProvider = Depends(get_checkout_provider),
) -> ReconciliationResponse:
    outcome = await payments.reconcile(db, provider, session_id)
    return ReconciliationResponse(
        status="already_applied" if outcome.already_applied else "applied",
        transaction_id=outcome.transaction_id,
        kind=outcome.kind,
        payer_email=outcome.payer_email,
        issue_id=outcome.issue_id,
        amount=outcome.amount,
        currency=outcome.currency,
        payment_status=outcome.payment_status,
        already_applied=outcome.already_applied,
    )


@router.get("/mine", response_model=list[PaymentRead])
async def my_payments(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[PaymentRecord]:
    return await PaymentRepository(db).list(payer_email=actor.email, limit=200)


@router.get("", response_model=list[PaymentRead])
async def all_payments(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    _admin: Actor = Depends(require_admin),
) -> list[PaymentRecord]:
    return await PaymentRepository(db).list(skip=skip, limit=limit)
