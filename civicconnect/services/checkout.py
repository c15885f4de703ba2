"""
External checkout provider (Stripe Checkout).

The engine only needs two operations: create a hosted checkout session
and retrieve one by id. ``CheckoutProvider`` is the seam; tests swap in
an in-memory implementation through the FastAPI dependency.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

import stripe

from civicconnect.core.exceptions import InvalidSessionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    payment_status: str  # paid | unpaid | no_payment_required
    url: str | None = None
    payer_email: str | None = None
    amount_total: int | None = None  # minor units
    currency: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


class CheckoutProvider(Protocol):
    async def create_session(
        self,
        *,
        payer_email: str,
        amount_minor: int,
        currency: str,
        product_name: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession: ...

    async def retrieve_session(self, session_id: str) -> CheckoutSession: ...


def _from_stripe(session) -> CheckoutSession:
    payer = getattr(session, "customer_email", None)
    details = getattr(session, "customer_details", None)
    if not payer and details is not None:
        payer = getattr(details, "email", None)
    metadata = getattr(session, "metadata", None) or {}
    if hasattr(metadata, "to_dict"):
        metadata = metadata.to_dict()
    return CheckoutSession(
        id=session.id,
        payment_status=getattr(session, "payment_status", None) or "unpaid",
        url=getattr(session, "url", None),
        payer_email=payer,
        amount_total=getattr(session, "amount_total", None),
        currency=getattr(session, "currency", None),
        metadata={k: str(v) for k, v in dict(metadata).items()},
    )


class StripeCheckoutProvider:
    def __init__(self, api_key: str) -> None:
        self._client = stripe.StripeClient(api_key, http_client=stripe.HTTPXClient())

    async def create_session(
        self,
        *,
        payer_email: str,
        amount_minor: int,
        currency: str,
        product_name: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        session = await self._client.checkout.sessions.create_async(
            params={
                "mode": "payment",
                "line_items": [
                    {
                        "price_data": {
                            "currency": currency,
                            "unit_amount": amount_minor,
                            "product_data": {"name": product_name},
                        },
                        "quantity": 1,
                    }
                ],
                "metadata": metadata,
                "customer_email": payer_email,
                "success_url": success_url,
                "cancel_url": cancel_url,
            }
        )
        logger.info("Checkout session %s created for %s", session.id, payer_email)
        return _from_stripe(session)

    async def retrieve_session(self, session_id: str) -> CheckoutSession:
        try:
            session = await self._client.checkout.sessions.retrieve_async(session_id)
        except stripe.InvalidRequestError as exc:
            logger.warning("Unknown checkout session %s: %s", session_id, exc)
            raise InvalidSessionError("Payment session not found") from exc
        return _from_stripe(session)
