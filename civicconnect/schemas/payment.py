"""Pydantic schemas for checkout sessions, reconciliation and payment history."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class BoostCheckoutRequest(BaseModel):
    issue_id: int


class CheckoutSessionResponse(BaseModel):
    session_id: str
    url: str | None


class ReconciliationResponse(BaseModel):
    success: bool = True
    status: str  # applied | already_applied
    transaction_id: str
    kind: str
    payer_email: str
    issue_id: int | None
    amount: float
    currency: str
    payment_status: str
    already_applied: bool


class PaymentRead(BaseModel):
    id: int
    transaction_id: str
    kind: str
    issue_id: int | None
    issue_title: str | None
    payer_email: str
    amount: float
    currency: str
    payment_status: str
    created_at: datetime | None

    model_config = {"from_attributes": True}
