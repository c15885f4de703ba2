"""Small response schemas shared across routers."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    database: str
    version: str


class PaymentTotals(BaseModel):
    count: int
    amount: float


class StatsResponse(BaseModel):
    issues_total: int
    issues_by_status: dict[str, int]
    issues_by_priority: dict[str, int]
    users_by_role: dict[str, int]
    payments_by_kind: dict[str, PaymentTotals]
