"""
PaymentRecord model — one row per reconciled checkout session.

The unique ``transaction_id`` is the idempotency key: a row existing
for a transaction proves reconciliation already ran.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from civicconnect.db.base import Base


class PaymentRecord(Base):
    __tablename__ = "payments"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    transaction_id: str = Column(String(255), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    kind: str = Column(String(20), nullable=False)  # type: ignore[assignment]  # boost | subscription
    issue_id: int | None = Column(Integer, nullable=True, index=True)  # type: ignore[assignment]
    issue_title: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    payer_email: str = Column(String(320), nullable=False, index=True)  # type: ignore[assignment]
    amount_minor: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    currency: str = Column(String(10), nullable=False)  # type: ignore[assignment]
    payment_status: str = Column(String(30), nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def amount(self) -> float:
        return round(self.amount_minor / 100, 2)
