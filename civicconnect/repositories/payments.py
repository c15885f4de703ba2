"""Insert-only access to the ``payments`` table."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.models.payment import PaymentRecord


class PaymentRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_transaction(self, transaction_id: str) -> PaymentRecord | None:
        result = await self.db.execute(
            select(PaymentRecord).where(PaymentRecord.transaction_id == transaction_id)
        )
        return result.scalar_one_or_none()

    async def insert(self, record: PaymentRecord) -> PaymentRecord:
        """Insert a record; raises ``IntegrityError`` if the transaction id exists."""
        self.db.add(record)
        await self.db.flush()
        return record

    async def list(
        self, *, payer_email: str | None = None, skip: int = 0, limit: int = 50
    ) -> list[PaymentRecord]:
        query = (
            select(PaymentRecord)
            .order_by(PaymentRecord.created_at.desc(), PaymentRecord.id.desc())
            .offset(skip)
            .limit(limit)
        )
        if payer_email:
            query = query.where(PaymentRecord.payer_email == payer_email)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def totals_by_kind(self) -> dict[str, tuple[int, int]]:
        """``{kind: (count, amount_minor_sum)}``."""
        result = await self.db.execute(
            select(
                PaymentRecord.kind,
                func.count(PaymentRecord.id),
                func.coalesce(func.sum(PaymentRecord.amount_minor), 0),
            ).group_by(PaymentRecord.kind)
        )
        return {kind: (count, int(total)) for kind, count, total in result.all()}
