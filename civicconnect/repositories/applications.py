"""Staff application repository."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from civicconnect.models.staff_application import StaffApplication


class StaffApplicationRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, application_id: int) -> StaffApplication | None:
        result = await self.db.execute(
            select(StaffApplication)
            .where(StaffApplication.id == application_id)
            .options(selectinload(StaffApplication.timeline))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, application_id: int) -> StaffApplication | None:
        result = await self.db.execute(
            select(StaffApplication)
            .where(StaffApplication.id == application_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_pending_for(self, email: str) -> StaffApplication | None:
        result = await self.db.execute(
            select(StaffApplication).where(
                StaffApplication.email == email,
                StaffApplication.status == "Pending",
            )
        )
        return result.scalars().first()

    async def list(self, *, status: str | None = None, email: str | None = None) -> list[StaffApplication]:
        query = (
            select(StaffApplication)
            .options(selectinload(StaffApplication.timeline))
            .order_by(StaffApplication.created_at.desc(), StaffApplication.id.desc())
        )
        if status:
            query = query.where(StaffApplication.status == status)
        if email:
            query = query.where(StaffApplication.email == email)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def insert(self, application: StaffApplication) -> StaffApplication:
        self.db.add(application)
        await self.db.flush()
        return application

    async def update_where(self, application_id: int, expected_status: str, **values: Any) -> int:
        result = await self.db.execute(
            update(StaffApplication)
            .where(
                StaffApplication.id == application_id,
                StaffApplication.status == expected_status,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
