"""User lookups. Emails are always compared lower-cased."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.models.user import User


def normalise_email(email: str) -> str:
    return email.strip().lower()


class UserRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(
            select(User)
            .where(User.email == normalise_email(email))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_email_for_update(self, email: str) -> User | None:
        result = await self.db.execute(
            select(User)
            .where(User.email == normalise_email(email))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def search(self, text: str | None = None, *, role: str | None = None, limit: int = 20) -> list[User]:
        query = select(User).order_by(User.created_at.desc(), User.id.desc()).limit(limit)
        if role:
            query = query.where(User.role == role)
        if text:
            safe = text.replace("%", r"\%").replace("_", r"\_")
            pattern = f"%{safe}%"
            query = query.where(
                or_(
                    User.display_name.ilike(pattern, escape="\\"),
                    User.email.ilike(pattern, escape="\\"),
                )
            )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def insert(self, user: User) -> User:
        user.email = normalise_email(user.email)
        self.db.add(user)
        await self.db.flush()
        return user

    async def update_where(self, email: str, **values: Any) -> int:
        result = await self.db.execute(
            update(User)
            .where(User.email == normalise_email(email))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def count_by_role(self) -> dict[str, int]:
        result = await self.db.execute(select(User.role, func.count(User.id)).group_by(User.role))
        return {role: count for role, count in result.all()}
