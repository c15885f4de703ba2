"""
User model — identity, role and account flags.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from civicconnect.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    display_name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    photo_url: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="citizen",
        server_default="citizen",
    )  # citizen | staff | admin
    region: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    district: str | None = Column(String(100), nullable=True, index=True)  # type: ignore[assignment]
    is_blocked: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    is_premium: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
