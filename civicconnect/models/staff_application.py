"""
StaffApplication model — a citizen's request to become district staff.

Pending → Accepted | Rejected, both terminal.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Column, DateTime, ForeignKey, Integer, String,
                        UniqueConstraint)
from sqlalchemy.orm import relationship

from civicconnect.db.base import Base


class StaffApplication(Base):
    __tablename__ = "staff_applications"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    email: str = Column(String(320), nullable=False, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    phone: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    region: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    district: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    status: str = Column(String(20), nullable=False, default="Pending")  # type: ignore[assignment]
    # Pending | Accepted | Rejected
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    timeline = relationship(
        "StaffApplicationEvent", viewonly=True, order_by="StaffApplicationEvent.seq"
    )


class StaffApplicationEvent(Base):
    __tablename__ = "staff_application_events"
    __table_args__ = (
        UniqueConstraint("application_id", "seq", name="uq_application_event_seq"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    application_id: int = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("staff_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    seq: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    status: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    message: str = Column(String(1000), nullable=False)  # type: ignore[assignment]
    actor_email: str = Column(String(320), nullable=False)  # type: ignore[assignment]
    actor_role: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
