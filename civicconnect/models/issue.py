"""
Issue, vote and timeline models — core business domain.

``Issue.votes`` and ``Issue.timeline`` are read-only views: votes are
written by the upvote ledger and timeline entries only by
``civicconnect.services.timeline.append``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (CheckConstraint, Column, DateTime, ForeignKey, Index,
                        Integer, String, Text, UniqueConstraint)
from sqlalchemy.orm import relationship

from civicconnect.db.base import Base


class Issue(Base):
    __tablename__ = "issues"
    __table_args__ = (
        CheckConstraint("upvotes >= 0", name="ck_issue_upvotes_non_negative"),
        Index("ix_issue_status_district", "status", "district"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    title: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    description: str = Column(Text, nullable=False)  # type: ignore[assignment]
    category: str = Column(String(100), nullable=False, index=True)  # type: ignore[assignment]
    region: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    district: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    location: str | None = Column(String(300), nullable=True)  # type: ignore[assignment]
    image_url: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    owner_email: str = Column(String(320), nullable=False, index=True)  # type: ignore[assignment]
    status: str = Column(String(20), nullable=False, default="Pending")  # type: ignore[assignment]
    # Pending | In-Progress | Working | Resolved | Closed
    priority: str = Column(String(10), nullable=False, default="Normal")  # type: ignore[assignment]
    upvotes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    assigned_email: str | None = Column(String(320), nullable=True, index=True)  # type: ignore[assignment]
    assigned_name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at: datetime | None = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        nullable=True,
        onupdate=lambda: datetime.now(timezone.utc),
    )

    votes = relationship("IssueVote", viewonly=True, order_by="IssueVote.id")
    timeline = relationship("TimelineEntry", viewonly=True, order_by="TimelineEntry.seq")

    @property
    def voter_emails(self) -> list[str]:
        return [v.voter_email for v in self.votes]


class IssueVote(Base):
    __tablename__ = "issue_votes"
    __table_args__ = (
        UniqueConstraint("issue_id", "voter_email", name="uq_vote_issue_voter"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    issue_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    voter_email: str = Column(String(320), nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )


class TimelineEntry(Base):
    __tablename__ = "timeline_entries"
    __table_args__ = (
        UniqueConstraint("issue_id", "seq", name="uq_timeline_issue_seq"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    issue_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    seq: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    status: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]  # null for non-status events
    message: str = Column(String(1000), nullable=False)  # type: ignore[assignment]
    actor_email: str = Column(String(320), nullable=False)  # type: ignore[assignment]
    actor_role: str = Column(String(20), nullable=False)  # type: ignore[assignment]  # Citizen | Staff | Admin
    created_at: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
