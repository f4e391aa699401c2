"""
Hackathon, category, judging criterion and participant models for Hackathon Hub.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, utcnow


class HackathonStatus(str, Enum):
    """Lifecycle status of a hackathon. Transitions are admin-driven."""

    DRAFT = "DRAFT"
    OPEN = "OPEN"
    STARTED = "STARTED"
    FINISHED = "FINISHED"
    CANCELED = "CANCELED"


class Hackathon(Base):
    """A timeboxed competitive event."""

    __tablename__ = "hackathons"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        index=True,
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[HackathonStatus] = mapped_column(
        SAEnum(HackathonStatus, name="hackathon_status"),
        default=HackathonStatus.DRAFT,
        nullable=False,
        index=True,
    )

    # Timing
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    registration_open_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    registration_close_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="At most one hackathon is active at a time",
    )

    def __repr__(self) -> str:
        return f"<Hackathon(id={self.id}, slug={self.slug}, status={self.status})>"


class HackathonCategory(Base):
    """Submission category (track) of a hackathon."""

    __tablename__ = "hackathon_categories"

    hackathon_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("hackathons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<HackathonCategory(id={self.id}, name={self.name})>"


class JudgingCriterion(Base):
    """Weighted scoring dimension of a hackathon."""

    __tablename__ = "judging_criteria"

    hackathon_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("hackathons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    weight: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Percentage 1-100; criteria are not required to sum to 100",
    )
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<JudgingCriterion(id={self.id}, name={self.name}, weight={self.weight})>"


class HackathonParticipant(Base):
    """Registration of a user for a hackathon."""

    __tablename__ = "hackathon_participants"

    hackathon_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("hackathons.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("hackathon_id", "user_id", name="uix_hackathon_participant"),
        Index("ix_hackathon_participants_user", "user_id", "registered_at"),
    )

    def __repr__(self) -> str:
        return f"<HackathonParticipant(hackathon={self.hackathon_id}, user={self.user_id})>"
