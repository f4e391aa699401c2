"""
Judge assignment and judging score models for Hackathon Hub.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, utcnow


class JudgeAssignment(Base):
    """Which judge evaluates which team in a hackathon."""

    __tablename__ = "judge_assignments"

    hackathon_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("hackathons.id", ondelete="CASCADE"),
        nullable=False,
    )
    judge_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "hackathon_id", "judge_id", "team_id", name="uix_judge_assignment"
        ),
        Index("ix_judge_assignments_judge", "judge_id", "hackathon_id"),
    )

    def __repr__(self) -> str:
        return f"<JudgeAssignment(judge={self.judge_id}, team={self.team_id})>"


class JudgingScore(Base):
    """A judge's score for one team on one criterion. Last write wins."""

    __tablename__ = "judging_scores"

    hackathon_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("hackathons.id", ondelete="CASCADE"),
        nullable=False,
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    judge_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    criterion_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("judging_criteria.id", ondelete="CASCADE"),
        nullable=False,
    )
    score: Mapped[float] = mapped_column(Float, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "hackathon_id",
            "team_id",
            "judge_id",
            "criterion_id",
            name="uix_judging_score",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<JudgingScore(team={self.team_id}, judge={self.judge_id}, "
            f"criterion={self.criterion_id}, score={self.score})>"
        )
