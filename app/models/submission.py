"""
Project submission model for Hackathon Hub.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class SubmissionStatus(str, Enum):
    """Submission status flag; fields stay editable after submitting."""

    DRAFT = "draft"
    SUBMITTED = "submitted"


class ProjectSubmission(Base):
    """A team's project record. One per team."""

    __tablename__ = "project_submissions"

    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("teams.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    hackathon_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("hackathons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("hackathon_categories.id", ondelete="RESTRICT"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    repo_url: Mapped[str] = mapped_column(String(500), nullable=False)
    demo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[SubmissionStatus] = mapped_column(
        SAEnum(
            SubmissionStatus,
            name="submission_status",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        default=SubmissionStatus.DRAFT,
        nullable=False,
    )
    last_submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Stamped on every submit call",
    )

    def __repr__(self) -> str:
        return f"<ProjectSubmission(team={self.team_id}, status={self.status})>"
