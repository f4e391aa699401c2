"""
Hackathon Hub Models Package

All SQLAlchemy models for the Hackathon Hub platform.
"""

from app.models.base import Base
from app.models.hackathon import (
    Hackathon,
    HackathonCategory,
    HackathonParticipant,
    HackathonStatus,
    JudgingCriterion,
)
from app.models.judging import JudgeAssignment, JudgingScore
from app.models.submission import ProjectSubmission, SubmissionStatus
from app.models.team import Team, TeamInvite, TeamInviteStatus, TeamMember
from app.models.user import Profile, User, UserRole

__all__ = [
    # Base
    "Base",
    # Users
    "User",
    "UserRole",
    "Profile",
    # Hackathons
    "Hackathon",
    "HackathonStatus",
    "HackathonCategory",
    "JudgingCriterion",
    "HackathonParticipant",
    # Teams
    "Team",
    "TeamMember",
    "TeamInvite",
    "TeamInviteStatus",
    # Submissions
    "ProjectSubmission",
    "SubmissionStatus",
    # Judging
    "JudgeAssignment",
    "JudgingScore",
]
