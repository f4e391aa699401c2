"""
Shared helpers and response models for the Hackathon Hub API routers.
"""

import uuid
from datetime import datetime
from typing import TypeVar

from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict

from app.models.hackathon import HackathonStatus
from app.models.submission import SubmissionStatus
from app.models.team import TeamInviteStatus
from app.models.user import User, UserRole
from app.services.invite_service import InviteView
from app.services.result import ServiceResult
from app.services.submission_service import SubmissionView
from app.services.team_service import TeamMemberView

T = TypeVar("T")


def unwrap(result: ServiceResult[T]) -> T | None:
    """
    Return the result's data or raise the matching HTTP error.

    The error body is ``{"detail": {"code": ..., "message": ...}}``.
    """
    if result.error is not None:
        raise HTTPException(
            status_code=result.error.status_code,
            detail={"code": result.error.code.value, "message": result.error.message},
        )
    return result.data


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class MessageResponse(BaseModel):
    message: str


# ============== Hackathons ==============


class HackathonResponse(OrmModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str | None
    status: HackathonStatus
    start_at: datetime
    end_at: datetime
    registration_open_at: datetime | None
    registration_close_at: datetime | None
    is_active: bool


class CategoryResponse(OrmModel):
    id: uuid.UUID
    hackathon_id: uuid.UUID
    name: str
    description: str | None
    display_order: int


class CriterionResponse(OrmModel):
    id: uuid.UUID
    hackathon_id: uuid.UUID
    name: str
    description: str | None
    weight: int
    display_order: int


class PermissionsResponse(BaseModel):
    can_register: bool
    can_manage_team: bool
    can_submit: bool
    can_judge: bool


# ============== Users ==============


class UserResponse(BaseModel):
    """User data response."""

    id: uuid.UUID
    email: str
    role: UserRole
    display_name: str | None
    avatar_url: str | None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        profile = user.profile
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            display_name=profile.display_name if profile else None,
            avatar_url=profile.avatar_url if profile else None,
        )


# ============== Teams ==============


class TeamResponse(OrmModel):
    id: uuid.UUID
    hackathon_id: uuid.UUID
    name: str
    slug: str
    description: str | None
    created_by: uuid.UUID
    created_at: datetime


class TeamMemberResponse(BaseModel):
    id: uuid.UUID
    team_id: uuid.UUID
    user_id: uuid.UUID
    is_owner: bool
    joined_at: datetime
    display_name: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_view(cls, view: TeamMemberView) -> "TeamMemberResponse":
        return cls(**view.__dict__)


class InviteResponse(OrmModel):
    id: uuid.UUID
    team_id: uuid.UUID
    inviter_id: uuid.UUID
    invitee_email: str
    invitee_user_id: uuid.UUID | None
    status: TeamInviteStatus
    token: str
    created_at: datetime
    responded_at: datetime | None


class InviteDetailResponse(InviteResponse):
    """Invite with the names the invitee needs to decide."""

    team_name: str
    hackathon_id: uuid.UUID
    hackathon_name: str

    @classmethod
    def from_view(cls, view: InviteView) -> "InviteDetailResponse":
        base = InviteResponse.model_validate(view.invite).model_dump()
        return cls(
            **base,
            team_name=view.team_name,
            hackathon_id=view.hackathon_id,
            hackathon_name=view.hackathon_name,
        )


# ============== Submissions ==============


class SubmissionResponse(OrmModel):
    id: uuid.UUID
    team_id: uuid.UUID
    hackathon_id: uuid.UUID
    category_id: uuid.UUID
    name: str
    repo_url: str
    demo_url: str | None
    summary: str | None
    status: SubmissionStatus
    last_submitted_at: datetime | None
    updated_at: datetime


class SubmissionDetailResponse(SubmissionResponse):
    team_name: str
    category_name: str

    @classmethod
    def from_view(cls, view: SubmissionView) -> "SubmissionDetailResponse":
        base = SubmissionResponse.model_validate(view.submission).model_dump()
        return cls(**base, team_name=view.team_name, category_name=view.category_name)
