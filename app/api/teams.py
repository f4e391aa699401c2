"""
Team API Endpoints for Hackathon Hub.

Team lifecycle, membership, a team's invites and its submission.
"""

import uuid
from typing import Any

from fastapi import APIRouter, Request, status
from pydantic import BaseModel, EmailStr, Field

from app.api.common import (
    InviteResponse,
    MessageResponse,
    SubmissionDetailResponse,
    TeamMemberResponse,
    TeamResponse,
    unwrap,
)
from app.core.dependencies import ServiceCtx
from app.middleware.security import rate_limit_invites
from app.services import invite_service, submission_service, team_service

router = APIRouter(prefix="/teams", tags=["Teams"])


# ============== Request Models ==============


class CreateTeamRequest(BaseModel):
    hackathon_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=100, pattern=r"^[a-z0-9-]+$")
    description: str | None = None


class UpdateTeamRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=100, pattern=r"^[a-z0-9-]+$")
    description: str | None = None


class AddMemberRequest(BaseModel):
    user_id: uuid.UUID


class UpdateMemberRequest(BaseModel):
    is_owner: bool


class InviteRequest(BaseModel):
    email: EmailStr


# ============== Teams ==============


@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(data: CreateTeamRequest, ctx: ServiceCtx) -> TeamResponse:
    """
    Create a team in a hackathon with the current user as its owner.

    Fails with CONFLICT when the user already has a team there.
    """
    team = unwrap(
        await team_service.create_team(
            ctx,
            hackathon_id=data.hackathon_id,
            name=data.name,
            slug=data.slug,
            description=data.description,
        )
    )
    return TeamResponse.model_validate(team)


@router.patch("/{team_id}", response_model=TeamResponse)
async def update_team(team_id: uuid.UUID, data: UpdateTeamRequest, ctx: ServiceCtx) -> TeamResponse:
    updates: dict[str, Any] = data.model_dump(exclude_unset=True)
    team = unwrap(await team_service.update_team(ctx, team_id, updates))
    return TeamResponse.model_validate(team)


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(team_id: uuid.UUID, ctx: ServiceCtx) -> None:
    unwrap(await team_service.remove_team(ctx, team_id))


@router.post("/{team_id}/leave", response_model=MessageResponse)
async def leave_team(team_id: uuid.UUID, ctx: ServiceCtx) -> MessageResponse:
    unwrap(await team_service.leave_team(ctx, team_id))
    return MessageResponse(message="You left the team")


# ============== Members ==============


@router.get("/{team_id}/members", response_model=list[TeamMemberResponse])
async def list_members(team_id: uuid.UUID, ctx: ServiceCtx) -> list[TeamMemberResponse]:
    members = unwrap(await team_service.list_team_members(ctx, team_id))
    return [TeamMemberResponse.from_view(member) for member in members]


@router.post(
    "/{team_id}/members",
    response_model=TeamMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(team_id: uuid.UUID, data: AddMemberRequest, ctx: ServiceCtx) -> TeamMemberResponse:
    member = unwrap(await team_service.add_team_member(ctx, team_id, data.user_id))
    return TeamMemberResponse.model_validate(member, from_attributes=True)


@router.patch("/{team_id}/members/{user_id}", response_model=TeamMemberResponse)
async def update_member(
    team_id: uuid.UUID,
    user_id: uuid.UUID,
    data: UpdateMemberRequest,
    ctx: ServiceCtx,
) -> TeamMemberResponse:
    """Promote a member to owner. The previous owner becomes a regular member."""
    member = unwrap(await team_service.update_team_member(ctx, team_id, user_id, data.is_owner))
    return TeamMemberResponse.model_validate(member, from_attributes=True)


@router.delete("/{team_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(team_id: uuid.UUID, user_id: uuid.UUID, ctx: ServiceCtx) -> None:
    unwrap(await team_service.remove_team_member(ctx, team_id, user_id))


# ============== Invites ==============


@router.get("/{team_id}/invites", response_model=list[InviteResponse])
async def list_team_invites(team_id: uuid.UUID, ctx: ServiceCtx) -> list[InviteResponse]:
    invites = unwrap(await invite_service.get_team_invites(ctx, team_id))
    return [InviteResponse.model_validate(invite) for invite in invites]


@router.post(
    "/{team_id}/invites",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
)
@rate_limit_invites()
async def invite_member(
    request: Request,
    team_id: uuid.UUID,
    data: InviteRequest,
    ctx: ServiceCtx,
) -> InviteResponse:
    """Invite an email address to the team (owner only)."""
    invite = unwrap(await invite_service.invite_team_member(ctx, team_id, data.email))
    return InviteResponse.model_validate(invite)


# ============== Submission ==============


@router.get("/{team_id}/submission", response_model=SubmissionDetailResponse | None)
async def get_team_submission(team_id: uuid.UUID, ctx: ServiceCtx) -> SubmissionDetailResponse | None:
    """The team's submission, or null when none exists yet."""
    view = unwrap(await submission_service.get_team_submission(ctx, team_id))
    return SubmissionDetailResponse.from_view(view) if view else None
