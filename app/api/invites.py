"""
Invite API Endpoints for Hackathon Hub.

The invitee's side of the invite workflow: listing pending invites and
answering them, by id or through an invite link token.
"""

import uuid

from fastapi import APIRouter
from pydantic import BaseModel

from app.api.common import InviteDetailResponse, InviteResponse, unwrap
from app.core.dependencies import OptionalServiceCtx, ServiceCtx
from app.services import invite_service

router = APIRouter(prefix="/invites", tags=["Invites"])


class RespondRequest(BaseModel):
    accept: bool


@router.get("/me", response_model=list[InviteDetailResponse])
async def list_my_invites(ctx: ServiceCtx) -> list[InviteDetailResponse]:
    """Pending invites for the current user's email or account."""
    views = unwrap(await invite_service.get_my_invites(ctx))
    return [InviteDetailResponse.from_view(view) for view in views]


@router.get("/token/{token}", response_model=InviteDetailResponse)
async def get_invite_by_token(token: str, ctx: OptionalServiceCtx) -> InviteDetailResponse:
    """Resolve an invite link. Works without signing in."""
    view = unwrap(await invite_service.get_invite_by_token(ctx, token))
    return InviteDetailResponse.from_view(view)


@router.post("/token/{token}/respond", response_model=InviteResponse)
async def respond_by_token(token: str, data: RespondRequest, ctx: ServiceCtx) -> InviteResponse:
    invite = unwrap(await invite_service.respond_to_invite_by_token(ctx, token, data.accept))
    return InviteResponse.model_validate(invite)


@router.post("/{invite_id}/respond", response_model=InviteResponse)
async def respond_to_invite(
    invite_id: uuid.UUID,
    data: RespondRequest,
    ctx: ServiceCtx,
) -> InviteResponse:
    """
    Accept or reject a pending invite.

    Accepting adds the current user to the team. Answering an invite that is
    no longer pending is a CONFLICT.
    """
    invite = unwrap(await invite_service.respond_to_invite(ctx, invite_id, data.accept))
    return InviteResponse.model_validate(invite)
