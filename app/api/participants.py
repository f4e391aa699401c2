"""
Participant API Endpoints for Hackathon Hub.

Registration for hackathons. Registering does not put anyone on a team.
"""

import uuid
from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.api.common import HackathonResponse, OrmModel, unwrap
from app.core.dependencies import OptionalServiceCtx, ServiceCtx
from app.services import participant_service

router = APIRouter(prefix="/participants", tags=["Participants"])


class RegistrationResponse(OrmModel):
    id: uuid.UUID
    hackathon_id: uuid.UUID
    user_id: uuid.UUID
    registered_at: datetime


class RegistrationStatusResponse(BaseModel):
    registered: bool


@router.get("/me/hackathons", response_model=list[HackathonResponse])
async def get_my_hackathons(ctx: OptionalServiceCtx) -> list[HackathonResponse]:
    """Hackathons the user registered for, latest registration first."""
    hackathons = unwrap(await participant_service.get_my_hackathons(ctx))
    return [HackathonResponse.model_validate(h) for h in hackathons]


@router.get("/{hackathon_id}/status", response_model=RegistrationStatusResponse)
async def check_registration(
    hackathon_id: uuid.UUID,
    ctx: OptionalServiceCtx,
) -> RegistrationStatusResponse:
    registered = unwrap(await participant_service.check_if_registered(ctx, hackathon_id))
    return RegistrationStatusResponse(registered=registered)


@router.post(
    "/{hackathon_id}/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_for_hackathon(hackathon_id: uuid.UUID, ctx: ServiceCtx) -> RegistrationResponse:
    participant = unwrap(await participant_service.register_for_hackathon(ctx, hackathon_id))
    return RegistrationResponse.model_validate(participant)


@router.delete("/{hackathon_id}/register", status_code=status.HTTP_204_NO_CONTENT)
async def leave_hackathon(hackathon_id: uuid.UUID, ctx: ServiceCtx) -> None:
    unwrap(await participant_service.leave_hackathon(ctx, hackathon_id))
