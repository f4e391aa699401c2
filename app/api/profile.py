"""
Profile API Endpoints for Hackathon Hub.
"""

import uuid

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.api.common import OrmModel, unwrap
from app.core.dependencies import ServiceCtx
from app.services import user_service

router = APIRouter(prefix="/profile", tags=["Profile"])


class ProfileResponse(OrmModel):
    user_id: uuid.UUID
    first_name: str | None
    last_name: str | None
    display_name: str | None
    avatar_url: str | None
    organization: str | None
    title: str | None


class ProfileUpdateRequest(BaseModel):
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    avatar_url: str | None = Field(None, max_length=500)
    organization: str | None = Field(None, max_length=200)
    title: str | None = Field(None, max_length=200)


@router.get("", response_model=ProfileResponse | None)
async def get_profile(ctx: ServiceCtx) -> ProfileResponse | None:
    """Get the current user's profile (null before it is first filled in)."""
    profile = unwrap(await user_service.get_profile(ctx))
    return ProfileResponse.model_validate(profile) if profile else None


@router.patch("", response_model=ProfileResponse)
async def update_profile(data: ProfileUpdateRequest, ctx: ServiceCtx) -> ProfileResponse:
    profile = unwrap(
        await user_service.update_profile(ctx, data.model_dump(exclude_unset=True))
    )
    return ProfileResponse.model_validate(profile)
