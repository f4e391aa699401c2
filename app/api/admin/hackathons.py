"""
Hackathon Administration API Endpoints.

Provides admin CRUD for hackathons, their categories and judging criteria,
switching the active hackathon, the team roster and judge assignments.
"""

import uuid
from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from app.api.common import (
    CategoryResponse,
    CriterionResponse,
    HackathonResponse,
    TeamResponse,
    unwrap,
)
from app.api.hackathons import AssignmentResponse
from app.core.dependencies import AdminServiceCtx
from app.models.hackathon import HackathonStatus
from app.services import hackathon_service, judging_service, team_service

router = APIRouter(prefix="/hackathons")


# ============== Request/Response Models ==============


class HackathonCreateRequest(BaseModel):
    """Request model for creating a hackathon."""

    name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(
        ...,
        min_length=1,
        max_length=100,
        pattern=r"^[a-z0-9-]+$",
        description="URL-friendly identifier (lowercase letters, numbers, hyphens)",
    )
    description: str | None = None
    status: HackathonStatus = HackathonStatus.DRAFT
    start_at: datetime
    end_at: datetime
    registration_open_at: datetime | None = None
    registration_close_at: datetime | None = None


class HackathonUpdateRequest(BaseModel):
    """Partial update; status changes may go in any direction."""

    name: str | None = Field(None, min_length=1, max_length=200)
    slug: str | None = Field(None, min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$")
    description: str | None = None
    status: HackathonStatus | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    registration_open_at: datetime | None = None
    registration_close_at: datetime | None = None


class CategoryRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    display_order: int = 0


class CategoryUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    display_order: int | None = None


class CriterionRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    weight: int = Field(..., ge=1, le=100, description="Percentage weight")
    display_order: int = 0


class CriterionUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    weight: int | None = Field(None, ge=1, le=100)
    display_order: int | None = None


class TeamSummaryResponse(TeamResponse):
    member_count: int


class AssignmentRequest(BaseModel):
    team_id: uuid.UUID
    judge_id: uuid.UUID


# ============== Hackathons ==============


@router.get("", response_model=list[HackathonResponse])
async def list_hackathons(ctx: AdminServiceCtx) -> list[HackathonResponse]:
    hackathons = unwrap(await hackathon_service.list_hackathons(ctx))
    return [HackathonResponse.model_validate(h) for h in hackathons]


@router.post("", response_model=HackathonResponse, status_code=status.HTTP_201_CREATED)
async def create_hackathon(data: HackathonCreateRequest, ctx: AdminServiceCtx) -> HackathonResponse:
    hackathon = unwrap(await hackathon_service.create_hackathon(ctx, **data.model_dump()))
    return HackathonResponse.model_validate(hackathon)


@router.patch("/{hackathon_id}", response_model=HackathonResponse)
async def update_hackathon(
    hackathon_id: uuid.UUID,
    data: HackathonUpdateRequest,
    ctx: AdminServiceCtx,
) -> HackathonResponse:
    hackathon = unwrap(
        await hackathon_service.update_hackathon(
            ctx, hackathon_id, data.model_dump(exclude_unset=True)
        )
    )
    return HackathonResponse.model_validate(hackathon)


@router.delete("/{hackathon_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_hackathon(hackathon_id: uuid.UUID, ctx: AdminServiceCtx) -> None:
    unwrap(await hackathon_service.delete_hackathon(ctx, hackathon_id))


@router.post("/{hackathon_id}/activate", response_model=HackathonResponse)
async def activate_hackathon(hackathon_id: uuid.UUID, ctx: AdminServiceCtx) -> HackathonResponse:
    """Make this the active hackathon; every other one is deactivated atomically."""
    hackathon = unwrap(await hackathon_service.set_active_hackathon(ctx, hackathon_id))
    return HackathonResponse.model_validate(hackathon)


@router.get("/{hackathon_id}/teams", response_model=list[TeamSummaryResponse])
async def list_teams(hackathon_id: uuid.UUID, ctx: AdminServiceCtx) -> list[TeamSummaryResponse]:
    summaries = unwrap(await team_service.list_hackathon_teams(ctx, hackathon_id))
    return [
        TeamSummaryResponse(
            **TeamResponse.model_validate(summary.team).model_dump(),
            member_count=summary.member_count,
        )
        for summary in summaries
    ]


# ============== Categories ==============


@router.post(
    "/{hackathon_id}/categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    hackathon_id: uuid.UUID,
    data: CategoryRequest,
    ctx: AdminServiceCtx,
) -> CategoryResponse:
    category = unwrap(
        await hackathon_service.create_category(ctx, hackathon_id, **data.model_dump())
    )
    return CategoryResponse.model_validate(category)


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: uuid.UUID,
    data: CategoryUpdateRequest,
    ctx: AdminServiceCtx,
) -> CategoryResponse:
    category = unwrap(
        await hackathon_service.update_category(
            ctx, category_id, data.model_dump(exclude_unset=True)
        )
    )
    return CategoryResponse.model_validate(category)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(category_id: uuid.UUID, ctx: AdminServiceCtx) -> None:
    """Delete a category. Refused while a submission still uses it."""
    unwrap(await hackathon_service.delete_category(ctx, category_id))


# ============== Judging criteria ==============


@router.post(
    "/{hackathon_id}/criteria",
    response_model=CriterionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_criterion(
    hackathon_id: uuid.UUID,
    data: CriterionRequest,
    ctx: AdminServiceCtx,
) -> CriterionResponse:
    criterion = unwrap(
        await hackathon_service.create_criterion(ctx, hackathon_id, **data.model_dump())
    )
    return CriterionResponse.model_validate(criterion)


@router.patch("/criteria/{criterion_id}", response_model=CriterionResponse)
async def update_criterion(
    criterion_id: uuid.UUID,
    data: CriterionUpdateRequest,
    ctx: AdminServiceCtx,
) -> CriterionResponse:
    criterion = unwrap(
        await hackathon_service.update_criterion(
            ctx, criterion_id, data.model_dump(exclude_unset=True)
        )
    )
    return CriterionResponse.model_validate(criterion)


@router.delete("/criteria/{criterion_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_criterion(criterion_id: uuid.UUID, ctx: AdminServiceCtx) -> None:
    unwrap(await hackathon_service.delete_criterion(ctx, criterion_id))


# ============== Judge assignments ==============


@router.get("/{hackathon_id}/assignments", response_model=list[AssignmentResponse])
async def list_assignments(hackathon_id: uuid.UUID, ctx: AdminServiceCtx) -> list[AssignmentResponse]:
    views = unwrap(await judging_service.list_judge_assignments(ctx, hackathon_id))
    return [AssignmentResponse.from_view(view) for view in views]


@router.post(
    "/{hackathon_id}/assignments",
    status_code=status.HTTP_201_CREATED,
)
async def assign_judge(
    hackathon_id: uuid.UUID,
    data: AssignmentRequest,
    ctx: AdminServiceCtx,
) -> dict[str, str]:
    assignment = unwrap(
        await judging_service.assign_judge_to_team(
            ctx, hackathon_id, team_id=data.team_id, judge_id=data.judge_id
        )
    )
    return {"id": str(assignment.id), "message": "Judge assigned"}


@router.delete("/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_assignment(assignment_id: uuid.UUID, ctx: AdminServiceCtx) -> None:
    unwrap(await judging_service.remove_judge_assignment(ctx, assignment_id))
