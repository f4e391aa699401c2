"""
Hackathon API Endpoints for Hackathon Hub.

Public hackathon reads, the permissions the Status Engine grants right now,
and the per-hackathon views of the current user (team, judge assignments)
and of the judges (team scores).
"""

import uuid

from fastapi import APIRouter
from pydantic import BaseModel

from app.api.common import (
    CategoryResponse,
    CriterionResponse,
    HackathonResponse,
    PermissionsResponse,
    TeamMemberResponse,
    TeamResponse,
    unwrap,
)
from app.core.dependencies import OptionalServiceCtx, ServiceCtx
from app.services import (
    hackathon_service,
    judging_service,
    participant_service,
    team_service,
)

router = APIRouter(prefix="/hackathons", tags=["Hackathons"])


# ============== Response Models ==============


class MyTeamResponse(BaseModel):
    team: TeamResponse
    membership: TeamMemberResponse


class TeamScoreResponse(BaseModel):
    hackathon_id: uuid.UUID
    team_id: uuid.UUID
    team_name: str
    category_id: uuid.UUID | None
    category_name: str | None
    judge_count: int
    total_score: float
    average_score: float | None


class AssignmentResponse(BaseModel):
    id: uuid.UUID
    hackathon_id: uuid.UUID
    team_id: uuid.UUID
    team_name: str
    judge_id: uuid.UUID
    judge_email: str

    @classmethod
    def from_view(cls, view: judging_service.AssignmentView) -> "AssignmentResponse":
        return cls(
            id=view.assignment.id,
            hackathon_id=view.assignment.hackathon_id,
            team_id=view.assignment.team_id,
            team_name=view.team_name,
            judge_id=view.assignment.judge_id,
            judge_email=view.judge_email,
        )


# ============== Endpoints ==============


@router.get("/open", response_model=list[HackathonResponse])
async def list_open_hackathons(ctx: OptionalServiceCtx) -> list[HackathonResponse]:
    """Hackathons currently OPEN or STARTED."""
    hackathons = unwrap(await participant_service.get_open_hackathons(ctx))
    return [HackathonResponse.model_validate(h) for h in hackathons]


@router.get("/active", response_model=HackathonResponse | None)
async def get_active_hackathon(ctx: OptionalServiceCtx) -> HackathonResponse | None:
    hackathon = unwrap(await hackathon_service.get_active_hackathon(ctx))
    return HackathonResponse.model_validate(hackathon) if hackathon else None


@router.get("/current", response_model=HackathonResponse | None)
async def get_current_hackathon(ctx: OptionalServiceCtx) -> HackathonResponse | None:
    """
    The hackathon the user should land on: their running or open
    registration first, then any registration, then the active hackathon.
    """
    hackathon = unwrap(await participant_service.resolve_current_hackathon(ctx))
    return HackathonResponse.model_validate(hackathon) if hackathon else None


@router.get("/by-slug/{slug}", response_model=HackathonResponse)
async def get_hackathon_by_slug(slug: str, ctx: OptionalServiceCtx) -> HackathonResponse:
    hackathon = unwrap(await hackathon_service.get_hackathon_by_slug(ctx, slug))
    return HackathonResponse.model_validate(hackathon)


@router.get("/{hackathon_id}", response_model=HackathonResponse)
async def get_hackathon(hackathon_id: uuid.UUID, ctx: OptionalServiceCtx) -> HackathonResponse:
    hackathon = unwrap(await hackathon_service.get_hackathon(ctx, hackathon_id))
    return HackathonResponse.model_validate(hackathon)


@router.get("/{hackathon_id}/permissions", response_model=PermissionsResponse)
async def get_hackathon_permissions(
    hackathon_id: uuid.UUID,
    ctx: OptionalServiceCtx,
) -> PermissionsResponse:
    """Actions the hackathon permits right now, evaluated on the server clock."""
    permissions = unwrap(await hackathon_service.get_permissions(ctx, hackathon_id))
    return PermissionsResponse(**permissions.to_dict())


@router.get("/{hackathon_id}/categories", response_model=list[CategoryResponse])
async def list_categories(hackathon_id: uuid.UUID, ctx: OptionalServiceCtx) -> list[CategoryResponse]:
    categories = unwrap(await hackathon_service.list_hackathon_categories(ctx, hackathon_id))
    return [CategoryResponse.model_validate(c) for c in categories]


@router.get("/{hackathon_id}/criteria", response_model=list[CriterionResponse])
async def list_criteria(hackathon_id: uuid.UUID, ctx: OptionalServiceCtx) -> list[CriterionResponse]:
    criteria = unwrap(await hackathon_service.list_judging_criteria(ctx, hackathon_id))
    return [CriterionResponse.model_validate(c) for c in criteria]


@router.get("/{hackathon_id}/my-team", response_model=MyTeamResponse | None)
async def get_my_team(hackathon_id: uuid.UUID, ctx: ServiceCtx) -> MyTeamResponse | None:
    """The current user's team in this hackathon, or null."""
    mine = unwrap(await team_service.get_my_team(ctx, hackathon_id))
    if mine is None:
        return None
    return MyTeamResponse(
        team=TeamResponse.model_validate(mine.team),
        membership=TeamMemberResponse.model_validate(mine.membership, from_attributes=True),
    )


@router.get("/{hackathon_id}/my-assignments", response_model=list[AssignmentResponse])
async def list_my_assignments(hackathon_id: uuid.UUID, ctx: ServiceCtx) -> list[AssignmentResponse]:
    """Teams the current judge has to evaluate."""
    views = unwrap(await judging_service.list_my_assignments(ctx, hackathon_id))
    return [AssignmentResponse.from_view(view) for view in views]


@router.get("/{hackathon_id}/scores", response_model=list[TeamScoreResponse])
async def list_team_scores(hackathon_id: uuid.UUID, ctx: ServiceCtx) -> list[TeamScoreResponse]:
    """Aggregated team scores, best first (judges and admins)."""
    scores = unwrap(await judging_service.list_team_scores(ctx, hackathon_id))
    return [TeamScoreResponse(**score.__dict__) for score in scores]
