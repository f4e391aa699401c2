"""
Judging API Endpoints for Hackathon Hub.
"""

import uuid
from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from app.api.common import OrmModel, unwrap
from app.core.dependencies import JudgeUser, ServiceCtx
from app.services import judging_service

router = APIRouter(prefix="/judging", tags=["Judging"])


class ScoreRequest(BaseModel):
    hackathon_id: uuid.UUID
    team_id: uuid.UUID
    criterion_id: uuid.UUID
    score: float = Field(..., ge=0)
    notes: str | None = None
    judge_id: uuid.UUID | None = Field(
        None, description="Defaults to the current user; admins may record for a judge"
    )


class ScoreResponse(OrmModel):
    id: uuid.UUID
    hackathon_id: uuid.UUID
    team_id: uuid.UUID
    judge_id: uuid.UUID
    criterion_id: uuid.UUID
    score: float
    notes: str | None
    submitted_at: datetime


@router.put("/scores", response_model=ScoreResponse)
async def save_score(data: ScoreRequest, ctx: ServiceCtx, user: JudgeUser) -> ScoreResponse:
    """Record or revise a score. The latest value for the same key wins."""
    score = unwrap(
        await judging_service.upsert_judging_score(
            ctx,
            hackathon_id=data.hackathon_id,
            team_id=data.team_id,
            judge_id=data.judge_id or user.id,
            criterion_id=data.criterion_id,
            score=data.score,
            notes=data.notes,
        )
    )
    return ScoreResponse.model_validate(score)


@router.get("/teams/{team_id}/scores/me", response_model=list[ScoreResponse])
async def list_my_scores(team_id: uuid.UUID, ctx: ServiceCtx) -> list[ScoreResponse]:
    scores = unwrap(await judging_service.list_my_scores(ctx, team_id))
    return [ScoreResponse.model_validate(score) for score in scores]


@router.delete("/scores/{score_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_score(score_id: uuid.UUID, ctx: ServiceCtx) -> None:
    unwrap(await judging_service.delete_judging_score(ctx, score_id))
