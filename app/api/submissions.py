"""
Submission API Endpoints for Hackathon Hub.
"""

import uuid

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from app.api.common import SubmissionResponse, unwrap
from app.core.dependencies import ServiceCtx
from app.services import submission_service

router = APIRouter(prefix="/submissions", tags=["Submissions"])


class SubmissionFields(BaseModel):
    category_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=200)
    repo_url: str = Field(..., min_length=1, max_length=500)
    demo_url: str | None = Field(None, max_length=500)
    summary: str | None = None


class CreateSubmissionRequest(SubmissionFields):
    team_id: uuid.UUID


class UpdateSubmissionRequest(BaseModel):
    category_id: uuid.UUID | None = None
    name: str | None = Field(None, min_length=1, max_length=200)
    repo_url: str | None = Field(None, min_length=1, max_length=500)
    demo_url: str | None = Field(None, max_length=500)
    summary: str | None = None


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_submission(data: CreateSubmissionRequest, ctx: ServiceCtx) -> SubmissionResponse:
    submission = unwrap(
        await submission_service.create_submission(ctx, **data.model_dump())
    )
    return SubmissionResponse.model_validate(submission)


@router.put("/teams/{team_id}", response_model=SubmissionResponse)
async def save_team_submission(
    team_id: uuid.UUID,
    data: SubmissionFields,
    ctx: ServiceCtx,
) -> SubmissionResponse:
    """Create or overwrite the team's submission (idempotent)."""
    submission = unwrap(
        await submission_service.upsert_submission(ctx, team_id=team_id, **data.model_dump())
    )
    return SubmissionResponse.model_validate(submission)


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(submission_id: uuid.UUID, ctx: ServiceCtx) -> SubmissionResponse:
    submission = unwrap(await submission_service.get_submission_by_id(ctx, submission_id))
    return SubmissionResponse.model_validate(submission)


@router.patch("/{submission_id}", response_model=SubmissionResponse)
async def update_submission(
    submission_id: uuid.UUID,
    data: UpdateSubmissionRequest,
    ctx: ServiceCtx,
) -> SubmissionResponse:
    submission = unwrap(
        await submission_service.update_submission(
            ctx, submission_id, data.model_dump(exclude_unset=True)
        )
    )
    return SubmissionResponse.model_validate(submission)


@router.post("/{submission_id}/submit", response_model=SubmissionResponse)
async def submit_project(submission_id: uuid.UUID, ctx: ServiceCtx) -> SubmissionResponse:
    """Mark the submission as submitted. Submitting again updates the timestamp."""
    submission = unwrap(await submission_service.submit_project(ctx, submission_id))
    return SubmissionResponse.model_validate(submission)
