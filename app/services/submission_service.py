"""
Submission Service for Hackathon Hub.

One project submission per team. Writes require the caller to be on the
team (``NO_TEAM`` when they have no team in the hackathon at all) and the
hackathon to accept submissions.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.database import upsert
from app.models.base import utcnow
from app.models.hackathon import HackathonCategory
from app.models.submission import ProjectSubmission, SubmissionStatus
from app.models.team import Team
from app.services.context import ServiceContext
from app.services.hackathon_service import load_hackathon
from app.services.policies import can_view_team, is_team_member, is_user_in_hackathon_team
from app.services.result import (
    ErrorCode,
    ServiceResult,
    forbidden,
    not_found,
    unauthenticated,
)
from app.services.status_engine import HackathonAction, check_action
from app.services.team_service import load_team

logger = logging.getLogger(__name__)

SUBMISSION_FIELDS = frozenset({"category_id", "name", "repo_url", "demo_url", "summary"})


@dataclass
class SubmissionView:
    submission: ProjectSubmission
    team_name: str
    category_name: str


async def team_has_submission(ctx: ServiceContext, team_id: uuid.UUID) -> bool:
    result = await ctx.session.execute(
        select(ProjectSubmission.id).where(ProjectSubmission.team_id == team_id)
    )
    return result.first() is not None


async def load_submission(
    ctx: ServiceContext,
    submission_id: uuid.UUID,
) -> ProjectSubmission | None:
    result = await ctx.session.execute(
        select(ProjectSubmission)
        .where(ProjectSubmission.id == submission_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _write_gate(ctx: ServiceContext, team: Team) -> ServiceResult | None:
    """Membership then status checks shared by every submission write."""
    if not ctx.is_authenticated:
        return unauthenticated()

    if not ctx.is_admin and not await is_team_member(ctx.session, team.id, ctx.user_id):
        if not await is_user_in_hackathon_team(ctx.session, team.hackathon_id, ctx.user_id):
            return ServiceResult.fail(
                ErrorCode.NO_TEAM,
                "You need to be part of a team to submit a project",
            )
        return forbidden("You can only manage your own team's submission")

    hackathon = await load_hackathon(ctx, team.hackathon_id)
    return check_action(hackathon, HackathonAction.SUBMIT, ctx.now())


async def _check_category(
    ctx: ServiceContext,
    category_id: uuid.UUID,
    hackathon_id: uuid.UUID,
) -> ServiceResult | None:
    category = await ctx.session.get(HackathonCategory, category_id)
    if category is None or category.hackathon_id != hackathon_id:
        return ServiceResult.fail(
            ErrorCode.VALIDATION,
            "Category does not belong to this hackathon",
        )
    return None


async def get_team_submission(
    ctx: ServiceContext,
    team_id: uuid.UUID,
) -> ServiceResult[SubmissionView]:
    """The team's submission with team and category names, or no data yet."""
    if not ctx.is_authenticated:
        return unauthenticated()
    if await load_team(ctx, team_id) is None:
        return not_found("Team")
    if not await can_view_team(ctx, team_id):
        return forbidden("You cannot view this team's submission")

    result = await ctx.session.execute(
        select(ProjectSubmission, Team.name, HackathonCategory.name)
        .join(Team, Team.id == ProjectSubmission.team_id)
        .join(HackathonCategory, HackathonCategory.id == ProjectSubmission.category_id)
        .where(ProjectSubmission.team_id == team_id)
        .execution_options(populate_existing=True)
    )
    row = result.first()
    if row is None:
        return ServiceResult.success(None)

    submission, team_name, category_name = row
    return ServiceResult.success(
        SubmissionView(submission=submission, team_name=team_name, category_name=category_name)
    )


async def get_submission_by_id(
    ctx: ServiceContext,
    submission_id: uuid.UUID,
) -> ServiceResult[ProjectSubmission]:
    if not ctx.is_authenticated:
        return unauthenticated()

    submission = await load_submission(ctx, submission_id)
    if submission is None:
        return not_found("Submission")
    if not await can_view_team(ctx, submission.team_id):
        return forbidden("You cannot view this submission")
    return ServiceResult.success(submission)


async def create_submission(
    ctx: ServiceContext,
    team_id: uuid.UUID,
    category_id: uuid.UUID,
    name: str,
    repo_url: str,
    demo_url: str | None = None,
    summary: str | None = None,
) -> ServiceResult[ProjectSubmission]:
    """Create the team's draft submission. A second one is a CONFLICT."""
    team = await load_team(ctx, team_id)
    if team is None:
        return not_found("Team")

    denied = await _write_gate(ctx, team)
    if denied is not None:
        return denied
    invalid = await _check_category(ctx, category_id, team.hackathon_id)
    if invalid is not None:
        return invalid

    if await team_has_submission(ctx, team_id):
        return ServiceResult.fail(ErrorCode.CONFLICT, "This team already has a submission")

    submission = ProjectSubmission(
        team_id=team_id,
        hackathon_id=team.hackathon_id,
        category_id=category_id,
        name=name,
        repo_url=repo_url,
        demo_url=demo_url,
        summary=summary,
        status=SubmissionStatus.DRAFT,
    )
    ctx.session.add(submission)
    try:
        await ctx.session.commit()
    except IntegrityError as exc:
        await ctx.session.rollback()
        return ServiceResult.from_integrity_error(exc)

    logger.info(f"Submission {submission.id} created for team {team_id}")
    return ServiceResult.success(submission)


async def update_submission(
    ctx: ServiceContext,
    submission_id: uuid.UUID,
    updates: dict[str, Any],
) -> ServiceResult[ProjectSubmission]:
    submission = await load_submission(ctx, submission_id)
    if submission is None:
        return not_found("Submission")
    team = await load_team(ctx, submission.team_id)

    denied = await _write_gate(ctx, team)
    if denied is not None:
        return denied

    changes = {key: value for key, value in updates.items() if key in SUBMISSION_FIELDS}
    if changes.get("category_id") is not None:
        invalid = await _check_category(ctx, changes["category_id"], team.hackathon_id)
        if invalid is not None:
            return invalid

    for key, value in changes.items():
        if value is not None or key in ("demo_url", "summary"):
            setattr(submission, key, value)
    await ctx.session.commit()
    return ServiceResult.success(submission)


async def upsert_submission(
    ctx: ServiceContext,
    team_id: uuid.UUID,
    category_id: uuid.UUID,
    name: str,
    repo_url: str,
    demo_url: str | None = None,
    summary: str | None = None,
) -> ServiceResult[ProjectSubmission]:
    """
    Create or overwrite the team's submission in one statement.

    Uses the database's native ``INSERT ... ON CONFLICT (team_id) DO UPDATE``.
    The status is left untouched on update.
    """
    team = await load_team(ctx, team_id)
    if team is None:
        return not_found("Team")

    denied = await _write_gate(ctx, team)
    if denied is not None:
        return denied
    invalid = await _check_category(ctx, category_id, team.hackathon_id)
    if invalid is not None:
        return invalid

    fields = {
        "category_id": category_id,
        "name": name,
        "repo_url": repo_url,
        "demo_url": demo_url,
        "summary": summary,
    }
    stmt = upsert(ctx.session, ProjectSubmission).values(
        team_id=team_id,
        hackathon_id=team.hackathon_id,
        status=SubmissionStatus.DRAFT,
        **fields,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["team_id"],
        set_={**fields, "updated_at": utcnow()},
    )
    await ctx.session.execute(stmt)
    await ctx.session.commit()

    result = await ctx.session.execute(
        select(ProjectSubmission)
        .where(ProjectSubmission.team_id == team_id)
        .execution_options(populate_existing=True)
    )
    submission = result.scalar_one()
    logger.info(f"Submission {submission.id} saved for team {team_id}")
    return ServiceResult.success(submission)


async def submit_project(
    ctx: ServiceContext,
    submission_id: uuid.UUID,
) -> ServiceResult[ProjectSubmission]:
    """Mark the submission submitted. Repeat calls re-stamp last_submitted_at."""
    submission = await load_submission(ctx, submission_id)
    if submission is None:
        return not_found("Submission")
    team = await load_team(ctx, submission.team_id)

    denied = await _write_gate(ctx, team)
    if denied is not None:
        return denied

    submission.status = SubmissionStatus.SUBMITTED
    submission.last_submitted_at = ctx.now()
    await ctx.session.commit()

    logger.info(f"Submission {submission_id} submitted by {ctx.user_id}")
    return ServiceResult.success(submission)
