"""
Judging Service for Hackathon Hub.

Judge assignments, score entry and the server-side team score aggregation.
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import delete, distinct, func, select
from sqlalchemy.exc import IntegrityError

from app.core.config import get_settings
from app.core.database import upsert
from app.models.base import utcnow
from app.models.hackathon import HackathonCategory, JudgingCriterion
from app.models.judging import JudgeAssignment, JudgingScore
from app.models.submission import ProjectSubmission
from app.models.team import Team
from app.models.user import User, UserRole
from app.services.context import ServiceContext
from app.services.hackathon_service import load_hackathon
from app.services.policies import is_assigned_judge, require_admin
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


@dataclass
class AssignmentView:
    assignment: JudgeAssignment
    team_name: str
    judge_email: str


@dataclass
class TeamScore:
    """Aggregated score of one team (and its submission category)."""

    hackathon_id: uuid.UUID
    team_id: uuid.UUID
    team_name: str
    category_id: uuid.UUID | None
    category_name: str | None
    judge_count: int
    total_score: float
    average_score: float | None


def _assignment_query():
    return (
        select(JudgeAssignment, Team.name, User.email)
        .join(Team, Team.id == JudgeAssignment.team_id)
        .join(User, User.id == JudgeAssignment.judge_id)
        .order_by(Team.name, User.email)
    )


# ============== Assignments ==============


async def assign_judge_to_team(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
    team_id: uuid.UUID,
    judge_id: uuid.UUID,
) -> ServiceResult[JudgeAssignment]:
    """Assign a judge to a team (admin). Assigning twice is a CONFLICT."""
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    team = await load_team(ctx, team_id)
    if team is None or team.hackathon_id != hackathon_id:
        return not_found("Team")

    judge = await ctx.session.get(User, judge_id)
    if judge is None:
        return not_found("Judge")
    if judge.role != UserRole.JUDGE:
        return ServiceResult.fail(ErrorCode.VALIDATION, "User is not a judge")

    if await is_assigned_judge(ctx.session, team_id, judge_id):
        return ServiceResult.fail(ErrorCode.CONFLICT, "Judge is already assigned to this team")

    assignment = JudgeAssignment(hackathon_id=hackathon_id, team_id=team_id, judge_id=judge_id)
    ctx.session.add(assignment)
    try:
        await ctx.session.commit()
    except IntegrityError as exc:
        await ctx.session.rollback()
        return ServiceResult.from_integrity_error(exc)

    logger.info(f"Judge {judge_id} assigned to team {team_id}")
    return ServiceResult.success(assignment)


async def remove_judge_assignment(
    ctx: ServiceContext,
    assignment_id: uuid.UUID,
) -> ServiceResult[None]:
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    result = await ctx.session.execute(
        delete(JudgeAssignment).where(JudgeAssignment.id == assignment_id)
    )
    if result.rowcount == 0:
        await ctx.session.rollback()
        return not_found("Judge assignment")
    await ctx.session.commit()
    logger.info(f"Judge assignment {assignment_id} removed")
    return ServiceResult.success(None)


async def list_judge_assignments(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
) -> ServiceResult[list[AssignmentView]]:
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    result = await ctx.session.execute(
        _assignment_query().where(JudgeAssignment.hackathon_id == hackathon_id)
    )
    return ServiceResult.success(
        [
            AssignmentView(assignment=assignment, team_name=team_name, judge_email=email)
            for assignment, team_name, email in result.all()
        ]
    )


async def list_my_assignments(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
) -> ServiceResult[list[AssignmentView]]:
    """Teams the calling judge has to evaluate in a hackathon."""
    if not ctx.is_authenticated:
        return unauthenticated()

    result = await ctx.session.execute(
        _assignment_query()
        .where(JudgeAssignment.hackathon_id == hackathon_id)
        .where(JudgeAssignment.judge_id == ctx.user_id)
    )
    return ServiceResult.success(
        [
            AssignmentView(assignment=assignment, team_name=team_name, judge_email=email)
            for assignment, team_name, email in result.all()
        ]
    )


# ============== Scores ==============


async def upsert_judging_score(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
    team_id: uuid.UUID,
    judge_id: uuid.UUID,
    criterion_id: uuid.UUID,
    score: float,
    notes: str | None = None,
) -> ServiceResult[JudgingScore]:
    """
    Record a judge's score, replacing any previous one for the same key.

    Keyed by (hackathon, team, judge, criterion) with a native upsert, so
    resubmitting revises the score and no history is kept.

    Args:
        ctx: Service context; the actor must be the judge or an admin
        hackathon_id: Hackathon being judged
        team_id: Team being scored, which the judge must be assigned to
        judge_id: Judge the score is recorded for
        criterion_id: Criterion of the same hackathon
        score: Value between 0 and ``max_judging_score``
        notes: Optional free-text feedback

    Returns:
        ServiceResult with the stored JudgingScore
    """
    if not ctx.is_authenticated:
        return unauthenticated()
    if not ctx.is_admin and ctx.user_id != judge_id:
        return forbidden("Judges can only record their own scores")

    hackathon = await load_hackathon(ctx, hackathon_id)
    if hackathon is None:
        return not_found("Hackathon")
    closed = check_action(hackathon, HackathonAction.JUDGE, ctx.now())
    if closed is not None:
        return closed

    team = await load_team(ctx, team_id)
    if team is None or team.hackathon_id != hackathon_id:
        return not_found("Team")
    if not await is_assigned_judge(ctx.session, team_id, judge_id):
        return forbidden("Judge is not assigned to this team")

    criterion = await ctx.session.get(JudgingCriterion, criterion_id)
    if criterion is None or criterion.hackathon_id != hackathon_id:
        return ServiceResult.fail(
            ErrorCode.VALIDATION,
            "Criterion does not belong to this hackathon",
        )

    max_score = get_settings().max_judging_score
    if not 0 <= score <= max_score:
        return ServiceResult.fail(
            ErrorCode.VALIDATION,
            f"Score must be between 0 and {max_score:g}",
        )

    now = ctx.now()
    stmt = upsert(ctx.session, JudgingScore).values(
        hackathon_id=hackathon_id,
        team_id=team_id,
        judge_id=judge_id,
        criterion_id=criterion_id,
        score=score,
        notes=notes,
        submitted_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["hackathon_id", "team_id", "judge_id", "criterion_id"],
        set_={"score": score, "notes": notes, "submitted_at": now, "updated_at": utcnow()},
    )
    await ctx.session.execute(stmt)
    await ctx.session.commit()

    result = await ctx.session.execute(
        select(JudgingScore)
        .where(JudgingScore.hackathon_id == hackathon_id)
        .where(JudgingScore.team_id == team_id)
        .where(JudgingScore.judge_id == judge_id)
        .where(JudgingScore.criterion_id == criterion_id)
        .execution_options(populate_existing=True)
    )
    logger.info(f"Judge {judge_id} scored team {team_id} on {criterion_id}: {score}")
    return ServiceResult.success(result.scalar_one())


async def list_my_scores(
    ctx: ServiceContext,
    team_id: uuid.UUID,
) -> ServiceResult[list[JudgingScore]]:
    """Scores the caller has recorded for a team, to prefill the scoring form."""
    if not ctx.is_authenticated:
        return unauthenticated()

    result = await ctx.session.execute(
        select(JudgingScore)
        .where(JudgingScore.team_id == team_id)
        .where(JudgingScore.judge_id == ctx.user_id)
        .execution_options(populate_existing=True)
    )
    return ServiceResult.success(list(result.scalars().all()))


async def delete_judging_score(ctx: ServiceContext, score_id: uuid.UUID) -> ServiceResult[None]:
    """Delete a score. Judges may only delete their own."""
    if not ctx.is_authenticated:
        return unauthenticated()

    score = await ctx.session.get(JudgingScore, score_id)
    if score is None:
        return not_found("Score")
    if not ctx.is_admin and score.judge_id != ctx.user_id:
        return forbidden("Judges can only delete their own scores")

    await ctx.session.execute(delete(JudgingScore).where(JudgingScore.id == score_id))
    await ctx.session.commit()
    return ServiceResult.success(None)


async def list_team_scores(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
) -> ServiceResult[list[TeamScore]]:
    """
    Aggregate scores per team of a hackathon.

    ``total_score`` is the sum of ``score * weight / 100`` over every
    criterion and judge, ``judge_count`` the number of distinct judges who
    scored and ``average_score`` their quotient. Teams nobody scored are
    listed with a zero total. Ordered by total descending, then team name.
    """
    if not ctx.is_authenticated:
        return unauthenticated()
    if not (ctx.is_admin or ctx.is_judge):
        return forbidden("Only judges and admins can view team scores")

    weighted = JudgingScore.score * JudgingCriterion.weight / 100.0
    per_team = (
        select(
            JudgingScore.team_id.label("team_id"),
            func.sum(weighted).label("total_score"),
            func.count(distinct(JudgingScore.judge_id)).label("judge_count"),
        )
        .join(JudgingCriterion, JudgingCriterion.id == JudgingScore.criterion_id)
        .where(JudgingScore.hackathon_id == hackathon_id)
        .group_by(JudgingScore.team_id)
        .subquery()
    )
    total = func.coalesce(per_team.c.total_score, 0.0)
    judge_count = func.coalesce(per_team.c.judge_count, 0)

    result = await ctx.session.execute(
        select(
            Team.id,
            Team.name,
            ProjectSubmission.category_id,
            HackathonCategory.name,
            total.label("total_score"),
            judge_count.label("judge_count"),
        )
        .outerjoin(per_team, per_team.c.team_id == Team.id)
        .outerjoin(ProjectSubmission, ProjectSubmission.team_id == Team.id)
        .outerjoin(HackathonCategory, HackathonCategory.id == ProjectSubmission.category_id)
        .where(Team.hackathon_id == hackathon_id)
        .order_by(total.desc(), Team.name)
    )

    scores = []
    for team_id, team_name, category_id, category_name, total_score, count in result.all():
        total_score = float(total_score)
        scores.append(
            TeamScore(
                hackathon_id=hackathon_id,
                team_id=team_id,
                team_name=team_name,
                category_id=category_id,
                category_name=category_name,
                judge_count=count,
                total_score=total_score,
                average_score=total_score / count if count else None,
            )
        )
    return ServiceResult.success(scores)
