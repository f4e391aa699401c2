"""
Authorization predicates for Hackathon Hub.

These are the single source of truth for row-level access. Services call
them before every read or write they protect.
"""

import uuid

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.judging import JudgeAssignment
from app.models.team import TeamMember
from app.services.context import ServiceContext
from app.services.result import ServiceResult, forbidden, unauthenticated


def require_admin(ctx: ServiceContext) -> ServiceResult | None:
    """None when the actor is an admin, otherwise the failure to return."""
    if not ctx.is_authenticated:
        return unauthenticated()
    if not ctx.is_admin:
        return forbidden("Admin access required")
    return None


async def get_membership(
    session: AsyncSession,
    team_id: uuid.UUID,
    user_id: uuid.UUID,
) -> TeamMember | None:
    result = await session.execute(
        select(TeamMember)
        .where(TeamMember.team_id == team_id)
        .where(TeamMember.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def is_team_member(
    session: AsyncSession,
    team_id: uuid.UUID,
    user_id: uuid.UUID,
) -> bool:
    return await get_membership(session, team_id, user_id) is not None


async def is_team_owner(
    session: AsyncSession,
    team_id: uuid.UUID,
    user_id: uuid.UUID,
) -> bool:
    membership = await get_membership(session, team_id, user_id)
    return membership is not None and membership.is_owner


async def is_user_in_hackathon_team(
    session: AsyncSession,
    hackathon_id: uuid.UUID,
    user_id: uuid.UUID,
) -> bool:
    """Whether the user already belongs to any team of the hackathon."""
    result = await session.execute(
        select(
            exists()
            .where(TeamMember.hackathon_id == hackathon_id)
            .where(TeamMember.user_id == user_id)
        )
    )
    return bool(result.scalar())


async def is_assigned_judge(
    session: AsyncSession,
    team_id: uuid.UUID,
    judge_id: uuid.UUID,
) -> bool:
    result = await session.execute(
        select(
            exists()
            .where(JudgeAssignment.team_id == team_id)
            .where(JudgeAssignment.judge_id == judge_id)
        )
    )
    return bool(result.scalar())


async def can_view_team(ctx: ServiceContext, team_id: uuid.UUID) -> bool:
    """Members, assigned judges and admins may read a team's private data."""
    if not ctx.is_authenticated:
        return False
    if ctx.is_admin:
        return True
    if await is_team_member(ctx.session, team_id, ctx.user_id):
        return True
    return ctx.is_judge and await is_assigned_judge(ctx.session, team_id, ctx.user_id)
