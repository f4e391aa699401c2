"""
Team Service for Hackathon Hub.

Team creation, editing and membership. Every mutation is gated by the
hackathon's ``can_manage_team`` permission; an admin deleting a team is the
one exception.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.models.hackathon import Hackathon
from app.models.team import Team, TeamMember
from app.models.user import Profile
from app.services.context import ServiceContext
from app.services.hackathon_service import load_hackathon
from app.services.policies import (
    can_view_team,
    get_membership,
    is_team_owner,
    is_user_in_hackathon_team,
    require_admin,
)
from app.services.result import (
    ErrorCode,
    ServiceResult,
    forbidden,
    not_found,
    unauthenticated,
)
from app.services.status_engine import HackathonAction, check_action

logger = logging.getLogger(__name__)

TEAM_FIELDS = frozenset({"name", "slug", "description"})


@dataclass
class TeamMemberView:
    """Membership row merged with the member's public profile."""

    id: uuid.UUID
    team_id: uuid.UUID
    user_id: uuid.UUID
    is_owner: bool
    joined_at: datetime
    display_name: str | None = None
    avatar_url: str | None = None


@dataclass
class MyTeam:
    team: Team
    membership: TeamMember


@dataclass
class TeamSummary:
    team: Team
    member_count: int


def slugify(name: str) -> str:
    """Lower-case, whitespace to hyphens, drop anything else non-alphanumeric."""
    slug = re.sub(r"\s+", "-", name.strip().lower())
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    return slug or "team"


async def load_team(ctx: ServiceContext, team_id: uuid.UUID) -> Team | None:
    result = await ctx.session.execute(
        select(Team).where(Team.id == team_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _team_and_hackathon(
    ctx: ServiceContext,
    team_id: uuid.UUID,
) -> tuple[Team | None, Hackathon | None]:
    team = await load_team(ctx, team_id)
    if team is None:
        return None, None
    return team, await load_hackathon(ctx, team.hackathon_id)


async def _count_members(ctx: ServiceContext, team_id: uuid.UUID) -> int:
    result = await ctx.session.execute(
        select(func.count(TeamMember.id)).where(TeamMember.team_id == team_id)
    )
    return result.scalar_one()


async def _owner_gate(ctx: ServiceContext, team_id: uuid.UUID) -> ServiceResult | None:
    """Require the caller to own the team and the hackathon to allow team changes."""
    if not ctx.is_authenticated:
        return unauthenticated()

    team, hackathon = await _team_and_hackathon(ctx, team_id)
    if team is None or hackathon is None:
        return not_found("Team")

    if not ctx.is_admin and not await is_team_owner(ctx.session, team_id, ctx.user_id):
        return forbidden("Only the team owner can manage this team")

    return check_action(hackathon, HackathonAction.MANAGE_TEAM, ctx.now())


# ============== Teams ==============


async def create_team(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
    name: str,
    slug: str | None = None,
    description: str | None = None,
) -> ServiceResult[Team]:
    """
    Create a team owned by the caller.

    The team row and the owner membership are flushed in one transaction.
    If the membership insert fails the team is rolled back too and the
    failure is reported as OWNER_MEMBERSHIP_FAILED so the caller can tell it
    apart from a duplicate team.
    """
    if not ctx.is_authenticated:
        return unauthenticated()

    hackathon = await load_hackathon(ctx, hackathon_id)
    if hackathon is None:
        return not_found("Hackathon")

    closed = check_action(hackathon, HackathonAction.MANAGE_TEAM, ctx.now())
    if closed is not None:
        return closed

    if await is_user_in_hackathon_team(ctx.session, hackathon_id, ctx.user_id):
        return ServiceResult.fail(
            ErrorCode.CONFLICT,
            "You already belong to a team in this hackathon",
        )

    user_id = ctx.user_id
    team = Team(
        hackathon_id=hackathon_id,
        name=name,
        slug=slug or slugify(name),
        description=description,
        created_by=user_id,
    )
    ctx.session.add(team)
    try:
        await ctx.session.flush()
    except IntegrityError as exc:
        await ctx.session.rollback()
        return ServiceResult.from_integrity_error(exc)

    team_id = team.id
    ctx.session.add(
        TeamMember(
            team_id=team_id,
            user_id=user_id,
            hackathon_id=hackathon_id,
            is_owner=True,
        )
    )
    try:
        await ctx.session.commit()
    except IntegrityError as exc:
        await ctx.session.rollback()
        logger.error(f"Owner membership for team {team_id} failed, team rolled back: {exc.orig}")
        return ServiceResult.fail(
            ErrorCode.OWNER_MEMBERSHIP_FAILED,
            f"Team could not be created because the owner membership failed: {exc.orig}",
        )

    logger.info(f"Team {team.slug} created in hackathon {hackathon_id} by {user_id}")
    return ServiceResult.success(team)


async def update_team(
    ctx: ServiceContext,
    team_id: uuid.UUID,
    updates: dict[str, Any],
) -> ServiceResult[Team]:
    denied = await _owner_gate(ctx, team_id)
    if denied is not None:
        return denied

    team = await load_team(ctx, team_id)
    for key, value in updates.items():
        if key in TEAM_FIELDS and (value is not None or key == "description"):
            setattr(team, key, value)

    try:
        await ctx.session.commit()
    except IntegrityError as exc:
        await ctx.session.rollback()
        return ServiceResult.from_integrity_error(exc)

    return ServiceResult.success(team)


async def remove_team(ctx: ServiceContext, team_id: uuid.UUID) -> ServiceResult[None]:
    """
    Delete a team. Members, invites, the submission, judge assignments and
    scores go with it through ON DELETE CASCADE.
    """
    if not ctx.is_authenticated:
        return unauthenticated()

    if not ctx.is_admin:
        denied = await _owner_gate(ctx, team_id)
        if denied is not None:
            return denied
    elif await load_team(ctx, team_id) is None:
        return not_found("Team")

    await ctx.session.execute(delete(Team).where(Team.id == team_id))
    await ctx.session.commit()
    logger.info(f"Team {team_id} removed by {ctx.user_id}")
    return ServiceResult.success(None)


async def get_my_team(ctx: ServiceContext, hackathon_id: uuid.UUID) -> ServiceResult[MyTeam]:
    """The caller's team in a hackathon, or no data when they have none."""
    if not ctx.is_authenticated:
        return unauthenticated()

    result = await ctx.session.execute(
        select(TeamMember, Team)
        .join(Team, Team.id == TeamMember.team_id)
        .where(TeamMember.hackathon_id == hackathon_id)
        .where(TeamMember.user_id == ctx.user_id)
        .execution_options(populate_existing=True)
    )
    row = result.first()
    if row is None:
        return ServiceResult.success(None)

    membership, team = row
    return ServiceResult.success(MyTeam(team=team, membership=membership))


async def list_hackathon_teams(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
) -> ServiceResult[list[TeamSummary]]:
    """All teams of a hackathon with their member counts (admin)."""
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    member_count = func.count(TeamMember.id)
    result = await ctx.session.execute(
        select(Team, member_count)
        .outerjoin(TeamMember, TeamMember.team_id == Team.id)
        .where(Team.hackathon_id == hackathon_id)
        .group_by(Team.id)
        .order_by(Team.name)
    )
    return ServiceResult.success(
        [TeamSummary(team=team, member_count=count) for team, count in result.all()]
    )


# ============== Members ==============


async def list_team_members(
    ctx: ServiceContext,
    team_id: uuid.UUID,
) -> ServiceResult[list[TeamMemberView]]:
    """
    Members of a team ordered by join time.

    Memberships and profiles are fetched separately and merged. A failed
    profile fetch degrades to bare memberships instead of failing the read.
    """
    if not ctx.is_authenticated:
        return unauthenticated()
    if await load_team(ctx, team_id) is None:
        return not_found("Team")
    if not await can_view_team(ctx, team_id):
        return forbidden("You cannot view this team")

    result = await ctx.session.execute(
        select(TeamMember)
        .where(TeamMember.team_id == team_id)
        .order_by(TeamMember.joined_at)
        .execution_options(populate_existing=True)
    )
    members = [
        TeamMemberView(
            id=member.id,
            team_id=member.team_id,
            user_id=member.user_id,
            is_owner=member.is_owner,
            joined_at=member.joined_at,
        )
        for member in result.scalars().all()
    ]
    if not members:
        return ServiceResult.success(members)

    try:
        profiles = await ctx.session.execute(
            select(Profile).where(Profile.user_id.in_([member.user_id for member in members]))
        )
        by_user = {profile.user_id: profile for profile in profiles.scalars().all()}
    except SQLAlchemyError as e:
        logger.warning(f"Profile enrichment failed for team {team_id}: {e}")
        return ServiceResult.success(members)

    for member in members:
        profile = by_user.get(member.user_id)
        if profile is not None:
            member.display_name = profile.display_name
            member.avatar_url = profile.avatar_url
    return ServiceResult.success(members)


async def add_team_member(
    ctx: ServiceContext,
    team_id: uuid.UUID,
    user_id: uuid.UUID,
    is_owner: bool = False,
) -> ServiceResult[TeamMember]:
    """Add a member directly (owner/admin). Adding a second owner is refused."""
    denied = await _owner_gate(ctx, team_id)
    if denied is not None:
        return denied

    if is_owner:
        return ServiceResult.fail(
            ErrorCode.VALIDATION,
            "A team has exactly one owner; promote an existing member instead",
        )

    team = await load_team(ctx, team_id)
    if await is_user_in_hackathon_team(ctx.session, team.hackathon_id, user_id):
        return ServiceResult.fail(
            ErrorCode.CONFLICT,
            "User already belongs to a team in this hackathon",
        )

    member = TeamMember(
        team_id=team_id,
        user_id=user_id,
        hackathon_id=team.hackathon_id,
        is_owner=False,
    )
    ctx.session.add(member)
    try:
        await ctx.session.commit()
    except IntegrityError as exc:
        await ctx.session.rollback()
        return ServiceResult.from_integrity_error(exc)

    logger.info(f"User {user_id} added to team {team_id}")
    return ServiceResult.success(member)


async def remove_team_member(
    ctx: ServiceContext,
    team_id: uuid.UUID,
    user_id: uuid.UUID,
) -> ServiceResult[None]:
    """Remove a non-owner member (owner/admin)."""
    denied = await _owner_gate(ctx, team_id)
    if denied is not None:
        return denied

    membership = await get_membership(ctx.session, team_id, user_id)
    if membership is None:
        return not_found("Team member")
    if membership.is_owner:
        return ServiceResult.fail(
            ErrorCode.VALIDATION,
            "The team owner cannot be removed; transfer ownership or delete the team",
        )

    await ctx.session.execute(delete(TeamMember).where(TeamMember.id == membership.id))
    await ctx.session.commit()
    logger.info(f"User {user_id} removed from team {team_id}")
    return ServiceResult.success(None)


async def update_team_member(
    ctx: ServiceContext,
    team_id: uuid.UUID,
    user_id: uuid.UUID,
    is_owner: bool,
) -> ServiceResult[TeamMember]:
    """
    Change a member's owner flag.

    Promoting a member demotes the current owner in the same transaction, so
    the team always has exactly one owner. Demoting the owner directly is
    rejected.
    """
    denied = await _owner_gate(ctx, team_id)
    if denied is not None:
        return denied

    membership = await get_membership(ctx.session, team_id, user_id)
    if membership is None:
        return not_found("Team member")

    if membership.is_owner == is_owner:
        return ServiceResult.success(membership)
    if not is_owner:
        return ServiceResult.fail(
            ErrorCode.VALIDATION,
            "A team must keep one owner; promote another member instead",
        )

    await ctx.session.execute(
        update(TeamMember)
        .where(TeamMember.team_id == team_id)
        .where(TeamMember.is_owner == True)  # noqa: E712
        .values(is_owner=False)
        .execution_options(synchronize_session=False)
    )
    await ctx.session.execute(
        update(TeamMember)
        .where(TeamMember.id == membership.id)
        .values(is_owner=True)
        .execution_options(synchronize_session=False)
    )
    await ctx.session.commit()

    logger.info(f"Ownership of team {team_id} transferred to {user_id}")
    return ServiceResult.success(await get_membership(ctx.session, team_id, user_id))


async def leave_team(ctx: ServiceContext, team_id: uuid.UUID) -> ServiceResult[None]:
    """
    Remove the caller's own membership.

    The owner cannot leave while other members remain, and a sole owner has
    to delete the team instead.
    """
    if not ctx.is_authenticated:
        return unauthenticated()

    team, hackathon = await _team_and_hackathon(ctx, team_id)
    if team is None or hackathon is None:
        return not_found("Team")

    closed = check_action(hackathon, HackathonAction.MANAGE_TEAM, ctx.now())
    if closed is not None:
        return closed

    membership = await get_membership(ctx.session, team_id, ctx.user_id)
    if membership is None:
        return not_found("Team membership")

    if membership.is_owner:
        if await _count_members(ctx, team_id) > 1:
            return ServiceResult.fail(
                ErrorCode.VALIDATION,
                "Transfer ownership before leaving the team",
            )
        return ServiceResult.fail(
            ErrorCode.VALIDATION,
            "You are the only member; delete the team instead",
        )

    await ctx.session.execute(delete(TeamMember).where(TeamMember.id == membership.id))
    await ctx.session.commit()
    logger.info(f"User {ctx.user_id} left team {team_id}")
    return ServiceResult.success(None)
