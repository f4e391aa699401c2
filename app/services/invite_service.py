"""
Invite Service for Hackathon Hub.

Invites move ``pending -> accepted | rejected`` exactly once. The transition
is a conditional UPDATE guarded by ``status = 'pending'``; on accept the
membership insert commits in the same transaction.
"""

import logging
import secrets
import uuid
from dataclasses import dataclass

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError

from app.core.config import get_settings
from app.models.hackathon import Hackathon
from app.models.team import Team, TeamInvite, TeamInviteStatus, TeamMember
from app.models.user import User
from app.services.context import ServiceContext
from app.services.hackathon_service import load_hackathon
from app.services.policies import get_membership, is_team_owner, is_user_in_hackathon_team
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
class InviteView:
    """Pending invite shown to the invitee, with names for display."""

    invite: TeamInvite
    team_name: str
    hackathon_id: uuid.UUID
    hackathon_name: str


def generate_invite_token() -> str:
    return secrets.token_urlsafe(get_settings().invite_token_bytes)


async def load_invite(ctx: ServiceContext, invite_id: uuid.UUID) -> TeamInvite | None:
    result = await ctx.session.execute(
        select(TeamInvite)
        .where(TeamInvite.id == invite_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def invite_team_member(
    ctx: ServiceContext,
    team_id: uuid.UUID,
    email: str,
) -> ServiceResult[TeamInvite]:
    """
    Invite an email address to a team (owner only).

    Args:
        ctx: Service context
        team_id: Team to invite into
        email: Invitee address, matched case-insensitively

    Returns:
        ServiceResult with the pending TeamInvite
    """
    if not ctx.is_authenticated:
        return unauthenticated()

    team = await load_team(ctx, team_id)
    if team is None:
        return not_found("Team")
    if not await is_team_owner(ctx.session, team_id, ctx.user_id):
        return forbidden("Only the team owner can invite members")

    hackathon = await load_hackathon(ctx, team.hackathon_id)
    closed = check_action(hackathon, HackathonAction.MANAGE_TEAM, ctx.now())
    if closed is not None:
        return closed

    email = email.strip().lower()
    if email == ctx.user_email:
        return ServiceResult.fail(ErrorCode.VALIDATION, "You cannot invite yourself")

    pending = await ctx.session.execute(
        select(TeamInvite.id)
        .where(TeamInvite.team_id == team_id)
        .where(TeamInvite.invitee_email == email)
        .where(TeamInvite.status == TeamInviteStatus.PENDING)
    )
    if pending.first() is not None:
        return ServiceResult.fail(
            ErrorCode.CONFLICT,
            f"A pending invite for {email} already exists",
        )

    invitee = await ctx.session.execute(select(User.id).where(User.email == email))
    invitee_user_id = invitee.scalar_one_or_none()

    invite = TeamInvite(
        team_id=team_id,
        inviter_id=ctx.user_id,
        invitee_email=email,
        invitee_user_id=invitee_user_id,
        token=generate_invite_token(),
        status=TeamInviteStatus.PENDING,
    )
    ctx.session.add(invite)
    try:
        await ctx.session.commit()
    except IntegrityError as exc:
        await ctx.session.rollback()
        return ServiceResult.from_integrity_error(exc)

    logger.info(f"Invite {invite.id} sent to {email} for team {team_id}")
    return ServiceResult.success(invite)


async def get_team_invites(
    ctx: ServiceContext,
    team_id: uuid.UUID,
) -> ServiceResult[list[TeamInvite]]:
    """All invites of a team, newest first (owner/admin)."""
    if not ctx.is_authenticated:
        return unauthenticated()
    if await load_team(ctx, team_id) is None:
        return not_found("Team")
    if not ctx.is_admin and not await is_team_owner(ctx.session, team_id, ctx.user_id):
        return forbidden("Only the team owner can view invites")

    result = await ctx.session.execute(
        select(TeamInvite)
        .where(TeamInvite.team_id == team_id)
        .order_by(TeamInvite.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return ServiceResult.success(list(result.scalars().all()))


async def get_my_invites(ctx: ServiceContext) -> ServiceResult[list[InviteView]]:
    """Pending invites addressed to the caller's email or user id."""
    if not ctx.is_authenticated:
        return unauthenticated()

    result = await ctx.session.execute(
        select(TeamInvite, Team.name, Hackathon.id, Hackathon.name)
        .join(Team, Team.id == TeamInvite.team_id)
        .join(Hackathon, Hackathon.id == Team.hackathon_id)
        .where(TeamInvite.status == TeamInviteStatus.PENDING)
        .where(
            or_(
                TeamInvite.invitee_email == ctx.user_email,
                TeamInvite.invitee_user_id == ctx.user_id,
            )
        )
        .order_by(TeamInvite.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return ServiceResult.success(
        [
            InviteView(
                invite=invite,
                team_name=team_name,
                hackathon_id=hackathon_id,
                hackathon_name=hackathon_name,
            )
            for invite, team_name, hackathon_id, hackathon_name in result.all()
        ]
    )


async def get_invite_by_token(ctx: ServiceContext, token: str) -> ServiceResult[InviteView]:
    """Look an invite up by its token. No authentication needed."""
    result = await ctx.session.execute(
        select(TeamInvite, Team.name, Hackathon.id, Hackathon.name)
        .join(Team, Team.id == TeamInvite.team_id)
        .join(Hackathon, Hackathon.id == Team.hackathon_id)
        .where(TeamInvite.token == token)
        .execution_options(populate_existing=True)
    )
    row = result.first()
    if row is None:
        return not_found("Invite")

    invite, team_name, hackathon_id, hackathon_name = row
    return ServiceResult.success(
        InviteView(
            invite=invite,
            team_name=team_name,
            hackathon_id=hackathon_id,
            hackathon_name=hackathon_name,
        )
    )


def _is_invitee(ctx: ServiceContext, invite: TeamInvite) -> bool:
    if invite.invitee_user_id is not None and invite.invitee_user_id == ctx.user_id:
        return True
    return invite.invitee_email.lower() == ctx.user_email


async def respond_to_invite(
    ctx: ServiceContext,
    invite_id: uuid.UUID,
    accept: bool,
) -> ServiceResult[TeamInvite]:
    """
    Accept or reject a pending invite.

    The status flip only matches a pending row, so a second response (or a
    concurrent one) finds nothing to update and is reported as CONFLICT.
    Accepting inserts a non-owner membership in the same transaction unless
    the invitee is already on that team.
    """
    if not ctx.is_authenticated:
        return unauthenticated()

    invite = await load_invite(ctx, invite_id)
    if invite is None:
        return not_found("Invite")
    if not _is_invitee(ctx, invite):
        return forbidden("This invite is addressed to someone else")
    if invite.status != TeamInviteStatus.PENDING:
        return ServiceResult.fail(
            ErrorCode.CONFLICT,
            f"Invite has already been {TeamInviteStatus(invite.status).value}",
        )

    team_id = invite.team_id
    user_id = ctx.user_id
    team = await load_team(ctx, team_id)
    if team is None:
        return not_found("Team")
    hackathon_id = team.hackathon_id

    join_team = False
    if accept:
        hackathon = await load_hackathon(ctx, hackathon_id)
        closed = check_action(hackathon, HackathonAction.MANAGE_TEAM, ctx.now())
        if closed is not None:
            return closed

        already_member = await get_membership(ctx.session, team_id, user_id) is not None
        if not already_member and await is_user_in_hackathon_team(
            ctx.session, hackathon_id, user_id
        ):
            return ServiceResult.fail(
                ErrorCode.CONFLICT,
                "You already belong to another team in this hackathon",
            )
        join_team = not already_member

    new_status = TeamInviteStatus.ACCEPTED if accept else TeamInviteStatus.REJECTED
    flipped = await ctx.session.execute(
        update(TeamInvite)
        .where(TeamInvite.id == invite_id)
        .where(TeamInvite.status == TeamInviteStatus.PENDING)
        .values(status=new_status, responded_at=ctx.now(), invitee_user_id=user_id)
        .execution_options(synchronize_session=False)
    )
    if flipped.rowcount == 0:
        await ctx.session.rollback()
        return ServiceResult.fail(ErrorCode.CONFLICT, "Invite is no longer pending")

    if join_team:
        ctx.session.add(
            TeamMember(
                team_id=team_id,
                user_id=user_id,
                hackathon_id=hackathon_id,
                is_owner=False,
            )
        )

    try:
        await ctx.session.commit()
    except IntegrityError as exc:
        await ctx.session.rollback()
        return ServiceResult.from_integrity_error(exc)

    logger.info(f"Invite {invite_id} {new_status.value} by {user_id}")
    return ServiceResult.success(await load_invite(ctx, invite_id))


async def respond_to_invite_by_token(
    ctx: ServiceContext,
    token: str,
    accept: bool,
) -> ServiceResult[TeamInvite]:
    """Invite-link flow: resolve the token, then respond as the caller."""
    if not ctx.is_authenticated:
        return unauthenticated()

    found = await get_invite_by_token(ctx, token)
    if not found.ok:
        return found
    return await respond_to_invite(ctx, found.data.invite.id, accept)
