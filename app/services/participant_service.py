"""
Participant Service for Hackathon Hub.

Registration of users for hackathons and the per-user hackathon listing.
Registration is independent of team membership.
"""

import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from app.models.hackathon import Hackathon, HackathonParticipant, HackathonStatus
from app.services.context import ServiceContext
from app.services.hackathon_service import get_active_hackathon, load_hackathon
from app.services.result import ServiceResult, not_found, unauthenticated
from app.services.status_engine import HackathonAction, check_action

logger = logging.getLogger(__name__)

OPEN_STATUSES = (HackathonStatus.OPEN, HackathonStatus.STARTED)


async def register_for_hackathon(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
) -> ServiceResult[HackathonParticipant]:
    """Register the current user. A second registration is a CONFLICT."""
    if not ctx.is_authenticated:
        return unauthenticated()

    hackathon = await load_hackathon(ctx, hackathon_id)
    if hackathon is None:
        return not_found("Hackathon")

    closed = check_action(hackathon, HackathonAction.REGISTER, ctx.now())
    if closed is not None:
        return closed

    participant = HackathonParticipant(hackathon_id=hackathon_id, user_id=ctx.user_id)
    ctx.session.add(participant)
    try:
        await ctx.session.commit()
    except IntegrityError as exc:
        await ctx.session.rollback()
        return ServiceResult.from_integrity_error(exc)

    logger.info(f"User {ctx.user_id} registered for hackathon {hackathon_id}")
    return ServiceResult.success(participant)


async def leave_hackathon(ctx: ServiceContext, hackathon_id: uuid.UUID) -> ServiceResult[None]:
    if not ctx.is_authenticated:
        return unauthenticated()

    await ctx.session.execute(
        delete(HackathonParticipant)
        .where(HackathonParticipant.hackathon_id == hackathon_id)
        .where(HackathonParticipant.user_id == ctx.user_id)
    )
    await ctx.session.commit()
    logger.info(f"User {ctx.user_id} left hackathon {hackathon_id}")
    return ServiceResult.success(None)


async def get_my_hackathons(ctx: ServiceContext) -> ServiceResult[list[Hackathon]]:
    """Hackathons the user registered for, most recent registration first."""
    if not ctx.is_authenticated:
        return ServiceResult.success([])

    result = await ctx.session.execute(
        select(Hackathon)
        .join(HackathonParticipant, HackathonParticipant.hackathon_id == Hackathon.id)
        .where(HackathonParticipant.user_id == ctx.user_id)
        .order_by(HackathonParticipant.registered_at.desc())
        .execution_options(populate_existing=True)
    )
    return ServiceResult.success(list(result.scalars().all()))


async def get_open_hackathons(ctx: ServiceContext) -> ServiceResult[list[Hackathon]]:
    """Hackathons whose status is OPEN or STARTED, soonest first."""
    result = await ctx.session.execute(
        select(Hackathon)
        .where(Hackathon.status.in_(OPEN_STATUSES))
        .order_by(Hackathon.start_at.asc())
    )
    return ServiceResult.success(list(result.scalars().all()))


async def check_if_registered(ctx: ServiceContext, hackathon_id: uuid.UUID) -> ServiceResult[bool]:
    if not ctx.is_authenticated:
        return ServiceResult.success(False)

    result = await ctx.session.execute(
        select(HackathonParticipant.id)
        .where(HackathonParticipant.hackathon_id == hackathon_id)
        .where(HackathonParticipant.user_id == ctx.user_id)
    )
    return ServiceResult.success(result.scalar_one_or_none() is not None)


async def resolve_current_hackathon(ctx: ServiceContext) -> ServiceResult[Hackathon]:
    """
    Pick the hackathon a user lands on.

    First registered hackathon that is STARTED or OPEN, else the first
    registered one, else the globally active hackathon (or no data).
    """
    mine = await get_my_hackathons(ctx)
    if not mine.ok:
        return mine

    hackathons = mine.data or []
    for hackathon in hackathons:
        if hackathon.status in OPEN_STATUSES:
            return ServiceResult.success(hackathon)
    if hackathons:
        return ServiceResult.success(hackathons[0])
    return await get_active_hackathon(ctx)
