"""
Hackathon Service for Hackathon Hub.

Admin management of hackathons, their categories and judging criteria,
plus the public reads the participant screens start from.
"""

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from app.models.hackathon import Hackathon, HackathonCategory, HackathonStatus, JudgingCriterion
from app.services.context import ServiceContext
from app.services.policies import require_admin
from app.services.result import ErrorCode, ServiceResult, not_found
from app.services.status_engine import HackathonPermissions, as_utc, permissions_for

logger = logging.getLogger(__name__)

HACKATHON_FIELDS = frozenset(
    {
        "name",
        "slug",
        "description",
        "status",
        "start_at",
        "end_at",
        "registration_open_at",
        "registration_close_at",
    }
)
CATEGORY_FIELDS = frozenset({"name", "description", "display_order"})
CRITERION_FIELDS = frozenset({"name", "description", "weight", "display_order"})


def _validate_schedule(values: dict[str, Any]) -> ServiceResult | None:
    """Reject inverted start/end or registration windows."""
    start_at, end_at = as_utc(values.get("start_at")), as_utc(values.get("end_at"))
    if start_at is None or end_at is None:
        return ServiceResult.fail(ErrorCode.VALIDATION, "Start and end dates are required")
    if start_at >= end_at:
        return ServiceResult.fail(ErrorCode.VALIDATION, "start_at must be before end_at")

    open_at = as_utc(values.get("registration_open_at"))
    close_at = as_utc(values.get("registration_close_at"))
    if open_at is not None and close_at is not None and open_at > close_at:
        return ServiceResult.fail(
            ErrorCode.VALIDATION,
            "registration_open_at must not be after registration_close_at",
        )
    return None


async def load_hackathon(ctx: ServiceContext, hackathon_id: uuid.UUID) -> Hackathon | None:
    """Fetch a hackathon, refreshing any copy already in the identity map."""
    result = await ctx.session.execute(
        select(Hackathon)
        .where(Hackathon.id == hackathon_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


# ============== Public reads ==============


async def get_hackathon(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
) -> ServiceResult[Hackathon]:
    hackathon = await load_hackathon(ctx, hackathon_id)
    if hackathon is None:
        return not_found("Hackathon")
    return ServiceResult.success(hackathon)


async def get_hackathon_by_slug(ctx: ServiceContext, slug: str) -> ServiceResult[Hackathon]:
    result = await ctx.session.execute(select(Hackathon).where(Hackathon.slug == slug))
    hackathon = result.scalar_one_or_none()
    if hackathon is None:
        return not_found("Hackathon")
    return ServiceResult.success(hackathon)


async def get_active_hackathon(ctx: ServiceContext) -> ServiceResult[Hackathon]:
    """The active hackathon, or no data when none is active."""
    result = await ctx.session.execute(
        select(Hackathon)
        .where(Hackathon.is_active == True)  # noqa: E712
        .execution_options(populate_existing=True)
    )
    return ServiceResult.success(result.scalars().first())


async def get_permissions(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
) -> ServiceResult[HackathonPermissions]:
    """Status Engine output for a hackathon, evaluated on the server clock."""
    hackathon = await load_hackathon(ctx, hackathon_id)
    if hackathon is None:
        return not_found("Hackathon")
    return ServiceResult.success(permissions_for(hackathon, ctx.now()))


async def list_hackathon_categories(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
) -> ServiceResult[list[HackathonCategory]]:
    result = await ctx.session.execute(
        select(HackathonCategory)
        .where(HackathonCategory.hackathon_id == hackathon_id)
        .order_by(HackathonCategory.display_order, HackathonCategory.name)
    )
    return ServiceResult.success(list(result.scalars().all()))


async def list_judging_criteria(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
) -> ServiceResult[list[JudgingCriterion]]:
    result = await ctx.session.execute(
        select(JudgingCriterion)
        .where(JudgingCriterion.hackathon_id == hackathon_id)
        .order_by(JudgingCriterion.display_order, JudgingCriterion.name)
    )
    return ServiceResult.success(list(result.scalars().all()))


# ============== Admin: hackathons ==============


async def list_hackathons(ctx: ServiceContext) -> ServiceResult[list[Hackathon]]:
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    result = await ctx.session.execute(
        select(Hackathon)
        .order_by(Hackathon.start_at.desc())
        .execution_options(populate_existing=True)
    )
    return ServiceResult.success(list(result.scalars().all()))


async def create_hackathon(
    ctx: ServiceContext,
    name: str,
    slug: str,
    start_at: datetime,
    end_at: datetime,
    description: str | None = None,
    status: HackathonStatus = HackathonStatus.DRAFT,
    registration_open_at: datetime | None = None,
    registration_close_at: datetime | None = None,
) -> ServiceResult[Hackathon]:
    """Create a hackathon. New hackathons start as DRAFT unless told otherwise."""
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    values = {
        "name": name,
        "slug": slug,
        "description": description,
        "status": HackathonStatus(status),
        "start_at": start_at,
        "end_at": end_at,
        "registration_open_at": registration_open_at,
        "registration_close_at": registration_close_at,
    }
    invalid = _validate_schedule(values)
    if invalid is not None:
        return invalid

    hackathon = Hackathon(**values)
    ctx.session.add(hackathon)
    try:
        await ctx.session.commit()
    except IntegrityError as exc:
        await ctx.session.rollback()
        return ServiceResult.from_integrity_error(exc)

    logger.info(f"Hackathon {hackathon.slug} created by {ctx.user_id}")
    return ServiceResult.success(hackathon)


async def update_hackathon(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
    updates: dict[str, Any],
) -> ServiceResult[Hackathon]:
    """Apply a partial update. Status changes are unordered and admin-driven."""
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    hackathon = await load_hackathon(ctx, hackathon_id)
    if hackathon is None:
        return not_found("Hackathon")

    changes = {key: value for key, value in updates.items() if key in HACKATHON_FIELDS}
    if "status" in changes:
        changes["status"] = HackathonStatus(changes["status"])
    merged = {field: getattr(hackathon, field) for field in HACKATHON_FIELDS}
    merged.update(changes)
    invalid = _validate_schedule(merged)
    if invalid is not None:
        return invalid

    previous_status = hackathon.status
    for key, value in changes.items():
        setattr(hackathon, key, value)

    try:
        await ctx.session.commit()
    except IntegrityError as exc:
        await ctx.session.rollback()
        return ServiceResult.from_integrity_error(exc)

    if "status" in changes and changes["status"] != previous_status:
        logger.info(
            f"Hackathon {hackathon_id} status {previous_status} -> {hackathon.status}"
        )
    return ServiceResult.success(hackathon)


async def delete_hackathon(ctx: ServiceContext, hackathon_id: uuid.UUID) -> ServiceResult[None]:
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    result = await ctx.session.execute(delete(Hackathon).where(Hackathon.id == hackathon_id))
    if result.rowcount == 0:
        await ctx.session.rollback()
        return not_found("Hackathon")
    await ctx.session.commit()
    logger.info(f"Hackathon {hackathon_id} deleted by {ctx.user_id}")
    return ServiceResult.success(None)


async def set_active_hackathon(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
) -> ServiceResult[Hackathon]:
    """
    Make one hackathon the active one.

    A single UPDATE sets ``is_active = (id = :target)`` on every row, so no
    interleaving of concurrent activations can leave two rows active.
    """
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    if await load_hackathon(ctx, hackathon_id) is None:
        return not_found("Hackathon")

    await ctx.session.execute(
        update(Hackathon)
        .values(is_active=(Hackathon.id == hackathon_id))
        .execution_options(synchronize_session=False)
    )
    await ctx.session.commit()
    logger.info(f"Hackathon {hackathon_id} set active by {ctx.user_id}")
    return ServiceResult.success(await load_hackathon(ctx, hackathon_id))


# ============== Admin: categories ==============


async def _hackathon_exists(ctx: ServiceContext, hackathon_id: uuid.UUID) -> bool:
    return await load_hackathon(ctx, hackathon_id) is not None


async def create_category(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
    name: str,
    description: str | None = None,
    display_order: int = 0,
) -> ServiceResult[HackathonCategory]:
    denied = require_admin(ctx)
    if denied is not None:
        return denied
    if not await _hackathon_exists(ctx, hackathon_id):
        return not_found("Hackathon")

    category = HackathonCategory(
        hackathon_id=hackathon_id,
        name=name,
        description=description,
        display_order=display_order,
    )
    ctx.session.add(category)
    await ctx.session.commit()
    return ServiceResult.success(category)


async def update_category(
    ctx: ServiceContext,
    category_id: uuid.UUID,
    updates: dict[str, Any],
) -> ServiceResult[HackathonCategory]:
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    category = await ctx.session.get(HackathonCategory, category_id)
    if category is None:
        return not_found("Category")

    for key, value in updates.items():
        if key in CATEGORY_FIELDS:
            setattr(category, key, value)
    await ctx.session.commit()
    return ServiceResult.success(category)


async def delete_category(ctx: ServiceContext, category_id: uuid.UUID) -> ServiceResult[None]:
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    try:
        result = await ctx.session.execute(
            delete(HackathonCategory).where(HackathonCategory.id == category_id)
        )
    except IntegrityError as exc:
        # Submissions reference categories with ON DELETE RESTRICT
        await ctx.session.rollback()
        return ServiceResult.from_integrity_error(exc)

    if result.rowcount == 0:
        await ctx.session.rollback()
        return not_found("Category")
    await ctx.session.commit()
    return ServiceResult.success(None)


# ============== Admin: judging criteria ==============


async def create_criterion(
    ctx: ServiceContext,
    hackathon_id: uuid.UUID,
    name: str,
    weight: int,
    description: str | None = None,
    display_order: int = 0,
) -> ServiceResult[JudgingCriterion]:
    denied = require_admin(ctx)
    if denied is not None:
        return denied
    if not await _hackathon_exists(ctx, hackathon_id):
        return not_found("Hackathon")

    criterion = JudgingCriterion(
        hackathon_id=hackathon_id,
        name=name,
        weight=weight,
        description=description,
        display_order=display_order,
    )
    ctx.session.add(criterion)
    await ctx.session.commit()
    return ServiceResult.success(criterion)


async def update_criterion(
    ctx: ServiceContext,
    criterion_id: uuid.UUID,
    updates: dict[str, Any],
) -> ServiceResult[JudgingCriterion]:
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    criterion = await ctx.session.get(JudgingCriterion, criterion_id)
    if criterion is None:
        return not_found("Judging criterion")

    for key, value in updates.items():
        if key in CRITERION_FIELDS:
            setattr(criterion, key, value)
    await ctx.session.commit()
    return ServiceResult.success(criterion)


async def delete_criterion(ctx: ServiceContext, criterion_id: uuid.UUID) -> ServiceResult[None]:
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    result = await ctx.session.execute(
        delete(JudgingCriterion).where(JudgingCriterion.id == criterion_id)
    )
    if result.rowcount == 0:
        await ctx.session.rollback()
        return not_found("Judging criterion")
    await ctx.session.commit()
    return ServiceResult.success(None)
