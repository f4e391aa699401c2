"""
User Service for Hackathon Hub.

Profile reads and edits for the current user, and the admin side of user
management: role assignment and the judge roster.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select

from app.models.user import Profile, User, UserRole
from app.services.context import ServiceContext
from app.services.policies import require_admin
from app.services.result import ServiceResult, not_found, unauthenticated

logger = logging.getLogger(__name__)

PROFILE_FIELDS = frozenset({"first_name", "last_name", "avatar_url", "organization", "title"})


async def _load_profile(ctx: ServiceContext, user_id: uuid.UUID) -> Profile | None:
    result = await ctx.session.execute(
        select(Profile)
        .where(Profile.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_profile(ctx: ServiceContext) -> ServiceResult[Profile]:
    if not ctx.is_authenticated:
        return unauthenticated()
    return ServiceResult.success(await _load_profile(ctx, ctx.user_id))


async def update_profile(ctx: ServiceContext, updates: dict[str, Any]) -> ServiceResult[Profile]:
    """Apply a partial profile update, creating the profile on first edit."""
    if not ctx.is_authenticated:
        return unauthenticated()

    profile = await _load_profile(ctx, ctx.user_id)
    if profile is None:
        profile = Profile(user_id=ctx.user_id)
        ctx.session.add(profile)

    for key, value in updates.items():
        if key in PROFILE_FIELDS:
            setattr(profile, key, value)
    await ctx.session.commit()
    return ServiceResult.success(profile)


async def list_users(
    ctx: ServiceContext,
    role: UserRole | None = None,
) -> ServiceResult[list[User]]:
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    stmt = select(User).order_by(User.email)
    if role is not None:
        stmt = stmt.where(User.role == UserRole(role))
    result = await ctx.session.execute(stmt)
    return ServiceResult.success(list(result.scalars().all()))


async def list_judges(ctx: ServiceContext) -> ServiceResult[list[User]]:
    return await list_users(ctx, UserRole.JUDGE)


async def set_user_role(
    ctx: ServiceContext,
    user_id: uuid.UUID,
    role: UserRole,
) -> ServiceResult[User]:
    denied = require_admin(ctx)
    if denied is not None:
        return denied

    user = await ctx.session.get(User, user_id)
    if user is None:
        return not_found("User")

    previous = user.role
    user.role = UserRole(role)
    await ctx.session.commit()
    logger.info(f"User {user_id} role {previous} -> {user.role} by {ctx.user_id}")
    return ServiceResult.success(user)
