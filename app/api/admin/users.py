"""
User Administration API Endpoints.

Role assignment and the judge roster.
"""

import uuid

from fastapi import APIRouter, Query
from pydantic import BaseModel

from app.api.common import UserResponse, unwrap
from app.core.dependencies import AdminServiceCtx
from app.models.user import UserRole
from app.services import user_service

router = APIRouter(prefix="/users")


class RoleUpdateRequest(BaseModel):
    role: UserRole


@router.get("", response_model=list[UserResponse])
async def list_users(
    ctx: AdminServiceCtx,
    role: UserRole | None = Query(None, description="Only users with this role"),
) -> list[UserResponse]:
    users = unwrap(await user_service.list_users(ctx, role))
    return [UserResponse.from_user(user) for user in users]


@router.get("/judges", response_model=list[UserResponse])
async def list_judges(ctx: AdminServiceCtx) -> list[UserResponse]:
    users = unwrap(await user_service.list_judges(ctx))
    return [UserResponse.from_user(user) for user in users]


@router.patch("/{user_id}/role", response_model=UserResponse)
async def set_role(user_id: uuid.UUID, data: RoleUpdateRequest, ctx: AdminServiceCtx) -> UserResponse:
    user = unwrap(await user_service.set_user_role(ctx, user_id, data.role))
    return UserResponse.from_user(user)
