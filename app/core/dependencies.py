"""
FastAPI Dependencies for Hackathon Hub.

Reusable dependencies for database sessions, authentication, role checks and
the per-request service context.
"""

from typing import Annotated

from fastapi import Cookie, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.user import User, UserRole
from app.services.auth_service import (
    AuthError,
    get_current_user_from_session,
    get_current_user_from_token,
)
from app.services.context import ServiceContext

# Security scheme for API documentation
security = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]


def auth_exception(error: AuthError) -> HTTPException:
    """Render an AuthError with the same body shape as service errors."""
    return HTTPException(
        status_code=error.status_code,
        detail={"code": error.code.value, "message": error.message},
    )


async def get_current_user(
    request: Request,
    session: DbSession,
    session_cookie: Annotated[str | None, Cookie(alias="session_id")] = None,
    authorization: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
) -> User:
    """
    Get the currently authenticated user.

    Supports both session cookies and Bearer tokens.
    Session cookies are preferred for browser clients.
    Bearer tokens are supported for API clients.

    Raises:
        HTTPException: If authentication fails
    """
    # Try session cookie first (for browser clients)
    if session_cookie:
        try:
            return await get_current_user_from_session(session, request, session_cookie)
        except AuthError:
            if not (authorization and authorization.credentials):
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail={"code": "UNAUTHENTICATED", "message": "Invalid or expired session"},
                )

    # Try Bearer token (for API clients)
    if authorization and authorization.credentials:
        try:
            return await get_current_user_from_token(session, authorization.credentials)
        except AuthError as e:
            raise auth_exception(e)

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "UNAUTHENTICATED", "message": "Authentication required"},
        headers={"WWW-Authenticate": "Bearer"},
    )


CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_optional_user(
    request: Request,
    session: DbSession,
    session_cookie: Annotated[str | None, Cookie(alias="session_id")] = None,
    authorization: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
) -> User | None:
    """
    Get the currently authenticated user, or None if not authenticated.

    Used by public reads that personalise their answer when a user is known.
    """
    try:
        return await get_current_user(request, session, session_cookie, authorization)
    except HTTPException:
        return None


OptionalUser = Annotated[User | None, Depends(get_optional_user)]


async def require_admin(user: CurrentUser) -> User:
    """
    Require that the current user is an admin.

    Raises:
        HTTPException: If user is not an admin
    """
    if user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "FORBIDDEN", "message": "Admin access required"},
        )
    return user


AdminUser = Annotated[User, Depends(require_admin)]


async def require_judge(user: CurrentUser) -> User:
    """Require a judge (admins pass too)."""
    if user.role not in (UserRole.JUDGE, UserRole.ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "FORBIDDEN", "message": "Judge access required"},
        )
    return user


JudgeUser = Annotated[User, Depends(require_judge)]


async def get_service_context(session: DbSession, user: CurrentUser) -> ServiceContext:
    return ServiceContext(session=session, user=user)


async def get_optional_service_context(
    session: DbSession,
    user: OptionalUser,
) -> ServiceContext:
    return ServiceContext(session=session, user=user)


async def get_admin_service_context(session: DbSession, user: AdminUser) -> ServiceContext:
    return ServiceContext(session=session, user=user)


ServiceCtx = Annotated[ServiceContext, Depends(get_service_context)]
OptionalServiceCtx = Annotated[ServiceContext, Depends(get_optional_service_context)]
AdminServiceCtx = Annotated[ServiceContext, Depends(get_admin_service_context)]
