"""
Authentication API Endpoints for Hackathon Hub.

Handles user registration, login, logout, and session management.
"""

from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Cookie, Request, Response, status
from pydantic import BaseModel, EmailStr, Field

from app.api.common import MessageResponse, UserResponse
from app.core.config import get_settings
from app.core.dependencies import CurrentUser, DbSession, auth_exception
from app.middleware.security import rate_limit_login, rate_limit_register
from app.models.user import User
from app.services.auth_service import (
    AuthError,
    authenticate_user,
    change_password,
    create_access_token,
    create_session,
    invalidate_all_user_sessions,
    invalidate_session,
    register_user,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])
settings = get_settings()


# ============== Request/Response Models ==============


class RegisterRequest(BaseModel):
    """User registration request."""

    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "ada@example.com",
                "password": "securepassword123",
                "first_name": "Ada",
                "last_name": "Lovelace",
            }
        }
    }


class LoginRequest(BaseModel):
    """User login request."""

    email: EmailStr
    password: str = Field(..., description="Password")


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


class TokenResponse(BaseModel):
    """Token response for API clients."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class AuthResponse(BaseModel):
    """Authentication response with user data and tokens."""

    user: UserResponse
    access_token: str | None = None
    token_type: str = "bearer"
    expires_in: int | None = None


# ============== Helper Functions ==============


def _issue_token(user: User) -> str:
    return create_access_token(
        data={"sub": str(user.id)},
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )


async def _start_session(request: Request, response: Response, user: User) -> AuthResponse:
    """Create a browser session cookie and an API token for the user."""
    session_id = await create_session(user_id=str(user.id), request=request)
    response.set_cookie(
        key="session_id",
        value=session_id,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
        max_age=60 * 60 * 24 * settings.refresh_token_expire_days,
    )
    return AuthResponse(
        user=UserResponse.from_user(user),
        access_token=_issue_token(user),
        expires_in=settings.access_token_expire_minutes * 60,
    )


# ============== Endpoints ==============


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
@rate_limit_register()
async def register(
    request: Request,
    response: Response,
    data: RegisterRequest,
    session: DbSession,
) -> AuthResponse:
    """
    Register a new participant account.

    On success, creates a session cookie for browser clients and returns an
    access token for API clients.
    """
    try:
        user = await register_user(
            session=session,
            email=data.email,
            password=data.password,
            first_name=data.first_name,
            last_name=data.last_name,
        )
    except AuthError as e:
        raise auth_exception(e)

    return await _start_session(request, response, user)


@router.post("/login", response_model=AuthResponse)
@rate_limit_login()
async def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    session: DbSession,
) -> AuthResponse:
    """Authenticate with email and password."""
    try:
        user = await authenticate_user(session=session, email=data.email, password=data.password)
    except AuthError as e:
        raise auth_exception(e)

    return await _start_session(request, response, user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    session_cookie: Annotated[str | None, Cookie(alias="session_id")] = None,
) -> MessageResponse:
    """Clear the session cookie and invalidate the session in Redis."""
    if session_cookie:
        await invalidate_session(session_cookie)

    response.delete_cookie(key="session_id")
    return MessageResponse(message="Successfully logged out")


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(response: Response, user: CurrentUser) -> MessageResponse:
    """Invalidate all sessions for the current user."""
    await invalidate_all_user_sessions(str(user.id))
    response.delete_cookie(key="session_id")
    return MessageResponse(message="Successfully logged out from all devices")


@router.get("/me", response_model=UserResponse)
async def get_me(user: CurrentUser) -> UserResponse:
    """Get the current authenticated user's information."""
    return UserResponse.from_user(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(user: CurrentUser) -> TokenResponse:
    """Issue a new access token for an authenticated user."""
    return TokenResponse(
        access_token=_issue_token(user),
        expires_in=settings.access_token_expire_minutes * 60,
    )


@router.post("/change-password", response_model=MessageResponse)
async def change_password_endpoint(
    data: ChangePasswordRequest,
    user: CurrentUser,
    session: DbSession,
    response: Response,
) -> MessageResponse:
    """
    Change the current user's password.

    Invalidates all existing sessions after the change.
    """
    try:
        await change_password(session, user, data.current_password, data.new_password)
    except AuthError as e:
        raise auth_exception(e)

    response.delete_cookie(key="session_id")
    return MessageResponse(message="Password changed successfully. Please log in again.")
