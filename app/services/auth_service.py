"""
Authentication Service for Hackathon Hub.

Handles user registration, authentication, and session management.
Browser clients get Redis-backed sessions bound to a client fingerprint;
API clients get JWT bearer tokens.
"""

import hashlib
import hmac
import ipaddress
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import redis.asyncio as redis
from fastapi import Request, status
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models.user import Profile, User, UserRole
from app.services.result import ErrorCode

logger = logging.getLogger(__name__)

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Redis connection for session storage
_redis_pool: redis.Redis | None = None


class AuthError(Exception):
    """Authentication failure carrying the HTTP status and error code to report."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        code: ErrorCode = ErrorCode.VALIDATION,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(self.message)


def _unauthorized(message: str) -> AuthError:
    return AuthError(message, status.HTTP_401_UNAUTHORIZED, ErrorCode.UNAUTHENTICATED)


def _banned() -> AuthError:
    return AuthError("Account has been banned", status.HTTP_403_FORBIDDEN, ErrorCode.FORBIDDEN)


async def get_redis() -> redis.Redis:
    """Get or create Redis connection pool."""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_pool


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a plain password."""
    return pwd_context.hash(password)


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as e:
        raise _unauthorized("Invalid or expired token") from e


def _get_ip_subnet(ip: str) -> str:
    """Extract /24 (IPv4) or /64 (IPv6) subnet from IP address for session binding."""
    try:
        ip_obj = ipaddress.ip_address(ip)
        prefix = 24 if isinstance(ip_obj, ipaddress.IPv4Address) else 64
        return str(ipaddress.ip_network(f"{ip}/{prefix}", strict=False).network_address)
    except ValueError:
        return ip


def _hash_fingerprint(request: Request) -> str:
    """Hash of User-Agent and IP subnet."""
    user_agent = request.headers.get("user-agent", "")
    client_ip = request.client.host if request.client else "unknown"
    fingerprint = f"{user_agent}:{_get_ip_subnet(client_ip)}"
    return hashlib.sha256(fingerprint.encode()).hexdigest()


async def create_session(user_id: str, request: Request) -> str:
    """
    Create a new browser session bound to the client fingerprint.

    Args:
        user_id: The user's UUID as string
        request: FastAPI request object

    Returns:
        Session ID string
    """
    session_id = secrets.token_urlsafe(32)
    redis_client = await get_redis()

    session_key = f"session:{session_id}"
    await redis_client.hset(
        session_key,
        mapping={
            "user_id": user_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "fingerprint": _hash_fingerprint(request),
        },
    )
    await redis_client.expire(session_key, timedelta(days=settings.refresh_token_expire_days))
    await redis_client.sadd(f"user_sessions:{user_id}", session_id)

    return session_id


async def validate_session(session_id: str, request: Request) -> str:
    """
    Validate a session and its fingerprint.

    Returns:
        User ID if session is valid

    Raises:
        AuthError: If session is invalid or fingerprint mismatch
    """
    redis_client = await get_redis()
    session_key = f"session:{session_id}"

    session_data = await redis_client.hgetall(session_key)
    if not session_data:
        raise _unauthorized("Invalid or expired session")

    stored_fingerprint = session_data.get("fingerprint", "")
    if not hmac.compare_digest(_hash_fingerprint(request), stored_fingerprint):
        await redis_client.delete(session_key)
        logger.warning(f"Session fingerprint mismatch for user {session_data.get('user_id')}")
        raise _unauthorized("Session invalidated due to suspicious activity")

    await redis_client.expire(session_key, timedelta(days=settings.refresh_token_expire_days))
    return session_data["user_id"]


async def invalidate_session(session_id: str) -> None:
    """Invalidate a session by deleting it from Redis."""
    redis_client = await get_redis()
    await redis_client.delete(f"session:{session_id}")


async def invalidate_all_user_sessions(user_id: str) -> None:
    """Invalidate every session of a user (e.g. on password change)."""
    redis_client = await get_redis()
    index_key = f"user_sessions:{user_id}"
    session_ids = await redis_client.smembers(index_key)
    if session_ids:
        await redis_client.delete(*(f"session:{sid}" for sid in session_ids))
    await redis_client.delete(index_key)


async def register_user(
    session: AsyncSession,
    email: str,
    password: str,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    """
    Register a new participant account with its profile.

    Args:
        session: Database session
        email: User's email address (stored lower-cased)
        password: Plain text password
        first_name: Optional first name for the profile
        last_name: Optional last name for the profile

    Returns:
        Created User object

    Raises:
        AuthError: If validation fails or the email is taken
    """
    email = email.strip().lower()

    if len(password) < settings.password_min_length:
        raise AuthError(f"Password must be at least {settings.password_min_length} characters")

    result = await session.execute(select(User.id).where(User.email == email))
    if result.scalar_one_or_none() is not None:
        raise AuthError("Email already registered", status.HTTP_409_CONFLICT, ErrorCode.CONFLICT)

    user = User(
        email=email,
        password_hash=get_password_hash(password),
        role=UserRole.PARTICIPANT,
    )
    user.profile = Profile(first_name=first_name, last_name=last_name)
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise AuthError("Email already registered", status.HTTP_409_CONFLICT, ErrorCode.CONFLICT) from e

    logger.info(f"User {user.id} registered")
    return user


async def authenticate_user(session: AsyncSession, email: str, password: str) -> User:
    """
    Authenticate a user with email and password.

    Raises:
        AuthError: If authentication fails
    """
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    user = result.scalar_one_or_none()

    if not user or not user.password_hash:
        raise _unauthorized("Invalid credentials")

    if user.is_banned:
        raise _banned()

    if not verify_password(password, user.password_hash):
        raise _unauthorized("Invalid credentials")

    return user


async def change_password(
    session: AsyncSession,
    user: User,
    current_password: str,
    new_password: str,
) -> None:
    """Change a password and drop every session of the user."""
    if not user.password_hash or not verify_password(current_password, user.password_hash):
        raise AuthError("Current password is incorrect")

    if len(new_password) < settings.password_min_length:
        raise AuthError(f"Password must be at least {settings.password_min_length} characters")

    user.password_hash = get_password_hash(new_password)
    await session.commit()
    await invalidate_all_user_sessions(str(user.id))
    logger.info(f"Password changed for user {user.id}")


async def get_user_by_id(session: AsyncSession, user_id: str) -> User:
    """
    Load an active user by id.

    Raises:
        AuthError: If the user does not exist or is banned
    """
    result = await session.execute(select(User).where(User.id == _as_uuid(user_id)))
    user = result.scalar_one_or_none()

    if not user:
        raise _unauthorized("User not found")

    if user.is_banned:
        raise _banned()

    return user


def _as_uuid(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise _unauthorized("Invalid user id") from e


async def get_current_user_from_session(
    session: AsyncSession,
    request: Request,
    session_cookie: str | None = None,
) -> User:
    """
    Get the current user from session cookie.

    Raises:
        AuthError: If session is invalid or user not found
    """
    if not session_cookie:
        raise _unauthorized("No session provided")

    user_id = await validate_session(session_cookie, request)
    return await get_user_by_id(session, user_id)


async def get_current_user_from_token(session: AsyncSession, token: str) -> User:
    """
    Get the current user from a bearer token.

    Raises:
        AuthError: If the token is invalid or user not found
    """
    payload = decode_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token payload")
    return await get_user_by_id(session, user_id)
