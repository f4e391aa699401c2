"""
Security Middleware for Hackathon Hub.

Implements rate limiting, security headers and per-request timeouts.
"""

import asyncio
import logging
from collections.abc import Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# ============== Rate Limiting ==============

# Initialize slowapi limiter with default key function
limiter = Limiter(key_func=get_remote_address)


# ============== Request Timeout ==============


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    """
    Bound every request by a deadline.

    A request still running when the deadline passes is cancelled and
    answered with 504 instead of leaving the client waiting.
    """

    def __init__(self, app: FastAPI, timeout_seconds: float):
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                f"Request {request.method} {request.url.path} exceeded {self.timeout_seconds}s"
            )
            return JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={
                    "detail": {
                        "code": "TIMEOUT",
                        "message": "The request took too long to complete",
                    }
                },
            )


# ============== Security Headers ==============


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Security Headers Middleware.

    Adds HSTS, CSP, framing, sniffing and referrer headers to all responses.
    """

    def __init__(
        self,
        app: FastAPI,
        hsts_max_age: int = 31536000,  # 1 year
        hsts_include_subdomains: bool = True,
    ):
        super().__init__(app)
        self.hsts_max_age = hsts_max_age
        self.hsts_include_subdomains = hsts_include_subdomains

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        hsts_value = f"max-age={self.hsts_max_age}"
        if self.hsts_include_subdomains:
            hsts_value += "; includeSubDomains"
        response.headers["Strict-Transport-Security"] = hsts_value

        # /docs loads swagger assets from a CDN
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
            "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
            "img-src 'self' data: https:; "
            "frame-ancestors 'none'; "
            "base-uri 'self';"
        )
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


# ============== Rate Limit Exception Handler ==============


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Custom handler for rate limit exceeded errors."""
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)} on {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "detail": {
                "code": "RATE_LIMITED",
                "message": f"Rate limit exceeded: {exc.detail}. Please try again later.",
            }
        },
        headers={"Retry-After": "60"},
    )


# ============== Setup Function ==============


def setup_security_middleware(app: FastAPI) -> None:
    """
    Setup all security middleware for the FastAPI application.

    Call after creating the FastAPI app and before adding routes.
    """
    settings = get_settings()

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Last added is outermost: the timeout wraps header injection
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestTimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)


# ============== Decorators for Rate Limiting ==============


def rate_limit_login() -> Callable:
    """Rate limit decorator for the login endpoint."""
    return limiter.limit(lambda: get_settings().rate_limit_login)


def rate_limit_register() -> Callable:
    """Rate limit decorator for account registration."""
    return limiter.limit(lambda: get_settings().rate_limit_register)


def rate_limit_invites() -> Callable:
    """Rate limit decorator for sending team invites."""
    return limiter.limit(lambda: get_settings().rate_limit_invites)
