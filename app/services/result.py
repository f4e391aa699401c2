"""
Typed results returned by every Hackathon Hub service function.

Services never raise for expected failures. They return a ``ServiceResult``
holding either ``data`` or an ``error``; a result with neither means
"no row yet" for maybe-single reads.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from fastapi import status
from sqlalchemy.exc import IntegrityError

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Error taxonomy shared by services and the HTTP layer."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION = "VALIDATION"
    NO_TEAM = "NO_TEAM"
    STATUS_CLOSED = "STATUS_CLOSED"
    OWNER_MEMBERSHIP_FAILED = "OWNER_MEMBERSHIP_FAILED"


ERROR_STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.NO_TEAM: status.HTTP_409_CONFLICT,
    ErrorCode.STATUS_CLOSED: status.HTTP_403_FORBIDDEN,
    ErrorCode.OWNER_MEMBERSHIP_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@dataclass(frozen=True)
class ServiceError:
    """Error half of a service result."""

    code: ErrorCode
    message: str

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_CODES[self.code]


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """``(data, error)`` pair. Callers must check both."""

    data: T | None = None
    error: ServiceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T | None = None) -> "ServiceResult[T]":
        return cls(data=data)

    @classmethod
    def fail(cls, code: ErrorCode, message: str) -> "ServiceResult[T]":
        return cls(error=ServiceError(code=code, message=message))

    @classmethod
    def from_integrity_error(cls, exc: IntegrityError) -> "ServiceResult[T]":
        """Surface a constraint violation with the database message verbatim."""
        return cls.fail(ErrorCode.CONFLICT, str(exc.orig))


def unauthenticated() -> ServiceResult:
    return ServiceResult.fail(ErrorCode.UNAUTHENTICATED, "User not authenticated")


def forbidden(message: str) -> ServiceResult:
    return ServiceResult.fail(ErrorCode.FORBIDDEN, message)


def not_found(entity: str) -> ServiceResult:
    return ServiceResult.fail(ErrorCode.NOT_FOUND, f"{entity} not found")
