"""
Explicit per-request context threaded into every service call.
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User, UserRole


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ServiceContext:
    """
    Database session, acting user (None when anonymous) and server clock.

    The user's id, email and role are copied at construction: a rollback
    expires every ORM instance in the session, and services must still be
    able to name the actor afterwards.
    """

    session: AsyncSession
    user: User | None = None
    clock: Callable[[], datetime] = field(default=_utcnow)
    user_id: uuid.UUID | None = field(init=False, default=None)
    user_email: str | None = field(init=False, default=None)
    user_role: UserRole | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        if self.user is not None:
            self.user_id = self.user.id
            self.user_email = self.user.email.lower()
            self.user_role = UserRole(self.user.role)

    def now(self) -> datetime:
        return self.clock()

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return self.user_role == UserRole.ADMIN

    @property
    def is_judge(self) -> bool:
        return self.user_role == UserRole.JUDGE
