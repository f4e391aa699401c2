"""
Row builders shared by the backend tests.
"""

from datetime import datetime, timedelta, timezone

from app.models import Hackathon, HackathonStatus, Profile, User, UserRole
from app.services.auth_service import create_access_token

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


def make_user(email: str, role: UserRole = UserRole.PARTICIPANT, first_name: str | None = None) -> User:
    user = User(email=email, password_hash=None, role=role)
    user.profile = Profile(first_name=first_name or email.split("@")[0].title())
    return user


def make_hackathon(
    slug: str = "spring-hack",
    status: HackathonStatus = HackathonStatus.STARTED,
    start_at: datetime | None = None,
    end_at: datetime | None = None,
    **kwargs,
) -> Hackathon:
    return Hackathon(
        name=kwargs.pop("name", slug.replace("-", " ").title()),
        slug=slug,
        status=status,
        start_at=start_at or NOW - timedelta(days=1),
        end_at=end_at or NOW + timedelta(days=1),
        **kwargs,
    )


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}
