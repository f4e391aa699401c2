"""
Status Engine for Hackathon Hub.

Maps a hackathon's lifecycle status and timestamps to the actions it
currently permits. Pure: the same computation backs the server-side gates
in every service and the ``/permissions`` endpoint clients render from.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from app.core.config import get_settings
from app.models.hackathon import Hackathon, HackathonStatus
from app.services.result import ErrorCode, ServiceResult

REGISTRATION_STATUSES = frozenset({HackathonStatus.OPEN, HackathonStatus.STARTED})
TEAM_STATUSES = frozenset({HackathonStatus.OPEN, HackathonStatus.STARTED})
JUDGING_STATUSES = frozenset({HackathonStatus.STARTED, HackathonStatus.FINISHED})


class HackathonAction(str, Enum):
    """Actions gated by hackathon status."""

    REGISTER = "register"
    MANAGE_TEAM = "manage_team"
    SUBMIT = "submit"
    JUDGE = "judge"


@dataclass(frozen=True)
class HackathonPermissions:
    """Booleans derived from a hackathon's status at a given instant."""

    can_register: bool
    can_manage_team: bool
    can_submit: bool
    can_judge: bool

    def allows(self, action: HackathonAction) -> bool:
        return {
            HackathonAction.REGISTER: self.can_register,
            HackathonAction.MANAGE_TEAM: self.can_manage_team,
            HackathonAction.SUBMIT: self.can_submit,
            HackathonAction.JUDGE: self.can_judge,
        }[action]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _within(now: datetime, start: datetime | None, end: datetime | None) -> bool:
    """Inclusive window check; a missing bound is open."""
    start, end = as_utc(start), as_utc(end)
    if start is not None and now < start:
        return False
    if end is not None and now > end:
        return False
    return True


def compute_permissions(
    status: HackathonStatus,
    start_at: datetime,
    end_at: datetime,
    registration_open_at: datetime | None = None,
    registration_close_at: datetime | None = None,
    now: datetime | None = None,
    enforce_registration_window: bool | None = None,
) -> HackathonPermissions:
    """
    Compute which actions a hackathon permits.

    Args:
        status: Lifecycle status
        start_at: Hackathon start
        end_at: Hackathon end
        registration_open_at: Optional registration window start
        registration_close_at: Optional registration window end
        now: Instant to evaluate at (defaults to the current UTC time)
        enforce_registration_window: Also require ``now`` inside the
            registration window to register (defaults to the setting)

    Returns:
        HackathonPermissions
    """
    now = as_utc(now) or datetime.now(timezone.utc)
    status = HackathonStatus(status)
    if enforce_registration_window is None:
        enforce_registration_window = get_settings().enforce_registration_window

    can_register = status in REGISTRATION_STATUSES
    if can_register and enforce_registration_window:
        can_register = _within(now, registration_open_at, registration_close_at)

    return HackathonPermissions(
        can_register=can_register,
        can_manage_team=status in TEAM_STATUSES,
        can_submit=status == HackathonStatus.STARTED and _within(now, start_at, end_at),
        can_judge=status in JUDGING_STATUSES,
    )


def permissions_for(hackathon: Hackathon, now: datetime | None = None) -> HackathonPermissions:
    """Compute permissions straight from a Hackathon row."""
    return compute_permissions(
        status=hackathon.status,
        start_at=hackathon.start_at,
        end_at=hackathon.end_at,
        registration_open_at=hackathon.registration_open_at,
        registration_close_at=hackathon.registration_close_at,
        now=now,
    )


_CLOSED_MESSAGES = {
    HackathonAction.REGISTER: "Registration is only available for hackathons with status OPEN or STARTED",
    HackathonAction.MANAGE_TEAM: "Team management is only available for hackathons with status OPEN or STARTED",
    HackathonAction.SUBMIT: "Project submissions are only available while the hackathon is STARTED and running",
    HackathonAction.JUDGE: "Judging is only available for hackathons with status STARTED or FINISHED",
}


def check_action(
    hackathon: Hackathon,
    action: HackathonAction,
    now: datetime | None = None,
) -> ServiceResult | None:
    """
    Gate an action on a hackathon.

    Returns:
        None when allowed, otherwise a failed ServiceResult (STATUS_CLOSED)
    """
    if permissions_for(hackathon, now).allows(action):
        return None
    status = HackathonStatus(hackathon.status).value
    return ServiceResult.fail(
        ErrorCode.STATUS_CLOSED,
        f"{_CLOSED_MESSAGES[action]}. Current status: {status}",
    )
