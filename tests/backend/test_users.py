"""
User and Profile Tests for Hackathon Hub.
"""

import uuid

import pytest

from app.models import UserRole
from app.services import user_service
from app.services.result import ErrorCode


# ============== Profile Tests ==============


class TestProfile:
    """Tests for profile reads and updates."""

    @pytest.mark.asyncio
    async def test_update_ignores_unknown_fields(self, run, alice):
        """Only profile fields are updated."""
        result = await run(
            user_service.update_profile,
            alice,
            {"last_name": "Liddell", "role": "admin"},
        )

        assert result.data.display_name == "Alice Liddell"
        profile = await run(user_service.get_profile, alice)
        assert profile.data.last_name == "Liddell"

    @pytest.mark.asyncio
    async def test_anonymous_has_no_profile(self, run):
        """Anonymous callers are UNAUTHENTICATED."""
        result = await run(user_service.get_profile, None)

        assert result.error.code == ErrorCode.UNAUTHENTICATED


# ============== Role Tests ==============


class TestRoles:
    """Tests for admin role management."""

    @pytest.mark.asyncio
    async def test_promote_to_judge(self, run, admin, bob, judge):
        """Promoted users appear in the judge list."""
        promoted = await run(user_service.set_user_role, admin, bob.id, UserRole.JUDGE)
        judges = await run(user_service.list_judges, admin)

        assert promoted.data.role == UserRole.JUDGE
        assert [u.email for u in judges.data] == ["bob@example.com", "judge@example.com"]

    @pytest.mark.asyncio
    async def test_participants_cannot_assign_roles(self, run, alice, bob):
        """Participants cannot change roles."""
        result = await run(user_service.set_user_role, alice, bob.id, UserRole.ADMIN)

        assert result.error.code == ErrorCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_unknown_user(self, run, admin):
        """Unknown users are NOT_FOUND."""
        result = await run(user_service.set_user_role, admin, uuid.uuid4(), UserRole.JUDGE)

        assert result.error.code == ErrorCode.NOT_FOUND
