"""
Team Lifecycle Tests for Hackathon Hub.

Tests for:
- Team creation with atomic owner membership
- One team per user per hackathon
- Ownership transfer and leave rules
- Member listing with profile enrichment
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import HackathonStatus, Profile, Team, TeamMember
from app.services import hackathon_service, team_service
from app.services.result import ErrorCode
from app.services.team_service import slugify
from tests.backend.factories import NOW, make_hackathon


# ============== Slug Tests ==============


class TestSlugify:
    """Tests for slug generation."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Busy Bees", "busy-bees"),
            ("  Rust & Ruin!  ", "rust--ruin"),
            ("???", "team"),
        ],
    )
    def test_slugify(self, name, expected):
        """Names become lower-case dashed slugs."""
        assert slugify(name) == expected


# ============== Creation Tests ==============


class TestCreateTeam:
    """Tests for team creation."""

    @pytest.mark.asyncio
    async def test_creator_becomes_sole_owner(self, run, alice, hackathon):
        """The creator is the only member and the owner."""
        created = await run(team_service.create_team, alice, hackathon.id, "Busy Bees")
        assert created.ok
        assert created.data.slug == "busy-bees"

        mine = await run(team_service.get_my_team, alice, hackathon.id)

        assert mine.data.team.id == created.data.id
        assert mine.data.membership.is_owner is True

    @pytest.mark.asyncio
    async def test_second_team_in_same_hackathon_is_conflict(self, run, alice, hackathon):
        """Users cannot create two teams in one hackathon."""
        await run(team_service.create_team, alice, hackathon.id, "First")

        result = await run(team_service.create_team, alice, hackathon.id, "Second")

        assert result.error.code == ErrorCode.CONFLICT

    @pytest.mark.asyncio
    async def test_team_in_another_hackathon_is_allowed(self, run, alice, add, hackathon):
        """Teams in other hackathons are independent."""
        other = await add(make_hackathon("other-hack"))
        await run(team_service.create_team, alice, hackathon.id, "First")

        result = await run(team_service.create_team, alice, other.id, "First")

        assert result.ok

    @pytest.mark.asyncio
    async def test_duplicate_slug_is_conflict(self, run, alice, bob, hackathon):
        """Slugs are unique within a hackathon."""
        await run(team_service.create_team, alice, hackathon.id, "Busy Bees")

        result = await run(team_service.create_team, bob, hackathon.id, "Busy  Bees", slug="busy-bees")

        assert result.error.code == ErrorCode.CONFLICT

    @pytest.mark.asyncio
    async def test_closed_hackathon(self, run, alice, add):
        """Teams cannot be created in a closed hackathon."""
        finished = await add(make_hackathon("finished", status=HackathonStatus.FINISHED))

        result = await run(team_service.create_team, alice, finished.id, "Late")

        assert result.error.code == ErrorCode.STATUS_CLOSED

    @pytest.mark.asyncio
    async def test_failed_owner_membership_rolls_back_team(
        self, run, alice, hackathon, make_team, session_factory
    ):
        """A failed owner insert rolls back the team."""
        await make_team(hackathon, alice, "Original")

        with patch(
            "app.services.team_service.is_user_in_hackathon_team",
            AsyncMock(return_value=False),
        ):
            result = await run(team_service.create_team, alice, hackathon.id, "Shadow")

        assert result.error.code == ErrorCode.OWNER_MEMBERSHIP_FAILED
        assert result.error.status_code == 500

        async with session_factory() as session:
            shadow = await session.execute(select(Team).where(Team.slug == "shadow"))
            assert shadow.scalar_one_or_none() is None

    @pytest.mark.asyncio
    async def test_no_team_is_no_data(self, run, alice, hackathon):
        """No team is an empty result."""
        result = await run(team_service.get_my_team, alice, hackathon.id)

        assert result.ok
        assert result.data is None


# ============== Update and Removal Tests ==============


class TestUpdateAndRemoveTeam:
    """Tests for editing and deleting teams."""

    @pytest.mark.asyncio
    async def test_owner_renames_team(self, run, alice, hackathon, make_team):
        """Owners can rename; a null slug keeps the current one."""
        team = await make_team(hackathon, alice, "Old Name")

        result = await run(team_service.update_team, alice, team.id, {"name": "New Name", "slug": None})

        assert result.data.name == "New Name"
        assert result.data.slug == "old-name"

    @pytest.mark.asyncio
    async def test_null_description_clears_it(self, run, alice, hackathon, make_team):
        """A null description clears it."""
        team = await make_team(hackathon, alice, "Wordy")
        await run(team_service.update_team, alice, team.id, {"description": "We build things"})

        result = await run(team_service.update_team, alice, team.id, {"description": None})

        assert result.ok
        assert result.data.description is None
        assert result.data.name == "Wordy"

    @pytest.mark.asyncio
    async def test_member_cannot_update(self, run, alice, bob, hackathon, make_team):
        """Regular members cannot edit the team."""
        team = await make_team(hackathon, alice, "Owned", bob)

        result = await run(team_service.update_team, bob, team.id, {"name": "Hijack"})

        assert result.error.code == ErrorCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_remove_cascades_memberships(self, run, alice, bob, hackathon, make_team, session_factory):
        """Removing a team removes its memberships."""
        team = await make_team(hackathon, alice, "Doomed", bob)

        result = await run(team_service.remove_team, alice, team.id)
        assert result.ok

        async with session_factory() as session:
            members = await session.execute(select(func.count(TeamMember.id)))
            assert members.scalar_one() == 0

    @pytest.mark.asyncio
    async def test_admin_removes_team_after_hackathon_finished(
        self, run, admin, alice, hackathon, make_team
    ):
        """Admins can remove teams after the event."""
        team = await make_team(hackathon, alice, "Leftover")
        await run(hackathon_service.update_hackathon, admin, hackathon.id, {"status": "FINISHED"})

        result = await run(team_service.remove_team, admin, team.id)

        assert result.ok


# ============== Membership Tests ==============


class TestMembers:
    """Tests for membership management."""

    @pytest.mark.asyncio
    async def test_add_member(self, run, alice, bob, hackathon, make_team):
        """Owners can add members."""
        team = await make_team(hackathon, alice, "Growing")

        result = await run(team_service.add_team_member, alice, team.id, bob.id)

        assert result.ok
        assert result.data.is_owner is False

    @pytest.mark.asyncio
    async def test_cannot_add_second_owner(self, run, alice, bob, hackathon, make_team):
        """A team keeps a single owner."""
        team = await make_team(hackathon, alice, "Crowned")

        result = await run(team_service.add_team_member, alice, team.id, bob.id, is_owner=True)

        assert result.error.code == ErrorCode.VALIDATION

    @pytest.mark.asyncio
    async def test_cannot_add_member_of_another_team(self, run, alice, bob, hackathon, make_team):
        """Users already in another team cannot be added."""
        team = await make_team(hackathon, alice, "Mine")
        await make_team(hackathon, bob, "Theirs")

        result = await run(team_service.add_team_member, alice, team.id, bob.id)

        assert result.error.code == ErrorCode.CONFLICT

    @pytest.mark.asyncio
    async def test_owner_cannot_be_removed(self, run, admin, alice, hackathon, make_team):
        """The owner cannot be removed as a member."""
        team = await make_team(hackathon, alice, "Anchored")

        result = await run(team_service.remove_team_member, admin, team.id, alice.id)

        assert result.error.code == ErrorCode.VALIDATION

    @pytest.mark.asyncio
    async def test_remove_member(self, run, alice, bob, hackathon, make_team):
        """Owners can remove regular members."""
        team = await make_team(hackathon, alice, "Shrinking", bob)

        removed = await run(team_service.remove_team_member, alice, team.id, bob.id)
        mine = await run(team_service.get_my_team, bob, hackathon.id)

        assert removed.ok
        assert mine.data is None

    @pytest.mark.asyncio
    async def test_promotion_demotes_current_owner(self, run, alice, bob, hackathon, make_team):
        """Promoting a member demotes the old owner."""
        team = await make_team(hackathon, alice, "Handover", bob)

        result = await run(team_service.update_team_member, alice, team.id, bob.id, True)

        assert result.data.is_owner is True
        members = await run(team_service.list_team_members, bob, team.id)
        owners = [m.user_id for m in members.data if m.is_owner]
        assert owners == [bob.id]

    @pytest.mark.asyncio
    async def test_owner_cannot_demote_themselves(self, run, alice, bob, hackathon, make_team):
        """The sole owner cannot step down."""
        team = await make_team(hackathon, alice, "Stuck", bob)

        result = await run(team_service.update_team_member, alice, team.id, alice.id, False)

        assert result.error.code == ErrorCode.VALIDATION

    @pytest.mark.asyncio
    async def test_members_enriched_with_profiles(self, run, alice, bob, hackathon, make_team):
        """Members carry profile display names."""
        team = await make_team(hackathon, alice, "Named", bob)

        result = await run(team_service.list_team_members, alice, team.id)

        assert [m.display_name for m in result.data] == ["Alice", "Bob"]
        assert result.data[0].is_owner is True

    @pytest.mark.asyncio
    async def test_outsider_cannot_list_members(self, run, alice, carol, hackathon, make_team):
        """Outsiders cannot list members."""
        team = await make_team(hackathon, alice, "Private")

        result = await run(team_service.list_team_members, carol, team.id)

        assert result.error.code == ErrorCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_profile_failure_degrades_to_bare_members(
        self, run, alice, bob, hackathon, make_team
    ):
        """A failed profile read still returns members."""
        team = await make_team(hackathon, alice, "Degraded", bob)
        original_execute = AsyncSession.execute

        async def flaky_execute(self, statement, *args, **kwargs):
            froms = getattr(statement, "get_final_froms", lambda: [])()
            if Profile.__table__ in froms:
                raise OperationalError("SELECT profiles", {}, Exception("profiles unavailable"))
            return await original_execute(self, statement, *args, **kwargs)

        with patch.object(AsyncSession, "execute", flaky_execute):
            result = await run(team_service.list_team_members, alice, team.id)

        assert result.ok
        assert [m.user_id for m in result.data] == [alice.id, bob.id]
        assert all(m.display_name is None for m in result.data)


# ============== Leaving Tests ==============


class TestLeaveTeam:
    """Tests for leaving a team."""

    @pytest.mark.asyncio
    async def test_member_leaves(self, run, alice, bob, hackathon, make_team):
        """Members can leave their team."""
        team = await make_team(hackathon, alice, "Leaky", bob)

        result = await run(team_service.leave_team, bob, team.id)

        assert result.ok
        mine = await run(team_service.get_my_team, bob, hackathon.id)
        assert mine.data is None

    @pytest.mark.asyncio
    async def test_owner_with_members_must_transfer(self, run, alice, bob, hackathon, make_team):
        """Owners with members must transfer ownership first."""
        team = await make_team(hackathon, alice, "Captained", bob)

        result = await run(team_service.leave_team, alice, team.id)

        assert result.error.code == ErrorCode.VALIDATION
        assert "Transfer ownership" in result.error.message

    @pytest.mark.asyncio
    async def test_sole_owner_must_delete(self, run, alice, hackathon, make_team):
        """A sole owner deletes the team instead of leaving."""
        team = await make_team(hackathon, alice, "Lonely")

        result = await run(team_service.leave_team, alice, team.id)

        assert result.error.code == ErrorCode.VALIDATION
        assert "delete the team" in result.error.message

    @pytest.mark.asyncio
    async def test_leaving_after_end_of_event(self, run, alice, bob, add, make_team):
        """Leaving is gated by team management status."""
        finished = await add(make_hackathon("wrapped", status=HackathonStatus.FINISHED))
        team = await make_team(finished, alice, "Wrapped", bob)

        result = await run(team_service.leave_team, bob, team.id, now=NOW + timedelta(days=5))

        assert result.error.code == ErrorCode.STATUS_CLOSED


# ============== Admin Listing Tests ==============


class TestListHackathonTeams:
    """Tests for the admin team list."""

    @pytest.mark.asyncio
    async def test_counts_and_order(self, run, admin, alice, bob, carol, hackathon, make_team):
        """Teams are listed with member counts."""
        await make_team(hackathon, alice, "Zeta", bob)
        await make_team(hackathon, carol, "Alpha")

        result = await run(team_service.list_hackathon_teams, admin, hackathon.id)

        assert [(s.team.name, s.member_count) for s in result.data] == [("Alpha", 1), ("Zeta", 2)]

    @pytest.mark.asyncio
    async def test_requires_admin(self, run, alice, hackathon):
        """Only admins can list all teams."""
        result = await run(team_service.list_hackathon_teams, alice, hackathon.id)

        assert result.error.code == ErrorCode.FORBIDDEN
