"""
Hackathon Administration Tests for Hackathon Hub.

Tests for:
- Creating and updating hackathons
- Single active hackathon
- Categories and judging criteria
- Server-evaluated permissions
"""

import random
import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.models import Hackathon, HackathonStatus, ProjectSubmission, Team
from app.services import hackathon_service
from app.services.result import ErrorCode
from tests.backend.factories import NOW, make_hackathon


# ============== Creation Tests ==============


class TestCreateHackathon:
    """Tests for hackathon creation."""

    @pytest.mark.asyncio
    async def test_admin_creates_draft(self, run, admin):
        """New hackathons start as inactive drafts."""
        result = await run(
            hackathon_service.create_hackathon,
            admin,
            name="Autumn Hack",
            slug="autumn-hack",
            start_at=NOW + timedelta(days=10),
            end_at=NOW + timedelta(days=12),
        )

        assert result.ok
        assert result.data.status == HackathonStatus.DRAFT
        assert result.data.is_active is False

    @pytest.mark.asyncio
    async def test_participant_is_forbidden(self, run, alice):
        """Participants cannot create hackathons."""
        result = await run(
            hackathon_service.create_hackathon,
            alice,
            name="Nope",
            slug="nope",
            start_at=NOW,
            end_at=NOW + timedelta(days=1),
        )

        assert result.error.code == ErrorCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_anonymous_is_unauthenticated(self, run):
        """Anonymous callers are UNAUTHENTICATED."""
        result = await run(
            hackathon_service.create_hackathon,
            None,
            name="Nope",
            slug="nope",
            start_at=NOW,
            end_at=NOW + timedelta(days=1),
        )

        assert result.error.code == ErrorCode.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_start_must_precede_end(self, run, admin):
        """An inverted schedule is a VALIDATION error."""
        result = await run(
            hackathon_service.create_hackathon,
            admin,
            name="Backwards",
            slug="backwards",
            start_at=NOW + timedelta(days=2),
            end_at=NOW,
        )

        assert result.error.code == ErrorCode.VALIDATION

    @pytest.mark.asyncio
    async def test_duplicate_slug_is_conflict(self, run, admin, hackathon):
        """Slugs are unique across hackathons."""
        result = await run(
            hackathon_service.create_hackathon,
            admin,
            name="Copy",
            slug=hackathon.slug,
            start_at=NOW,
            end_at=NOW + timedelta(days=1),
        )

        assert result.error.code == ErrorCode.CONFLICT


# ============== Update Tests ==============


class TestUpdateHackathon:
    """Status transitions are admin-driven and unordered."""

    @pytest.mark.asyncio
    async def test_status_can_move_backwards(self, run, admin, add):
        """Admins may move a FINISHED hackathon back to OPEN."""
        finished = await add(make_hackathon("done", status=HackathonStatus.FINISHED))

        result = await run(
            hackathon_service.update_hackathon,
            admin,
            finished.id,
            {"status": "OPEN"},
        )

        assert result.ok
        assert result.data.status == HackathonStatus.OPEN

    @pytest.mark.asyncio
    async def test_unknown_fields_are_ignored(self, run, admin, hackathon):
        """Only editable fields are applied."""
        result = await run(
            hackathon_service.update_hackathon,
            admin,
            hackathon.id,
            {"name": "Renamed", "is_active": True},
        )

        assert result.data.name == "Renamed"
        assert result.data.is_active is False

    @pytest.mark.asyncio
    async def test_inverted_schedule_is_rejected(self, run, admin, hackathon):
        """Updates cannot put end_at before start_at."""
        result = await run(
            hackathon_service.update_hackathon,
            admin,
            hackathon.id,
            {"end_at": NOW - timedelta(days=5)},
        )

        assert result.error.code == ErrorCode.VALIDATION

    @pytest.mark.asyncio
    async def test_missing_hackathon(self, run, admin):
        """Updating an unknown hackathon is NOT_FOUND."""
        result = await run(hackathon_service.update_hackathon, admin, uuid.uuid4(), {"name": "x"})

        assert result.error.code == ErrorCode.NOT_FOUND


# ============== Active Hackathon Tests ==============


class TestActiveHackathon:
    """At most one hackathon is active after any sequence of activations."""

    @pytest.mark.asyncio
    async def test_activation_sequence_keeps_single_active(self, run, admin, add, session_factory):
        """Exactly one hackathon stays active across activations."""
        hackathons = [await add(make_hackathon(f"hack-{i}")) for i in range(4)]
        rng = random.Random(7)

        for _ in range(10):
            target = rng.choice(hackathons)
            result = await run(hackathon_service.set_active_hackathon, admin, target.id)
            assert result.ok
            assert result.data.id == target.id
            assert result.data.is_active is True

            async with session_factory() as session:
                active = await session.execute(
                    select(func.count(Hackathon.id)).where(Hackathon.is_active == True)  # noqa: E712
                )
                assert active.scalar_one() == 1

        current = await run(hackathon_service.get_active_hackathon, None)
        assert current.data.id == target.id

    @pytest.mark.asyncio
    async def test_no_active_hackathon_is_no_data(self, run, hackathon):
        """No active hackathon is an empty result, not an error."""
        result = await run(hackathon_service.get_active_hackathon, None)

        assert result.ok
        assert result.data is None

    @pytest.mark.asyncio
    async def test_only_admins_activate(self, run, alice, hackathon):
        """Participants cannot activate hackathons."""
        result = await run(hackathon_service.set_active_hackathon, alice, hackathon.id)

        assert result.error.code == ErrorCode.FORBIDDEN


# ============== Category and Criterion Tests ==============


class TestCategoriesAndCriteria:
    """Tests for category and criterion management."""

    @pytest.mark.asyncio
    async def test_categories_listed_by_display_order(self, run, admin, hackathon):
        """Categories come back sorted by display_order."""
        await run(hackathon_service.create_category, admin, hackathon.id, "Web", display_order=2)
        await run(hackathon_service.create_category, admin, hackathon.id, "Hardware", display_order=1)

        result = await run(hackathon_service.list_hackathon_categories, None, hackathon.id)

        assert [c.name for c in result.data] == ["Hardware", "Web"]

    @pytest.mark.asyncio
    async def test_category_in_use_cannot_be_deleted(
        self, run, admin, alice, add, hackathon, category, make_team
    ):
        """A category with submissions cannot be deleted."""
        team = await make_team(hackathon, alice, "Busy Bees")
        await add(
            ProjectSubmission(
                team_id=team.id,
                hackathon_id=hackathon.id,
                category_id=category.id,
                name="Hive",
                repo_url="https://example.com/hive",
            )
        )

        result = await run(hackathon_service.delete_category, admin, category.id)

        assert result.error.code == ErrorCode.CONFLICT

    @pytest.mark.asyncio
    async def test_criterion_update_and_delete(self, run, admin, hackathon, criteria):
        """Criteria can be reweighted and removed."""
        impact, _ = criteria

        updated = await run(hackathon_service.update_criterion, admin, impact.id, {"weight": 70})
        assert updated.data.weight == 70

        deleted = await run(hackathon_service.delete_criterion, admin, impact.id)
        assert deleted.ok

        remaining = await run(hackathon_service.list_judging_criteria, None, hackathon.id)
        assert [c.name for c in remaining.data] == ["Execution"]


# ============== Deletion Tests ==============


class TestDeleteHackathon:
    """Tests for hackathon deletion."""

    @pytest.mark.asyncio
    async def test_delete_cascades_to_teams(self, run, admin, alice, hackathon, make_team, session_factory):
        """Deleting a hackathon removes its teams."""
        await make_team(hackathon, alice, "Gone Soon")

        result = await run(hackathon_service.delete_hackathon, admin, hackathon.id)
        assert result.ok

        async with session_factory() as session:
            teams = await session.execute(select(func.count(Team.id)))
            assert teams.scalar_one() == 0


# ============== Permission Tests ==============


class TestPermissions:
    """Tests for server-evaluated permissions."""

    @pytest.mark.asyncio
    async def test_permissions_use_server_clock(self, run, hackathon):
        """can_submit follows the clock while can_judge stays open."""
        during = await run(hackathon_service.get_permissions, None, hackathon.id)
        after = await run(
            hackathon_service.get_permissions,
            None,
            hackathon.id,
            now=NOW + timedelta(days=3),
        )

        assert during.data.can_submit is True
        assert after.data.can_submit is False
        assert after.data.can_judge is True
