"""
Submission Tests for Hackathon Hub.

Tests for:
- Membership and status gates on submission writes
- One submission per team through the upsert path
- Submitting and re-submitting
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from app.models import HackathonCategory, HackathonStatus, ProjectSubmission, SubmissionStatus
from app.services import submission_service
from app.services.result import ErrorCode
from tests.backend.factories import NOW, make_hackathon

PROJECT = {"name": "Hive", "repo_url": "https://example.com/hive"}


# ============== Gate Tests ==============


class TestSubmissionGates:
    """Tests for who may write a submission and when."""

    @pytest.mark.asyncio
    async def test_member_creates_draft(self, run, alice, bob, hackathon, category, make_team):
        """Any team member can create the draft."""
        team = await make_team(hackathon, alice, "Builders", bob)

        result = await run(submission_service.create_submission, bob, team.id, category.id, **PROJECT)

        assert result.ok
        assert result.data.status == SubmissionStatus.DRAFT
        assert result.data.last_submitted_at is None

    @pytest.mark.asyncio
    async def test_user_without_team_gets_no_team(self, run, alice, carol, hackathon, category, make_team):
        """Users without a team get NO_TEAM."""
        team = await make_team(hackathon, alice, "Builders")

        result = await run(submission_service.create_submission, carol, team.id, category.id, **PROJECT)

        assert result.error.code == ErrorCode.NO_TEAM

    @pytest.mark.asyncio
    async def test_member_of_other_team_is_forbidden(
        self, run, alice, carol, hackathon, category, make_team
    ):
        """Members of another team cannot write."""
        team = await make_team(hackathon, alice, "Builders")
        await make_team(hackathon, carol, "Rivals")

        result = await run(submission_service.create_submission, carol, team.id, category.id, **PROJECT)

        assert result.error.code == ErrorCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_closed_after_end(self, run, alice, hackathon, category, make_team):
        """Submissions close after end_at."""
        team = await make_team(hackathon, alice, "Latecomers")

        result = await run(
            submission_service.create_submission,
            alice,
            team.id,
            category.id,
            now=NOW + timedelta(days=2),
            **PROJECT,
        )

        assert result.error.code == ErrorCode.STATUS_CLOSED

    @pytest.mark.asyncio
    async def test_open_status_does_not_accept_submissions(self, run, alice, add, make_team):
        """OPEN hackathons do not accept submissions yet."""
        open_hack = await add(make_hackathon("not-yet", status=HackathonStatus.OPEN))
        category = await add(HackathonCategory(hackathon_id=open_hack.id, name="Web"))
        team = await make_team(open_hack, alice, "Eager")

        result = await run(submission_service.create_submission, alice, team.id, category.id, **PROJECT)

        assert result.error.code == ErrorCode.STATUS_CLOSED

    @pytest.mark.asyncio
    async def test_category_from_other_hackathon(self, run, alice, add, hackathon, make_team):
        """The category must belong to the hackathon."""
        other = await add(make_hackathon("elsewhere"))
        foreign = await add(HackathonCategory(hackathon_id=other.id, name="Foreign"))
        team = await make_team(hackathon, alice, "Confused")

        result = await run(submission_service.create_submission, alice, team.id, foreign.id, **PROJECT)

        assert result.error.code == ErrorCode.VALIDATION

    @pytest.mark.asyncio
    async def test_second_create_is_conflict(self, run, alice, hackathon, category, make_team):
        """A team has at most one submission."""
        team = await make_team(hackathon, alice, "Twice")
        await run(submission_service.create_submission, alice, team.id, category.id, **PROJECT)

        result = await run(submission_service.create_submission, alice, team.id, category.id, **PROJECT)

        assert result.error.code == ErrorCode.CONFLICT

    @pytest.mark.asyncio
    async def test_unique_team_constraint_is_conflict(
        self, run, alice, hackathon, category, make_team, session_factory
    ):
        """A duplicate caught by the unique constraint is still a CONFLICT."""
        team = await make_team(hackathon, alice, "Racers")
        await run(submission_service.create_submission, alice, team.id, category.id, **PROJECT)

        with patch(
            "app.services.submission_service.team_has_submission",
            AsyncMock(return_value=False),
        ):
            result = await run(
                submission_service.create_submission, alice, team.id, category.id, **PROJECT
            )

        assert result.error.code == ErrorCode.CONFLICT
        assert "team_id" in result.error.message

        async with session_factory() as session:
            count = await session.execute(
                select(func.count(ProjectSubmission.id)).where(ProjectSubmission.team_id == team.id)
            )
            assert count.scalar_one() == 1


# ============== Upsert Tests ==============


class TestUpsertSubmission:
    """The upsert path keeps exactly one row per team."""

    @pytest.mark.asyncio
    async def test_upsert_twice_keeps_one_row(
        self, run, alice, hackathon, category, make_team, session_factory
    ):
        """Two upserts leave one row with the latest values."""
        team = await make_team(hackathon, alice, "Iterators")

        first = await run(submission_service.upsert_submission, alice, team.id, category.id, **PROJECT)
        second = await run(
            submission_service.upsert_submission,
            alice,
            team.id,
            category.id,
            name="Hive 2",
            repo_url="https://example.com/hive2",
            summary="Now with honey",
        )

        assert second.data.id == first.data.id
        assert second.data.name == "Hive 2"
        assert second.data.summary == "Now with honey"
        async with session_factory() as session:
            count = await session.execute(
                select(func.count(ProjectSubmission.id)).where(ProjectSubmission.team_id == team.id)
            )
            assert count.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_upsert_keeps_submitted_status(self, run, alice, hackathon, category, make_team):
        """Upserting does not reset a submitted project to draft."""
        team = await make_team(hackathon, alice, "Steady")
        created = await run(submission_service.upsert_submission, alice, team.id, category.id, **PROJECT)
        await run(submission_service.submit_project, alice, created.data.id)

        result = await run(
            submission_service.upsert_submission,
            alice,
            team.id,
            category.id,
            name="Hive",
            repo_url="https://example.com/hive-final",
        )

        assert result.data.status == SubmissionStatus.SUBMITTED
        assert result.data.repo_url == "https://example.com/hive-final"


# ============== Submit Tests ==============


class TestSubmitProject:
    """Tests for submitting and editing."""

    @pytest.mark.asyncio
    async def test_resubmit_restamps(self, run, alice, hackathon, category, make_team):
        """Submitting again updates last_submitted_at."""
        team = await make_team(hackathon, alice, "Restamp")
        created = await run(submission_service.create_submission, alice, team.id, category.id, **PROJECT)

        first = await run(submission_service.submit_project, alice, created.data.id)
        later = NOW + timedelta(hours=1)
        second = await run(submission_service.submit_project, alice, created.data.id, now=later)

        assert first.data.last_submitted_at == NOW
        assert second.data.status == SubmissionStatus.SUBMITTED
        assert second.data.last_submitted_at == later

    @pytest.mark.asyncio
    async def test_update_clears_optional_fields(self, run, alice, hackathon, category, make_team):
        """Optional fields can be cleared; required ones cannot."""
        team = await make_team(hackathon, alice, "Tidy")
        created = await run(
            submission_service.create_submission,
            alice,
            team.id,
            category.id,
            demo_url="https://example.com/demo",
            **PROJECT,
        )

        result = await run(
            submission_service.update_submission,
            alice,
            created.data.id,
            {"demo_url": None, "name": None},
        )

        assert result.data.demo_url is None
        assert result.data.name == "Hive"


# ============== Read Tests ==============


class TestReadSubmission:
    """Tests for reading submissions."""

    @pytest.mark.asyncio
    async def test_team_submission_view(self, run, alice, hackathon, category, make_team):
        """The team view includes team and category names."""
        team = await make_team(hackathon, alice, "Readers")
        await run(submission_service.create_submission, alice, team.id, category.id, **PROJECT)

        result = await run(submission_service.get_team_submission, alice, team.id)

        assert result.data.team_name == "Readers"
        assert result.data.category_name == "AI"

    @pytest.mark.asyncio
    async def test_no_submission_yet(self, run, alice, hackathon, make_team):
        """No submission is an empty result."""
        team = await make_team(hackathon, alice, "Empty")

        result = await run(submission_service.get_team_submission, alice, team.id)

        assert result.ok
        assert result.data is None

    @pytest.mark.asyncio
    async def test_outsider_cannot_read(self, run, alice, carol, hackathon, category, make_team):
        """Outsiders cannot read a team's submission."""
        team = await make_team(hackathon, alice, "Secretive")
        created = await run(submission_service.create_submission, alice, team.id, category.id, **PROJECT)

        result = await run(submission_service.get_submission_by_id, carol, created.data.id)

        assert result.error.code == ErrorCode.FORBIDDEN
