"""Tests for the payment schedule repository."""

import pytest


class TestPaymentScheduleRepository:
    """Test per-proposal schedule records."""

    @pytest.mark.asyncio
    async def test_missing_schedule(self, schedule_repo):
        assert await schedule_repo.get_for_proposal("nope") is None

    @pytest.mark.asyncio
    async def test_get_or_create_creates_once(self, schedule_repo):
        first = await schedule_repo.get_or_create_for_proposal("proposal-9", "project-1")
        second = await schedule_repo.get_or_create_for_proposal("proposal-9", "project-1")

        assert first["id"] == second["id"]
        assert first["proposal_id"] == "proposal-9"
        assert first["project_id"] == "project-1"
        assert first["name"] == "Payment Schedule"

    @pytest.mark.asyncio
    async def test_custom_name(self, schedule_repo):
        schedule = await schedule_repo.get_or_create_for_proposal(
            "proposal-9", "project-1", name="Phase 1"
        )
        assert schedule["name"] == "Phase 1"

    @pytest.mark.asyncio
    async def test_ids_are_strings(self, schedule_repo):
        schedule = await schedule_repo.get_or_create_for_proposal("proposal-9", "project-1")
        assert isinstance(schedule["id"], str)
        assert schedule["id"].isdigit()
