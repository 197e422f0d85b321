"""Tests for team membership."""

import pytest

from services.teams.MembershipService import MembershipService
from shared.errors import NotFoundError, ValidationError
from shared.models.access import Principal
from shared.models.records import Team, TeamMemberStatus
from tests.harness.seed import OTHER_ORG_ID


class TestJoinTeam:
    """Tests for MembershipService.join_team."""

    @pytest.mark.asyncio
    async def test_join_activates_membership(self, membership: MembershipService, store, red_team: Team, alice: Principal) -> None:
        member = await membership.join_team(alice, red_team.id)

        assert member.status == TeamMemberStatus.ACTIVE
        assert await store.list_active_team_ids("alice", alice.organization_id) == [red_team.id]

    @pytest.mark.asyncio
    async def test_rejoining_same_team_is_idempotent(self, membership: MembershipService, red_team: Team, alice: Principal) -> None:
        await membership.join_team(alice, red_team.id)

        member = await membership.join_team(alice, red_team.id)

        assert member.team_id == red_team.id
        assert member.status == TeamMemberStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_second_team_is_refused(
        self, membership: MembershipService, store, red_team: Team, blue_team: Team, alice: Principal
    ) -> None:
        """A user is an active member of at most one team."""
        await membership.join_team(alice, red_team.id)

        with pytest.raises(ValidationError, match="Leave your current team"):
            await membership.join_team(alice, blue_team.id)
        assert await store.list_active_team_ids("alice", alice.organization_id) == [red_team.id]

    @pytest.mark.asyncio
    async def test_unknown_team(self, membership: MembershipService, alice: Principal) -> None:
        with pytest.raises(NotFoundError):
            await membership.join_team(alice, "team-missing")

    @pytest.mark.asyncio
    async def test_team_of_other_organization_is_not_found(self, membership: MembershipService, store, alice: Principal) -> None:
        foreign = await store.create_team(Team(id="team-x", organization_id=OTHER_ORG_ID, name="X", slug="x"))

        with pytest.raises(NotFoundError):
            await membership.join_team(alice, foreign.id)


class TestLeaveTeam:
    """Tests for MembershipService.leave_team."""

    @pytest.mark.asyncio
    async def test_leave_then_join_another(
        self, membership: MembershipService, store, red_team: Team, blue_team: Team, alice: Principal
    ) -> None:
        await membership.join_team(alice, red_team.id)

        left = await membership.leave_team(alice, red_team.id)
        await membership.join_team(alice, blue_team.id)

        assert left.status == TeamMemberStatus.REMOVED
        assert await store.list_active_team_ids("alice", alice.organization_id) == [blue_team.id]

    @pytest.mark.asyncio
    async def test_leaving_without_membership(self, membership: MembershipService, red_team: Team, alice: Principal) -> None:
        with pytest.raises(NotFoundError, match="not a member"):
            await membership.leave_team(alice, red_team.id)
