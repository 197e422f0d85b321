from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.errors import NotFoundError, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.access import Principal
from shared.models.records import TeamMember, TeamMemberStatus


class MembershipService:
    """Team join/leave. The only writer of active memberships, so the only place
    the one-active-team-per-user rule has to hold."""

    def __init__(self, helper_config: HelperConfig, store_client: StoreClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._store = store_client

    async def join_team(self, principal: Principal, team_id: str) -> TeamMember:
        """Activate the caller's membership in team_id.

        Raises:
            NotFoundError: If the team does not exist in the caller's organization.
            ValidationError: If the caller is already an active member of another team.
        """
        team = await self._store.get_team(team_id)
        if team is None or team.organization_id != principal.organization_id:
            raise NotFoundError("Team not found")

        current = await self._store.get_active_membership(principal.user_id, principal.organization_id)
        if current is not None:
            if current.team_id == team_id:
                return current
            raise ValidationError("Leave your current team before joining another one.")

        member = await self._store.set_team_member_status(team_id, principal.user_id, TeamMemberStatus.ACTIVE)
        self.logging.info("User %s joined team %s", principal.user_id, team_id)
        return member

    async def leave_team(self, principal: Principal, team_id: str) -> TeamMember:
        team = await self._store.get_team(team_id)
        if team is None or team.organization_id != principal.organization_id:
            raise NotFoundError("Team not found")

        current = await self._store.get_active_membership(principal.user_id, principal.organization_id)
        if current is None or current.team_id != team_id:
            raise NotFoundError("You are not a member of that team.")

        member = await self._store.set_team_member_status(team_id, principal.user_id, TeamMemberStatus.REMOVED)
        self.logging.info("User %s left team %s", principal.user_id, team_id)
        return member
