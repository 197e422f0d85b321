from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import get_principal, verify_api_key
from server.models.responses import MembershipResponse
from shared.models.access import Principal

router = APIRouter(prefix="/teams", tags=["teams"])


@router.post("/{team_id}/join")
async def join_team(
    request: Request,
    team_id: str,
    principal: Principal = Depends(get_principal),
    _: None = Depends(verify_api_key),
) -> MembershipResponse:
    """Become an active member of a team. Refused while another membership is active."""
    member = await request.app.state.membership_service.join_team(principal, team_id)
    return MembershipResponse(team_id=member.team_id, user_id=member.user_id, status=member.status)


@router.post("/{team_id}/leave")
async def leave_team(
    request: Request,
    team_id: str,
    principal: Principal = Depends(get_principal),
    _: None = Depends(verify_api_key),
) -> MembershipResponse:
    member = await request.app.state.membership_service.leave_team(principal, team_id)
    return MembershipResponse(team_id=member.team_id, user_id=member.user_id, status=member.status)
