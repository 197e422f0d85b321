import uuid

from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import get_principal, verify_api_key
from server.models.requests import CreateFolderRequest
from server.models.responses import FolderResponse
from shared.errors import ForbiddenError, ValidationError
from shared.models.access import Principal, Visibility
from shared.models.records import FolderRecord

router = APIRouter(prefix="/folders", tags=["folders"])


@router.post("", status_code=201)
async def create_folder(
    request: Request,
    body: CreateFolderRequest,
    principal: Principal = Depends(get_principal),
    _: None = Depends(verify_api_key),
) -> FolderResponse:
    """Create a folder owned by the caller.

    Team folders require a team the caller is an active member of.
    """
    team_id = None
    if body.visibility == Visibility.TEAM:
        if not body.team_id:
            raise ValidationError("Team folders require a team id.")
        if body.team_id not in principal.active_team_ids:
            raise ForbiddenError("You are not a member of that team.")
        team_id = body.team_id

    folder = FolderRecord(
        id=str(uuid.uuid4()),
        name=body.name.strip(),
        organization_id=principal.organization_id,
        visibility=body.visibility,
        owner_id=principal.user_id,
        team_id=team_id,
    )
    await request.app.state.store_client.create_folder(folder)
    return FolderResponse(
        id=folder.id,
        name=folder.name,
        visibility=folder.visibility,
        owner_id=folder.owner_id,
        team_id=folder.team_id,
    )
