from fastapi import Header, HTTPException, Request

from shared.models.access import OrganizationRole, Principal


async def verify_api_key(request: Request, x_api_key: str = Header(...)) -> None:
    """Verify the X-Api-Key header against the configured API key.

    Args:
        request (Request): The FastAPI request object (provides app.state).
        x_api_key (str): The value of the X-Api-Key header.

    Raises:
        HTTPException: 401 if the key is missing or does not match.
    """
    helper_config = request.app.state.helper_config
    expected_key = helper_config.get_string_val("APP_API_KEY")
    if x_api_key != expected_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


async def get_principal(
    request: Request,
    x_user_id: str = Header(...),
    x_organization_id: str = Header(...),
    x_organization_role: str = Header("member"),
) -> Principal:
    """Build the caller identity from the headers set by the identity proxy.

    Active team memberships are not trusted from the request; they are loaded
    from the store on every call.

    Raises:
        HTTPException: 400 if a header is blank or the role is unknown.
    """
    user_id = x_user_id.strip()
    organization_id = x_organization_id.strip()
    if not user_id or not organization_id:
        raise HTTPException(status_code=400, detail="X-User-Id and X-Organization-Id must not be empty")
    try:
        role = OrganizationRole(x_organization_role.strip().lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown organization role '{x_organization_role}'")

    store = request.app.state.store_client
    team_ids = await store.list_active_team_ids(user_id, organization_id)
    return Principal(
        user_id=user_id,
        organization_id=organization_id,
        organization_role=role,
        active_team_ids=team_ids,
    )
