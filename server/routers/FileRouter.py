import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from server.dependencies.auth import get_principal, verify_api_key
from server.models.requests import GrantRequest
from server.models.responses import FileResponse, FileStatusResponse, GrantResponse, PurgeResponse
from shared.errors import ForbiddenError, UpstreamFailure, ValidationError
from shared.helper.HelperText import detect_file_kind
from shared.helper.HelperVisibility import assert_access
from shared.models.access import AccessMode, Principal
from shared.models.records import ORGANIZATION_ROOT_FOLDER_ID, FilePermission, FileRecord, FileStatus

router = APIRouter(prefix="/files", tags=["files"])


@router.post("", status_code=201)
async def upload_file(
    request: Request,
    background_tasks: BackgroundTasks,
    folder_id: str = Query(..., alias="folderId", min_length=1),
    file_name: str = Query(..., alias="fileName", min_length=1),
    principal: Principal = Depends(get_principal),
    _: None = Depends(verify_api_key),
) -> FileResponse:
    """Store the raw request body as a new file and ingest it in the background.

    The file inherits the visibility scope of its folder; the caller needs write
    access to the folder.

    Args:
        request (Request): FastAPI request (body and app.state).
        background_tasks (BackgroundTasks): Queue for the ingestion run.
        folder_id (str): Target folder ("folderId" query parameter).
        file_name (str): Original file name ("fileName" query parameter).

    Returns:
        FileResponse: The file record in status uploading.
    """
    store = request.app.state.store_client
    storage = request.app.state.storage_client

    if detect_file_kind(file_name, request.headers.get("content-type")) is None:
        raise ValidationError("Only .txt, .pdf, or .docx uploads are supported.")
    content = await request.body()
    if not content:
        raise ValidationError("Uploaded file is empty.")

    folder = await store.get_folder(folder_id, principal.organization_id)
    if folder is None and folder_id == ORGANIZATION_ROOT_FOLDER_ID:
        folder = await store.ensure_organization_root(principal.organization_id)
    assert_access(folder, principal, AccessMode.WRITE)

    mime_type = (request.headers.get("content-type") or "").split(";", 1)[0].strip() or None
    file_id = str(uuid.uuid4())
    object_key = storage.build_object_key(
        visibility=folder.visibility,
        organization_id=principal.organization_id,
        owner_id=principal.user_id,
        folder_id=folder.id,
        file_id=file_id,
        file_name=file_name,
        team_id=folder.team_id,
    )
    try:
        await storage.put(object_key, content, content_type=mime_type)
    except Exception as exc:
        raise UpstreamFailure(f"Failed to upload to storage: {exc}") from exc

    file = await store.create_file(
        FileRecord(
            id=file_id,
            organization_id=principal.organization_id,
            folder_id=folder.id,
            owner_id=principal.user_id,
            team_id=folder.team_id,
            visibility=folder.visibility,
            file_name=file_name,
            object_key=object_key,
            size=len(content),
            mime_type=mime_type,
            status=FileStatus.UPLOADING,
        )
    )
    background_tasks.add_task(request.app.state.ingestion_service.ingest_in_background, file.id, principal.user_id)
    return FileResponse(
        id=file.id,
        folder_id=file.folder_id,
        file_name=file.file_name,
        object_key=file.object_key,
        size=file.size,
        visibility=file.visibility,
        status=file.status,
    )


@router.get("/{file_id}/status")
async def get_file_status(
    request: Request,
    file_id: str,
    principal: Principal = Depends(get_principal),
    _: None = Depends(verify_api_key),
) -> FileStatusResponse:
    """Ingestion state of a file: status, attempts and the last error."""
    file = await request.app.state.store_client.get_file(file_id)
    assert_access(file, principal, AccessMode.READ)
    return FileStatusResponse(
        id=file.id,
        status=file.status,
        ingest_attempts=file.ingest_attempts,
        last_error=file.last_error,
    )


@router.post("/{file_id}/retry", status_code=202)
async def retry_ingestion(
    request: Request,
    file_id: str,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_principal),
    _: None = Depends(verify_api_key),
) -> FileStatusResponse:
    """Put a failed (or stuck) file back to uploading and ingest it again in the background."""
    store = request.app.state.store_client
    file = await store.get_file(file_id)
    assert_access(file, principal, AccessMode.READ)
    if file.owner_id != principal.user_id:
        raise ForbiddenError("You can only ingest your own files")

    await store.reset_ingest_state(file.id)
    background_tasks.add_task(request.app.state.ingestion_service.ingest_in_background, file.id, principal.user_id)
    return FileStatusResponse(id=file.id, status=FileStatus.UPLOADING, ingest_attempts=0, last_error=None)


@router.post("/{file_id}/permissions")
async def grant_permission(
    request: Request,
    file_id: str,
    body: GrantRequest,
    principal: Principal = Depends(get_principal),
    _: None = Depends(verify_api_key),
) -> GrantResponse:
    """Share a file directly with another user of the organization."""
    store = request.app.state.store_client
    file = await store.get_file(file_id)
    assert_access(file, principal, AccessMode.WRITE)

    await store.grant_file_permission(
        FilePermission(file_id=file.id, user_id=body.user_id, access_level=body.access_level, granted_by=principal.user_id)
    )
    return GrantResponse(file_id=file.id, user_id=body.user_id, access_level=body.access_level)


@router.delete("/{file_id}")
async def delete_file(
    request: Request,
    file_id: str,
    principal: Principal = Depends(get_principal),
    _: None = Depends(verify_api_key),
) -> PurgeResponse:
    """Delete a file with all of its chunks, vectors and the stored object."""
    chunk_count = await request.app.state.ingestion_service.purge_file(file_id, principal)
    return PurgeResponse(id=file_id, deleted=True, chunk_count=chunk_count)
