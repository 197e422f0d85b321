from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import get_principal, verify_api_key
from server.models.requests import IngestRequest
from server.models.responses import IngestResponse
from shared.models.access import Principal

router = APIRouter(prefix="/ingest", tags=["ingest"])


@router.post("")
async def ingest_file(
    request: Request,
    body: IngestRequest,
    principal: Principal = Depends(get_principal),
    _: None = Depends(verify_api_key),
) -> IngestResponse:
    """(Re-)ingest one of the caller's files synchronously.

    Args:
        request (Request): FastAPI request (provides app.state.ingestion_service).
        body (IngestRequest): JSON body with the fileId.
        principal (Principal): The caller.
        _ (None): Auth dependency result (unused).

    Returns:
        IngestResponse: Number of chunks written and their generation.
    """
    ingestion_service = request.app.state.ingestion_service
    result = await ingestion_service.ingest(body.file_id, principal.user_id)
    return IngestResponse(chunk_count=result.chunk_count, generation=result.generation)
