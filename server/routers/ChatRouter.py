from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import get_principal, verify_api_key
from shared.models.access import Principal
from shared.models.chat import ChatRequest, ChatResponse

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("")
async def chat(
    request: Request,
    body: ChatRequest,
    principal: Principal = Depends(get_principal),
    _: None = Depends(verify_api_key),
) -> ChatResponse:
    """Answer a message, grounded in the caller's files in knowledge mode or for "/lookup ...".

    Args:
        request (Request): FastAPI request (provides app.state.query_service).
        body (ChatRequest): JSON body with message, knowledgeMode and scope.
        principal (Principal): The caller.
        _ (None): Auth dependency result (unused).

    Returns:
        ChatResponse: Answer with citations and the excerpts it was grounded on.
    """
    query_service = request.app.state.query_service
    return await query_service.answer(
        principal,
        body.message,
        knowledge_mode=body.knowledge_mode,
        scope=body.scope,
    )
