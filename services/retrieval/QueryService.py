"""Retrieval engine.

Answers a chat message either as general chat or, in knowledge mode, grounded
only in the caller's accessible files: embed the question, query every
namespace the caller may see in parallel, merge by best score, hydrate the
surviving chunks and ask the completion model for a cited JSON answer.
"""

import asyncio
import re
import uuid

import httpx
from pydantic import ValidationError as PydanticValidationError

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.vector.partition.PartitionAdapterInterface import PartitionAdapterInterface
from shared.clients.vector.partition.namespaces import namespace_for_scope, organization_namespace, personal_namespace, team_namespace
from shared.errors import UpstreamFailure, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.access import Principal
from shared.models.chat import ChatResponse, ChatScope, Citation, SourceContext, StructuredAnswer
from shared.models.records import ChatRecord
from shared.models.vector import VectorMatch

LOOKUP_COMMAND = re.compile(r"^/lookup\s*(.*)$", re.IGNORECASE | re.DOTALL)

NO_TEAM_MESSAGE = "Join a team to search team-specific knowledge. You are not a member of any teams yet."
NOTHING_RELEVANT_MESSAGE = "I couldn't find anything relevant in your files."

GENERAL_SYSTEM_PROMPT = (
    "You are a helpful assistant for the members of an organization. "
    "Answer concisely. You have no access to the user's files in this mode."
)
KNOWLEDGE_SYSTEM_PROMPT = (
    "You answer questions using only the numbered context excerpts provided. "
    "If the excerpts do not contain the answer, say so. "
    'Reply with a JSON object of the form {"answer": string, "citations": '
    '[{"folder": string, "file": string, "lines": [start, end]}]} and nothing else. '
    "Every citation must reference the folder, file and line range of an excerpt you used."
)


def merge_matches(results: list[list[VectorMatch]], top_k: int) -> list[VectorMatch]:
    """Merge per-namespace results: best score per chunk id, highest first, at most top_k."""
    best: dict[str, VectorMatch] = {}
    for matches in results:
        for match in matches:
            previous = best.get(match.chunk_id)
            if previous is None or match.score > previous.score:
                best[match.chunk_id] = match
    return sorted(best.values(), key=lambda match: match.score, reverse=True)[:top_k]


class QueryService:
    """Orchestrates embedding, scoped vector retrieval, hydration and answer generation."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store_client: StoreClientInterface,
        llm_client: LLMClientInterface,
        vector_adapter: PartitionAdapterInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store_client
        self._llm = llm_client
        self._vectors = vector_adapter
        self.top_k = max(1, int(helper_config.get_number_val("VECTOR_TOP_K", default=8)))

    ##########################################
    ################ CORE ####################
    ##########################################

    async def answer(self, principal: Principal, message: str, knowledge_mode: bool = False, scope: ChatScope = ChatScope.ALL) -> ChatResponse:
        """Answer a chat message for principal.

        Args:
            principal (Principal): The caller, with its active team ids loaded.
            message (str): The raw message; "/lookup <question>" forces knowledge mode.
            knowledge_mode (bool): Ground the answer in the caller's files.
            scope (ChatScope): Which visibility tiers to search.

        Returns:
            ChatResponse: Answer, citations and the excerpts the answer was grounded on.

        Raises:
            ValidationError: If the message or the lookup question is empty.
            UpstreamFailure: If embedding or completion fails.
        """
        raw_message = (message or "").strip()
        if not raw_message:
            raise ValidationError("Message cannot be empty")

        lookup = LOOKUP_COMMAND.match(raw_message)
        if not knowledge_mode and not lookup:
            return await self._answer_general(principal, raw_message)

        question = lookup.group(1).strip() if lookup else raw_message
        if not question:
            raise ValidationError("Knowledge mode requires a non-empty question")

        if scope == ChatScope.TEAM and not principal.active_team_ids:
            return await self._record(principal, raw_message, NO_TEAM_MESSAGE, [], scope)

        vector = await self._embed_question(question)
        namespaces = await self.resolve_namespaces(principal, scope)
        results = await asyncio.gather(
            *[self._query_namespace(namespace, allowed, vector) for namespace, allowed in namespaces.items()]
        )
        top_matches = merge_matches(list(results), self.top_k)
        self.logging.info(
            "Lookup for user %s: scope=%s namespaces=%d matches=%d", principal.user_id, scope.value, len(namespaces), len(top_matches)
        )
        if not top_matches:
            return ChatResponse(id=str(uuid.uuid4()), answer=NOTHING_RELEVANT_MESSAGE)

        sources = await self._hydrate(top_matches)
        if not sources:
            return ChatResponse(id=str(uuid.uuid4()), answer=NOTHING_RELEVANT_MESSAGE)

        structured = await self._answer_from_sources(question, sources)
        response = await self._record(principal, raw_message, structured.answer, structured.citations, scope)
        return response.model_copy(update={"sources": sources})

    async def resolve_namespaces(self, principal: Principal, scope: ChatScope) -> dict[str, set[str] | None]:
        """Namespaces to query for a scope.

        Returns:
            dict[str, set[str] | None]: namespace -> file ids matches are restricted to,
                None for namespaces the caller may read in full.
        """
        namespaces: dict[str, set[str] | None] = {}
        if scope in (ChatScope.ALL, ChatScope.ORG):
            namespaces[organization_namespace(principal.organization_id)] = None
        if scope in (ChatScope.ALL, ChatScope.PERSONAL):
            namespaces[personal_namespace(principal.user_id)] = None
        if scope in (ChatScope.ALL, ChatScope.TEAM):
            for team_id in principal.active_team_ids:
                namespaces[team_namespace(team_id)] = None

        if scope in (ChatScope.ALL, ChatScope.PERSONAL):
            for grant in await self._store.list_file_grants(principal.user_id, principal.organization_id):
                namespace = namespace_for_scope(grant.visibility, grant.organization_id, grant.owner_id, grant.team_id)
                if namespace in namespaces and namespaces[namespace] is None:
                    continue
                namespaces.setdefault(namespace, set()).add(grant.file_id)
        return namespaces

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _query_namespace(self, namespace: str, allowed_file_ids: set[str] | None, vector: list[float]) -> list[VectorMatch]:
        # grant namespaces are restricted inside the query, not after it
        try:
            return await self._vectors.query(namespace, vector, self.top_k, file_ids=allowed_file_ids)
        except Exception as exc:
            self.logging.error("Vector query for namespace %s failed: %s", namespace, exc)
            return []

    async def _embed_question(self, question: str) -> list[float]:
        try:
            vectors = await self._llm.do_embed([question])
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamFailure(f"Failed to embed lookup: {exc}") from exc
        return vectors[0]

    async def _hydrate(self, matches: list[VectorMatch]) -> list[SourceContext]:
        contexts = await self._store.get_chunk_contexts([match.chunk_id for match in matches])
        by_id = {context.chunk_id: context for context in contexts}
        sources: list[SourceContext] = []
        for match in matches:
            context = by_id.get(match.chunk_id)
            if context is None:
                continue
            sources.append(
                SourceContext(
                    order=len(sources),
                    chunk_id=context.chunk_id,
                    folder_name=context.folder_name,
                    file_name=context.file_name,
                    start_line=context.start_line,
                    end_line=context.end_line,
                    content=context.content,
                )
            )
        dropped = len(matches) - len(sources)
        if dropped:
            self.logging.debug("Dropped %d matches without a live chunk", dropped)
        return sources

    @staticmethod
    def _build_context_prompt(question: str, sources: list[SourceContext]) -> str:
        excerpts = "\n\n".join(
            f"[{source.order + 1}] folder: {source.folder_name} | file: {source.file_name} | "
            f"lines {source.start_line}-{source.end_line}\n{source.content}"
            for source in sources
        )
        return f"Context excerpts:\n\n{excerpts}\n\nQuestion: {question}"

    async def _answer_from_sources(self, question: str, sources: list[SourceContext]) -> StructuredAnswer:
        messages = [
            {"role": "system", "content": KNOWLEDGE_SYSTEM_PROMPT},
            {"role": "user", "content": self._build_context_prompt(question, sources)},
        ]
        try:
            reply = await self._llm.do_chat(messages, json_mode=True)
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamFailure(f"Failed to generate answer: {exc}") from exc

        cleaned = reply.strip().removeprefix("```json").removeprefix("```").removesuffix("```").strip()
        try:
            return StructuredAnswer.model_validate_json(cleaned)
        except PydanticValidationError as exc:
            self.logging.warning("Completion model returned no valid JSON answer, using raw text: %s", exc)
            return StructuredAnswer(answer=reply.strip(), citations=[])

    async def _answer_general(self, principal: Principal, message: str) -> ChatResponse:
        messages = [
            {"role": "system", "content": GENERAL_SYSTEM_PROMPT},
            {"role": "user", "content": message},
        ]
        try:
            reply = await self._llm.do_chat(messages)
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamFailure(f"Failed to generate answer: {exc}") from exc
        return await self._record(principal, message, reply.strip(), [], None)

    async def _record(self, principal: Principal, question: str, answer: str, citations: list[Citation], scope: ChatScope | None) -> ChatResponse:
        chat_id = str(uuid.uuid4())
        await self._store.record_chat(
            ChatRecord(
                id=chat_id,
                user_id=principal.user_id,
                organization_id=principal.organization_id,
                question=question,
                answer=answer,
                citations=[citation.model_dump(mode="json") for citation in citations],
                scope=scope.value if scope else None,
            )
        )
        return ChatResponse(id=chat_id, answer=answer, citations=citations)
