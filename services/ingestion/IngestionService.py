"""Ingestion pipeline.

Turns a stored upload into searchable, line-addressable chunks: loads the raw
bytes, converts non-text formats to plain text, segments the text, embeds all
segments in one batch and writes chunk rows plus vectors.

Re-ingestion never deletes before it writes. Every run writes a fresh
generation, switches the file to it with a compare-and-set and only then
garbage collects older generations, so readers always see exactly one complete
generation and a slower concurrent run can never replace a newer one.
"""

import asyncio
import uuid
from collections import defaultdict

import httpx
from pydantic import BaseModel

from shared.clients.convert.ConvertClientInterface import ConvertClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.storage.StorageClientInterface import StorageClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.vector.partition.PartitionAdapterInterface import PartitionAdapterInterface
from shared.errors import ConsistencyWarning, ForbiddenError, KnowledgeError, NotFoundError, UpstreamFailure, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperText import derive_txt_file_name, segment_text
from shared.helper.HelperVisibility import assert_access
from shared.models.access import AccessMode, Principal
from shared.models.records import ChunkRecord, FileRecord, FileStatus
from shared.models.vector import VectorMetadata, VectorScope


class IngestResult(BaseModel):
    chunk_count: int
    generation: int


def _scope_of(record: FileRecord | ChunkRecord) -> VectorScope:
    return VectorScope(
        visibility=record.visibility,
        organization_id=record.organization_id,
        owner_id=record.owner_id,
        team_id=record.team_id,
    )


class IngestionService:
    """Orchestrates conversion, segmentation, embedding and the generation swap of one file."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store_client: StoreClientInterface,
        storage_client: StorageClientInterface,
        convert_client: ConvertClientInterface,
        llm_client: LLMClientInterface,
        vector_adapter: PartitionAdapterInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store_client
        self._storage = storage_client
        self._convert = convert_client
        self._llm = llm_client
        self._vectors = vector_adapter

        self.chunk_size = helper_config.get_number_val("CHUNK_SIZE", default=1500)
        self.chunk_overlap = helper_config.get_number_val("CHUNK_OVERLAP", default=200)
        self.max_attempts = max(1, int(helper_config.get_number_val("INGEST_MAX_ATTEMPTS", default=3)))
        self.retry_delay = helper_config.get_number_val("INGEST_RETRY_DELAY", default=2)

    ##########################################
    ############## CORE INGEST ###############
    ##########################################

    async def ingest(self, file_id: str, acting_user_id: str) -> IngestResult:
        """Ingest (or re-ingest) a file owned by acting_user_id.

        Args:
            file_id (str): The file to ingest.
            acting_user_id (str): The caller; must own the file.

        Returns:
            IngestResult: Number of chunks written and the generation they belong to.

        Raises:
            NotFoundError: If the file record or its stored object is missing.
            ForbiddenError: If the caller does not own the file.
            ValidationError: If the file type is unsupported or the file has no content.
            UpstreamFailure: If conversion, storage, embedding or vector writes fail.
            ConsistencyWarning: If the embedding provider returns a wrong number of vectors.
        """
        file = await self._store.get_file(file_id)
        if file is None or file.deleted_at is not None:
            raise NotFoundError("File not found")
        if file.owner_id != acting_user_id:
            raise ForbiddenError("You can only ingest your own files")

        try:
            raw = await self._storage.get(file.object_key)
        except Exception as exc:
            raise UpstreamFailure(f"Failed to read uploaded object from storage: {exc}") from exc
        if raw is None:
            raise NotFoundError("Uploaded object not found in storage")

        if self._needs_conversion(file):
            file, text = await self._convert_file(file, raw)
        else:
            text = raw.decode("utf-8", errors="replace")

        if not text.strip():
            raise ValidationError("File appears to be empty after conversion.")

        segments = segment_text(text, chunk_size=int(self.chunk_size), overlap=int(self.chunk_overlap))
        if not segments:
            raise ValidationError("No content found to ingest")

        embeddings = await self._embed([segment.content for segment in segments])
        if len(embeddings) != len(segments):
            raise ConsistencyWarning(f"Embedding count mismatch: got {len(embeddings)}, expected {len(segments)}")

        generation = await self._store.allocate_generation(file.id)
        self.logging.info("Ingesting file %s as generation %d (%d chunks)", file.id, generation, len(segments))

        try:
            for index, (segment, embedding) in enumerate(zip(segments, embeddings)):
                chunk = ChunkRecord(
                    id=str(uuid.uuid4()),
                    file_id=file.id,
                    folder_id=file.folder_id,
                    organization_id=file.organization_id,
                    owner_id=file.owner_id,
                    team_id=file.team_id,
                    visibility=file.visibility,
                    chunk_index=index,
                    start_line=segment.start_line,
                    end_line=segment.end_line,
                    content=segment.content,
                    generation=generation,
                )
                await self._store.insert_chunk(chunk)
                await self._vectors.upsert(chunk.id, embedding, self._build_metadata(file, chunk))
        except Exception as exc:
            self.logging.error("Writing generation %d of file %s failed: %s", generation, file.id, exc)
            await self._discard_generation(file.id, generation)
            if isinstance(exc, KnowledgeError):
                raise
            raise UpstreamFailure(f"Failed to write chunk vectors: {exc}") from exc

        if await self._store.activate_generation(file.id, generation):
            await self._collect_garbage(file.id, generation)
        else:
            # a newer run already switched the file, our generation is stale on arrival
            self.logging.warning("Generation %d of file %s was superseded by a newer run, discarding it.", generation, file.id)
            await self._discard_generation(file.id, generation)

        await self._store.update_file_status(file.id, FileStatus.READY, last_error=None)
        return IngestResult(chunk_count=len(segments), generation=generation)

    async def ingest_in_background(self, file_id: str, acting_user_id: str) -> IngestResult | None:
        """Run ingest() with bounded retries. Never raises.

        Only UpstreamFailure is retried. When the last attempt fails, or a
        non-retryable error occurs, the file is marked failed with the error message.

        Returns:
            IngestResult | None: The result, or None if ingestion failed.
        """
        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self._store.record_ingest_attempt(file_id)
                result = await self.ingest(file_id, acting_user_id)
                self.logging.info("Background ingestion of file %s finished: %d chunks", file_id, result.chunk_count)
                return result
            except UpstreamFailure as exc:
                last_error = exc
                if attempt < self.max_attempts:
                    self.logging.warning(
                        "Ingestion attempt %d/%d of file %s failed: %s. Retrying in %ss.",
                        attempt, self.max_attempts, file_id, exc.message, self.retry_delay,
                    )
                    await asyncio.sleep(self.retry_delay)
                    continue
            except KnowledgeError as exc:
                last_error = exc
            except Exception as exc:
                self.logging.exception("Unexpected error while ingesting file %s", file_id)
                last_error = exc
            break

        message = last_error.message if isinstance(last_error, KnowledgeError) else str(last_error)
        self.logging.error("Background ingestion of file %s failed: %s", file_id, message)
        try:
            await self._store.update_file_status(file_id, FileStatus.FAILED, last_error=message)
        except Exception as exc:
            self.logging.error("Could not mark file %s as failed: %s", file_id, exc)
        return None

    async def purge_file(self, file_id: str, principal: Principal) -> int:
        """Delete a file with every chunk row, vector and its stored object.

        Returns:
            int: Number of chunks removed.

        Raises:
            NotFoundError / ForbiddenError: If the caller may not write the file.
            UpstreamFailure: If vectors could not be deleted.
        """
        file = await self._store.get_file(file_id)
        assert_access(file, principal, AccessMode.WRITE)

        # invisible to retrieval from here on, whatever happens below
        await self._store.soft_delete_file(file.id)

        chunks = await self._store.list_chunks(file.id)
        try:
            await self._delete_chunks(chunks)
        except Exception as exc:
            raise UpstreamFailure(f"Failed to delete vectors of file {file.id}: {exc}") from exc

        try:
            await self._storage.delete(file.object_key)
        except Exception as exc:
            self.logging.warning("Could not delete stored object %s: %s", file.object_key, exc)

        self.logging.info("Purged file %s (%d chunks)", file.id, len(chunks))
        return len(chunks)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def _needs_conversion(file: FileRecord) -> bool:
        if not file.file_name.lower().endswith(".txt"):
            return True
        return bool(file.mime_type) and file.mime_type != "text/plain"

    def _build_metadata(self, file: FileRecord, chunk: ChunkRecord) -> VectorMetadata:
        return VectorMetadata(
            chunk_id=chunk.id,
            file_id=file.id,
            folder_id=file.folder_id,
            folder_name=file.folder_name or "",
            file_name=file.file_name,
            start_line=chunk.start_line,
            end_line=chunk.end_line,
            visibility=file.visibility,
            owner_id=file.owner_id,
            organization_id=file.organization_id,
            team_id=file.team_id,
            generation=chunk.generation,
        )

    async def _convert_file(self, file: FileRecord, raw: bytes) -> tuple[FileRecord, str]:
        """Convert to plain text and replace the stored object with the .txt version."""
        try:
            conversion = await self._convert.convert_to_text(raw, file.file_name, file.mime_type)
        except ValidationError:
            raise
        except (httpx.HTTPError, ValueError) as exc:
            self.logging.error("Failed to convert file %s before ingestion: %s", file.id, exc)
            raise UpstreamFailure("Failed to normalize file before ingestion.") from exc

        next_name = derive_txt_file_name(file.file_name)
        next_key = self._storage.build_object_key(
            visibility=file.visibility,
            organization_id=file.organization_id,
            owner_id=file.owner_id,
            folder_id=file.folder_id,
            file_id=file.id,
            file_name=next_name,
            team_id=file.team_id,
        )
        try:
            await self._storage.put(next_key, conversion.text.encode("utf-8"), content_type="text/plain")
            if next_key != file.object_key:
                await self._storage.delete(file.object_key)
        except Exception as exc:
            self.logging.error("Failed to persist converted text of file %s: %s", file.id, exc)
            raise UpstreamFailure("Failed to persist converted text to storage.") from exc

        await self._store.update_file_after_conversion(
            file.id, file_name=next_name, object_key=next_key, size=conversion.byte_count, mime_type="text/plain"
        )
        converted = file.model_copy(
            update={"file_name": next_name, "object_key": next_key, "size": conversion.byte_count, "mime_type": "text/plain"}
        )
        return converted, conversion.text

    async def _embed(self, texts: list[str]) -> list[list[float]]:
        try:
            return await self._llm.do_embed(texts)
        except (httpx.HTTPError, ValueError) as exc:
            self.logging.error("Embedding generation failed: %s", exc)
            raise UpstreamFailure(f"Embedding generation failed: {exc}") from exc

    async def _delete_chunks(self, chunks: list[ChunkRecord]) -> None:
        """Delete vectors grouped by their owning scope, then the rows."""
        by_scope: dict[tuple, list[ChunkRecord]] = defaultdict(list)
        for chunk in chunks:
            by_scope[(chunk.visibility, chunk.organization_id, chunk.owner_id, chunk.team_id)].append(chunk)
        for group in by_scope.values():
            await self._vectors.delete([chunk.id for chunk in group], _scope_of(group[0]))
        await self._store.delete_chunks([chunk.id for chunk in chunks])

    async def _collect_garbage(self, file_id: str, generation: int) -> None:
        # stale rows stay invisible to hydration, so failures here are only logged
        try:
            stale = await self._store.list_chunks(file_id, before_generation=generation)
            if stale:
                await self._delete_chunks(stale)
                self.logging.debug("Removed %d chunks older than generation %d of file %s", len(stale), generation, file_id)
        except Exception as exc:
            self.logging.warning("Garbage collection of file %s below generation %d failed: %s", file_id, generation, exc)

    async def _discard_generation(self, file_id: str, generation: int) -> None:
        try:
            partial = await self._store.list_chunks(file_id, generation=generation)
            if partial:
                await self._delete_chunks(partial)
        except Exception as exc:
            self.logging.warning("Cleanup of generation %d of file %s failed: %s", generation, file_id, exc)
