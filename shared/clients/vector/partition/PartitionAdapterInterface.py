from abc import ABC, abstractmethod
from typing import Any

from shared.clients.vector.partition.namespaces import filter_from_namespace, namespace_for_scope
from shared.helper.HelperConfig import HelperConfig
from shared.models.access import Visibility
from shared.models.vector import VectorMatch, VectorMetadata, VectorScope


class PartitionAdapterInterface(ABC):
    """Visibility-partitioned view of a raw vector index.

    Every vector is written into the namespace of its visibility scope and every
    query is confined to one namespace, so a caller can only ever receive vectors
    of the namespaces resolved for it, whatever the index itself supports.
    """

    def __init__(self, helper_config: HelperConfig, index: Any):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._index = index

    ##########################################
    ################ GETTER ##################
    ##########################################

    @abstractmethod
    def get_shape_name(self) -> str:
        """Returns the index call shape handled by the adapter. E.g. "namespaced" """
        pass

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def namespace_for_metadata(self, metadata: VectorMetadata | VectorScope) -> str:
        return namespace_for_scope(
            visibility=metadata.visibility,
            organization_id=metadata.organization_id,
            owner_id=metadata.owner_id,
            team_id=metadata.team_id,
        )

    def build_vector(self, chunk_id: str, embedding: list[float], metadata: VectorMetadata) -> dict:
        # some indexes reject null metadata values
        return {
            "id": chunk_id,
            "values": embedding,
            "metadata": metadata.model_dump(mode="json", exclude_none=True),
        }

    def build_match(self, raw: dict | None, namespace: str) -> VectorMatch | None:
        """Turn a raw index hit into a VectorMatch.

        Missing scope fields are back-filled from the namespace the hit came
        from. Hits without any chunk id are dropped.

        Args:
            raw (dict | None): {"id", "score", "metadata"} as returned by the index client.
            namespace (str): The namespace that was queried.

        Returns:
            VectorMatch | None: The match, or None if it cannot be addressed.
        """
        if not raw:
            return None
        metadata: dict = raw.get("metadata") or {}
        chunk_id = metadata.get("chunk_id") or raw.get("chunk_id") or raw.get("id")
        if not chunk_id:
            self.logging.warning("Vector match missing chunk id in namespace %s: %r", namespace, raw)
            return None

        namespace_filter = filter_from_namespace(namespace)
        visibility = Visibility(metadata.get("visibility") or namespace_filter.get("visibility") or Visibility.PERSONAL.value)
        owner_id = metadata.get("owner_id") or (namespace_filter.get("owner_id", "") if visibility == Visibility.PERSONAL else "")
        organization_id = metadata.get("organization_id") or (namespace_filter.get("organization_id", "") if visibility == Visibility.ORGANIZATION else "")
        team_id = metadata.get("team_id") or (namespace_filter.get("team_id") if visibility == Visibility.TEAM else None)

        return VectorMatch(
            chunk_id=str(chunk_id),
            file_id=metadata.get("file_id", ""),
            folder_id=metadata.get("folder_id", ""),
            folder_name=metadata.get("folder_name", ""),
            file_name=metadata.get("file_name", ""),
            start_line=int(metadata.get("start_line", 0)),
            end_line=int(metadata.get("end_line", 0)),
            visibility=visibility,
            owner_id=owner_id,
            organization_id=organization_id,
            team_id=team_id,
            generation=int(metadata.get("generation", 0)),
            score=float(raw.get("score") or 0.0),
        )

    def build_matches(self, raw_matches: list[dict] | None, namespace: str) -> list[VectorMatch]:
        matches = [self.build_match(raw, namespace) for raw in raw_matches or []]
        return [match for match in matches if match is not None]

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def upsert(self, chunk_id: str, embedding: list[float], metadata: VectorMetadata) -> None:
        """Write one chunk vector into the namespace of its visibility scope."""
        pass

    @abstractmethod
    async def query(self, namespace: str, vector: list[float], top_k: int, file_ids: set[str] | None = None) -> list[VectorMatch]:
        """Return up to top_k matches confined to one namespace.

        With ``file_ids`` only matches of those files count, and the top_k best
        of them are returned even when other files of the namespace score higher.
        """
        pass

    @abstractmethod
    async def delete(self, chunk_ids: list[str], scope: VectorScope) -> None:
        """Delete chunk vectors owned by scope. A no-op for an empty id list."""
        pass
