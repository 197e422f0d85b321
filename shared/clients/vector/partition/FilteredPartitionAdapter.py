from typing import Any

from shared.clients.vector.partition.PartitionAdapterInterface import PartitionAdapterInterface
from shared.clients.vector.partition.namespaces import filter_from_namespace
from shared.helper.HelperConfig import HelperConfig
from shared.models.vector import VectorMatch, VectorMetadata, VectorScope


class FilteredPartitionAdapter(PartitionAdapterInterface):
    """Adapter for global indexes: writes go by vector id, queries carry a metadata
    filter decoded from the namespace token.

    Some index versions silently drop filters they do not support and then return
    nothing. When VECTOR_FILTER_FALLBACK is on, an empty filtered result is
    retried once without a filter and the namespace filter is re-applied to the
    broader result in process, so the retry can never widen the caller's scope.
    """

    def __init__(self, helper_config: HelperConfig, index: Any):
        super().__init__(helper_config=helper_config, index=index)
        self._filter_fallback = helper_config.get_bool_val("VECTOR_FILTER_FALLBACK", default=True)

    def get_shape_name(self) -> str:
        return "filtered"

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def matches_filter(raw: dict, filter: dict[str, str | list[str]]) -> bool:
        """True when the stored metadata of a raw hit satisfies every filter field.
        A list value admits any of its elements."""
        metadata = (raw or {}).get("metadata") or {}
        for key, value in filter.items():
            if isinstance(value, list):
                if metadata.get(key) not in value:
                    return False
            elif metadata.get(key) != value:
                return False
        return True

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def upsert(self, chunk_id: str, embedding: list[float], metadata: VectorMetadata) -> None:
        await self._index.upsert([self.build_vector(chunk_id, embedding, metadata)])

    async def query(self, namespace: str, vector: list[float], top_k: int, file_ids: set[str] | None = None) -> list[VectorMatch]:
        filter: dict[str, str | list[str]] = dict(filter_from_namespace(namespace))
        if file_ids is not None:
            filter["file_id"] = sorted(file_ids)
        raw_matches = await self._index.query(vector, top_k, filter=filter or None)
        matches = self.build_matches(raw_matches, namespace)
        if matches or not filter or not self._filter_fallback:
            return matches

        self.logging.debug("Filtered query for namespace %s returned nothing, retrying without filter.", namespace)
        broad_matches = await self._index.query(vector, top_k, filter=None)
        scoped = [raw for raw in broad_matches or [] if self.matches_filter(raw, filter)]
        dropped = len(broad_matches or []) - len(scoped)
        if dropped:
            self.logging.warning("Dropped %d out-of-scope match(es) from unfiltered retry for namespace %s.", dropped, namespace)
        return self.build_matches(scoped, namespace)

    async def delete(self, chunk_ids: list[str], scope: VectorScope) -> None:
        if not chunk_ids:
            return
        if callable(getattr(self._index, "remove", None)):
            await self._index.remove(list(chunk_ids))
        elif callable(getattr(self._index, "delete_by_ids", None)):
            await self._index.delete_by_ids(list(chunk_ids))
        else:
            raise TypeError(f"Vector index {type(self._index).__name__} supports neither remove() nor delete_by_ids().")
