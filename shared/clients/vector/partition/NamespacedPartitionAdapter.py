from typing import Any

from shared.clients.vector.partition.PartitionAdapterInterface import PartitionAdapterInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.vector import VectorMatch, VectorMetadata, VectorScope

# growth factor of the candidate window for file-restricted queries
_FETCH_GROWTH = 4


class NamespacedPartitionAdapter(PartitionAdapterInterface):
    """Adapter for indexes that take the namespace token as an explicit argument.

    Such indexes cannot filter inside a namespace, so a query restricted to some
    files widens its candidate window until it holds top_k matches of those
    files, the namespace runs out, or VECTOR_RESTRICTED_FETCH_LIMIT is reached.
    """

    def __init__(self, helper_config: HelperConfig, index: Any):
        super().__init__(helper_config=helper_config, index=index)
        self._fetch_limit = int(helper_config.get_number_val("VECTOR_RESTRICTED_FETCH_LIMIT", default=1000))

    def get_shape_name(self) -> str:
        return "namespaced"

    async def upsert(self, chunk_id: str, embedding: list[float], metadata: VectorMetadata) -> None:
        namespace = self.namespace_for_metadata(metadata)
        await self._index.upsert(namespace, [self.build_vector(chunk_id, embedding, metadata)])

    async def query(self, namespace: str, vector: list[float], top_k: int, file_ids: set[str] | None = None) -> list[VectorMatch]:
        if file_ids is None:
            raw_matches = await self._index.query(namespace, vector, top_k)
            return self.build_matches(raw_matches, namespace)

        fetch = top_k
        while True:
            raw_matches = await self._index.query(namespace, vector, fetch)
            allowed = [match for match in self.build_matches(raw_matches, namespace) if match.file_id in file_ids]
            exhausted = len(raw_matches or []) < fetch
            if len(allowed) >= top_k or exhausted or fetch >= self._fetch_limit:
                if not exhausted and len(allowed) < top_k:
                    self.logging.debug("Restricted query in %s stopped at the fetch limit of %d", namespace, fetch)
                return allowed[:top_k]
            fetch = min(fetch * _FETCH_GROWTH, max(self._fetch_limit, top_k))

    async def delete(self, chunk_ids: list[str], scope: VectorScope) -> None:
        if not chunk_ids:
            return
        await self._index.delete(self.namespace_for_metadata(scope), list(chunk_ids))
