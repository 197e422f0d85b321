from abc import abstractmethod

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.helper.HelperConfig import HelperConfig


class VectorClientInterface(HttpClientInterface):
    """Raw vector index client.

    Engines expose one of two call shapes and are wrapped by a partition adapter
    (see shared.clients.vector.partition):

    - namespaced: upsert(namespace, vectors), query(namespace, vector, top_k), delete(namespace, ids)
    - global with metadata filter: upsert(vectors), query(vector, top_k, filter), remove(ids), describe()

    Vectors are dicts {"id": str, "values": list[float], "metadata": dict}.
    Query matches are dicts {"id": str, "score": float, "metadata": dict}.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "vector"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_ensure_index(self, vector_size: int, distance: str = "Cosine") -> None:
        """Create the index/collection if the backend requires it and it does not exist yet.

        Args:
            vector_size (int): Dimension of the embedding vectors.
            distance (str): Distance metric (e.g. "Cosine").
        """
        pass
