"""Pinecone implementation of the namespaced index shape.

Every call takes the namespace token explicitly; the data plane of a Pinecone
index host is addressed directly (VECTOR_PINECONE_BASE_URL is the index host).
"""

from shared.clients.vector.VectorClientInterface import VectorClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class VectorClientPinecone(VectorClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Pinecone"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Api-Key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/describe_index_stats"

    def _get_endpoint_upsert(self) -> str:
        return "/vectors/upsert"

    def _get_endpoint_query(self) -> str:
        return "/query"

    def _get_endpoint_delete(self) -> str:
        return "/vectors/delete"

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_matches(self, raw_response: dict) -> list[dict]:
        return [
            {
                "id": match.get("id"),
                "score": match.get("score", 0.0),
                "metadata": match.get("metadata") or {},
            }
            for match in raw_response.get("matches") or []
        ]

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_ensure_index(self, vector_size: int, distance: str = "Cosine") -> None:
        # Pinecone indexes are provisioned through the control plane, namespaces are implicit
        self.logging.debug("Pinecone index is provisioned externally; nothing to create (size=%d).", vector_size)

    async def upsert(self, namespace: str, vectors: list[dict]) -> None:
        """Insert or replace vectors inside one namespace."""
        await self.do_request(
            method="POST",
            json={"namespace": namespace, "vectors": vectors},
            endpoint=self._get_endpoint_upsert(),
            raise_on_error=True,
        )

    async def query(self, namespace: str, vector: list[float], top_k: int) -> list[dict]:
        """Similarity search restricted to one namespace."""
        resp = await self.do_request(
            method="POST",
            json={
                "namespace": namespace,
                "vector": vector,
                "topK": top_k,
                "includeMetadata": True,
                "includeValues": False,
            },
            endpoint=self._get_endpoint_query(),
            raise_on_error=True,
        )
        return self.extract_matches(resp.json())

    async def delete(self, namespace: str, ids: list[str]) -> None:
        """Delete vectors by id inside one namespace."""
        if not ids:
            return
        await self.do_request(
            method="POST",
            json={"namespace": namespace, "ids": ids},
            endpoint=self._get_endpoint_delete(),
            raise_on_error=True,
        )
