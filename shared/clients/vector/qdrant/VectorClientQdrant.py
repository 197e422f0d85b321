"""Qdrant implementation of the global-with-metadata-filter index shape.

Qdrant has no namespaces: every point lives in one collection and queries are
narrowed with a payload filter decoded from the namespace token.
"""

from shared.clients.vector.VectorClientInterface import VectorClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class VectorClientQdrant(VectorClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default="knowledge_chunks", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default="knowledge_chunks"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_collection(self) -> str:
        return f"/collections/{self._collection_name}"

    def _get_endpoint_points(self) -> str:
        return f"/collections/{self._collection_name}/points"

    def _get_endpoint_search(self) -> str:
        return f"/collections/{self._collection_name}/points/search"

    def _get_endpoint_delete_points(self) -> str:
        return f"/collections/{self._collection_name}/points/delete"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_filter_payload(self, filter: dict | None) -> dict | None:
        """Translate a flat {key: value} filter into a Qdrant "must" filter.
        List values become "match any" conditions."""
        if not filter:
            return None
        return {
            "must": [
                {"key": key, "match": {"any": list(value)} if isinstance(value, list) else {"value": value}}
                for key, value in filter.items()
            ]
        }

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_matches(self, raw_response: dict) -> list[dict]:
        return [
            {
                "id": str(point.get("id")) if point.get("id") is not None else None,
                "score": point.get("score", 0.0),
                "metadata": point.get("payload") or {},
            }
            for point in raw_response.get("result") or []
        ]

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_ensure_index(self, vector_size: int, distance: str = "Cosine") -> None:
        resp = await self.do_request(method="GET", endpoint=f"{self._get_endpoint_collection()}/exists", raise_on_error=True)
        if resp.json().get("result", {}).get("exists"):
            self.logging.info("Qdrant collection %r already exists.", self._collection_name)
            return
        await self.do_request(
            method="PUT",
            json={"vectors": {"size": vector_size, "distance": distance}},
            endpoint=self._get_endpoint_collection(),
            raise_on_error=True,
        )
        self.logging.info("Created Qdrant collection %r (size=%d, distance=%s).", self._collection_name, vector_size, distance)

    async def describe(self) -> dict:
        """Return the collection info (capability of the global index shape)."""
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_collection(), raise_on_error=True)
        return resp.json().get("result", {})

    async def upsert(self, vectors: list[dict]) -> None:
        """Insert or replace points by id."""
        points = [
            {"id": vector["id"], "vector": vector["values"], "payload": vector.get("metadata") or {}}
            for vector in vectors
        ]
        await self.do_request(
            method="PUT",
            json={"points": points},
            params={"wait": "true"},
            endpoint=self._get_endpoint_points(),
            raise_on_error=True,
        )

    async def query(self, vector: list[float], top_k: int, filter: dict | None = None) -> list[dict]:
        """Similarity search over the whole collection, optionally narrowed by a payload filter."""
        body: dict = {"vector": vector, "limit": top_k, "with_payload": True, "with_vector": False}
        qdrant_filter = self.get_filter_payload(filter)
        if qdrant_filter:
            body["filter"] = qdrant_filter
        resp = await self.do_request(
            method="POST",
            json=body,
            endpoint=self._get_endpoint_search(),
            raise_on_error=True,
        )
        return self.extract_matches(resp.json())

    async def remove(self, ids: list[str]) -> None:
        """Delete points by id."""
        if not ids:
            return
        await self.do_request(
            method="POST",
            json={"points": ids},
            params={"wait": "true"},
            endpoint=self._get_endpoint_delete_points(),
            raise_on_error=True,
        )
