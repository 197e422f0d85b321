"""Tests for the raw vector index clients against a mocked HTTP transport."""

import json

import httpx
import pytest

from shared.clients.vector.partition.FilteredPartitionAdapter import FilteredPartitionAdapter
from shared.clients.vector.partition.NamespacedPartitionAdapter import NamespacedPartitionAdapter
from shared.clients.vector.partition.PartitionAdapterFactory import create_partition_adapter
from shared.clients.vector.pinecone.VectorClientPinecone import VectorClientPinecone
from shared.clients.vector.qdrant.VectorClientQdrant import VectorClientQdrant
from shared.helper.HelperConfig import HelperConfig
from tests.harness.fakes import mock_client


@pytest.fixture
def vector_env(helper_config: HelperConfig, monkeypatch: pytest.MonkeyPatch) -> HelperConfig:
    monkeypatch.setenv("VECTOR_QDRANT_BASE_URL", "http://qdrant.local:6333")
    monkeypatch.setenv("VECTOR_QDRANT_COLLECTION", "chunks")
    monkeypatch.setenv("VECTOR_PINECONE_BASE_URL", "https://index-abc.svc.pinecone.io")
    monkeypatch.setenv("VECTOR_PINECONE_API_KEY", "pc-key")
    return helper_config


class TestQdrant:
    """Tests for VectorClientQdrant."""

    def test_is_wrapped_by_filtered_adapter(self, vector_env: HelperConfig) -> None:
        adapter = create_partition_adapter(vector_env, VectorClientQdrant(helper_config=vector_env))

        assert isinstance(adapter, FilteredPartitionAdapter)

    @pytest.mark.asyncio
    async def test_query_translates_filter(self, vector_env: HelperConfig) -> None:
        requests: list[httpx.Request] = []
        hits = {"result": [{"id": "c1", "score": 0.8, "payload": {"chunk_id": "c1", "visibility": "personal"}}]}
        client = VectorClientQdrant(helper_config=vector_env)
        mock_client(client, lambda request: httpx.Response(200, json=hits), requests)

        matches = await client.query([0.1, 0.2], 3, filter={"visibility": "personal", "owner_id": "alice"})

        body = json.loads(requests[0].content)
        assert requests[0].url.path == "/collections/chunks/points/search"
        assert body["limit"] == 3
        assert body["filter"] == {
            "must": [
                {"key": "visibility", "match": {"value": "personal"}},
                {"key": "owner_id", "match": {"value": "alice"}},
            ]
        }
        assert matches == [{"id": "c1", "score": 0.8, "metadata": {"chunk_id": "c1", "visibility": "personal"}}]
        await client.close()

    def test_list_values_become_match_any(self, vector_env: HelperConfig) -> None:
        client = VectorClientQdrant(helper_config=vector_env)

        payload = client.get_filter_payload({"owner_id": "alice", "file_id": ["f1", "f2"]})

        assert payload == {
            "must": [
                {"key": "owner_id", "match": {"value": "alice"}},
                {"key": "file_id", "match": {"any": ["f1", "f2"]}},
            ]
        }

    @pytest.mark.asyncio
    async def test_unfiltered_query_has_no_filter(self, vector_env: HelperConfig) -> None:
        requests: list[httpx.Request] = []
        client = VectorClientQdrant(helper_config=vector_env)
        mock_client(client, lambda request: httpx.Response(200, json={"result": []}), requests)

        assert await client.query([0.1], 5) == []
        assert "filter" not in json.loads(requests[0].content)
        await client.close()

    @pytest.mark.asyncio
    async def test_ensure_index_creates_missing_collection(self, vector_env: HelperConfig) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/exists"):
                return httpx.Response(200, json={"result": {"exists": False}})
            return httpx.Response(200, json={"result": True})

        client = VectorClientQdrant(helper_config=vector_env)
        mock_client(client, handler, requests)

        await client.do_ensure_index(768, "Cosine")

        assert requests[1].method == "PUT"
        assert json.loads(requests[1].content) == {"vectors": {"size": 768, "distance": "Cosine"}}
        await client.close()


class TestPinecone:
    """Tests for VectorClientPinecone."""

    def test_is_wrapped_by_namespaced_adapter(self, vector_env: HelperConfig) -> None:
        adapter = create_partition_adapter(vector_env, VectorClientPinecone(helper_config=vector_env))

        assert isinstance(adapter, NamespacedPartitionAdapter)

    @pytest.mark.asyncio
    async def test_calls_carry_namespace(self, vector_env: HelperConfig) -> None:
        requests: list[httpx.Request] = []
        client = VectorClientPinecone(helper_config=vector_env)
        mock_client(client, lambda request: httpx.Response(200, json={"matches": []}), requests)

        await client.upsert("user:YWxpY2U", [{"id": "c1", "values": [0.1], "metadata": {}}])
        await client.query("user:YWxpY2U", [0.1], 4)
        await client.delete("user:YWxpY2U", ["c1"])
        await client.delete("user:YWxpY2U", [])

        assert [request.url.path for request in requests] == ["/vectors/upsert", "/query", "/vectors/delete"]
        assert all(json.loads(request.content)["namespace"] == "user:YWxpY2U" for request in requests)
        assert requests[0].headers["Api-Key"] == "pc-key"
        await client.close()
