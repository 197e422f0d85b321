"""Tests for the LLM clients against a mocked HTTP transport."""

import json

import httpx
import pytest

from shared.clients.llm.ollama.LLMClientOllama import LLMClientOllama
from shared.clients.llm.openai.LLMClientOpenai import LLMClientOpenai
from shared.helper.HelperConfig import HelperConfig
from tests.harness.fakes import mock_client


@pytest.fixture
def llm_env(helper_config: HelperConfig, monkeypatch: pytest.MonkeyPatch) -> HelperConfig:
    monkeypatch.setenv("LLM_MODEL", "embed-model")
    monkeypatch.setenv("LLM_CHAT_MODEL", "chat-model")
    monkeypatch.setenv("LLM_OLLAMA_BASE_URL", "http://ollama.local:11434")
    monkeypatch.setenv("LLM_OPENAI_API_KEY", "sk-test")
    return helper_config


class TestEmbeddingParser:
    """Tests for extract_embeddings_from_response."""

    @pytest.mark.parametrize(
        "payload",
        [
            {"data": [{"embedding": [0.3, 0.4], "index": 1}, {"embedding": [0.1, 0.2], "index": 0}]},
            {"embeddings": [[0.1, 0.2], [0.3, 0.4]]},
            {"vectors": [[0.1, 0.2], [0.3, 0.4]]},
            [[0.1, 0.2], [0.3, 0.4]],
        ],
    )
    def test_known_shapes(self, llm_env: HelperConfig, payload) -> None:
        client = LLMClientOllama(helper_config=llm_env)

        assert client.extract_embeddings_from_response(payload) == [[0.1, 0.2], [0.3, 0.4]]

    def test_single_vector(self, llm_env: HelperConfig) -> None:
        client = LLMClientOllama(helper_config=llm_env)

        assert client.extract_embeddings_from_response({"embedding": [1, 2, 3]}) == [[1.0, 2.0, 3.0]]

    @pytest.mark.parametrize("payload", [{}, {"embeddings": []}, {"embeddings": [[0.1], []]}, {"foo": "bar"}])
    def test_malformed_responses_raise(self, llm_env: HelperConfig, payload) -> None:
        client = LLMClientOllama(helper_config=llm_env)

        with pytest.raises(ValueError):
            client.extract_embeddings_from_response(payload)


class TestOllama:
    """Tests for LLMClientOllama."""

    @pytest.mark.asyncio
    async def test_embed_and_chat(self, llm_env: HelperConfig) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/embed":
                return httpx.Response(200, json={"embeddings": [[0.5, 0.5, 0.0]]})
            return httpx.Response(200, json={"message": {"role": "assistant", "content": '{"answer": "ok"}'}})

        client = LLMClientOllama(helper_config=llm_env)
        mock_client(client, handler, requests)

        assert await client.do_embed("hello") == [[0.5, 0.5, 0.0]]
        assert await client.do_chat([{"role": "user", "content": "hi"}], json_mode=True) == '{"answer": "ok"}'
        assert await client.do_fetch_embedding_vector_size() == (3, "Cosine")

        embed_body = json.loads(requests[0].content)
        chat_body = json.loads(requests[1].content)
        assert embed_body == {"model": "embed-model", "input": ["hello"]}
        assert chat_body["model"] == "chat-model"
        assert chat_body["format"] == "json"
        assert chat_body["stream"] is False
        await client.close()

    @pytest.mark.asyncio
    async def test_vector_size_comes_from_model_details(self, llm_env: HelperConfig, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LLM_OLLAMA_KEEP_ALIVE", "10m")
        requests: list[httpx.Request] = []
        details = {"model_info": {"general.architecture": "nomic-bert", "nomic-bert.embedding_length": 768}}
        client = LLMClientOllama(helper_config=llm_env)
        mock_client(client, lambda request: httpx.Response(200, json=details), requests)

        assert await client.do_fetch_embedding_vector_size() == (768, "Cosine")
        assert requests[0].url.path == "/api/show"
        assert len(requests) == 1
        assert client.get_embed_payload(["x"])["keep_alive"] == "10m"
        await client.close()

    @pytest.mark.asyncio
    async def test_http_errors_surface(self, llm_env: HelperConfig) -> None:
        client = LLMClientOllama(helper_config=llm_env)
        mock_client(client, lambda request: httpx.Response(500, text="model not loaded"), [])

        with pytest.raises(httpx.HTTPStatusError):
            await client.do_embed(["hello"])
        await client.close()

    @pytest.mark.asyncio
    async def test_unreachable_backend_is_unhealthy(self, llm_env: HelperConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = LLMClientOllama(helper_config=llm_env)
        mock_client(client, handler, [])

        assert await client.is_healthy() is False
        await client.close()

    def test_missing_model_is_a_config_error(self, helper_config: HelperConfig, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LLM_OLLAMA_BASE_URL", "http://ollama.local:11434")
        monkeypatch.delenv("LLM_MODEL", raising=False)

        with pytest.raises(ValueError, match="LLM_MODEL"):
            LLMClientOllama(helper_config=helper_config)


class TestOpenai:
    """Tests for LLMClientOpenai."""

    @pytest.mark.asyncio
    async def test_requests_carry_bearer_token_and_json_format(self, llm_env: HelperConfig) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/embeddings"):
                return httpx.Response(200, json={"data": [{"embedding": [0.1, 0.2], "index": 0}]})
            return httpx.Response(200, json={"choices": [{"message": {"content": "Hi there"}}]})

        client = LLMClientOpenai(helper_config=llm_env)
        mock_client(client, handler, requests)

        assert await client.do_embed(["hello"]) == [[0.1, 0.2]]
        assert await client.do_chat([{"role": "user", "content": "hi"}], json_mode=True) == "Hi there"

        assert str(requests[0].url) == "https://api.openai.com/v1/embeddings"
        assert requests[0].headers["Authorization"] == "Bearer sk-test"
        assert json.loads(requests[1].content)["response_format"] == {"type": "json_object"}
        await client.close()

    def test_empty_choices_raise(self, llm_env: HelperConfig) -> None:
        client = LLMClientOpenai(helper_config=llm_env)

        with pytest.raises(ValueError):
            client.extract_chat_response({"choices": []})
