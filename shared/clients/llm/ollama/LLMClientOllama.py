"""Ollama engine for embeddings and chat completions.

``LLM_OLLAMA_KEEP_ALIVE`` (e.g. ``10m``) is forwarded to both endpoints when
set, so that ingest bursts do not reload the model between batches.
"""

from typing import Tuple

import httpx

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._keep_alive = self.get_config_val("KEEP_ALIVE", default="", val_type="string")

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="KEEP_ALIVE", val_type="string", default=""),
        ]

    def _get_auth_header(self) -> dict:
        # only reverse proxies in front of ollama check this
        return {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def _get_endpoint_model_details(self) -> str:
        return "/api/show"

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    ################ PAYLOADS ##################
    def _with_keep_alive(self, payload: dict) -> dict:
        if self._keep_alive:
            payload["keep_alive"] = self._keep_alive
        return payload

    def get_embed_payload(self, texts: list[str]) -> dict:
        return self._with_keep_alive({"model": self.embed_model, "input": texts})

    def get_chat_payload(self, messages: list[dict], json_mode: bool = False) -> dict:
        """Non-streaming /api/chat body. ``json_mode`` sets ``format: json``,
        which makes ollama constrain decoding to a JSON object."""
        payload = {
            "model": self.chat_model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": self.chat_temperature},
        }
        if json_mode:
            payload["format"] = "json"
        return self._with_keep_alive(payload)

    def extract_chat_response(self, response_data: dict) -> str:
        content = (response_data.get("message") or {}).get("content")
        if content is None:
            raise ValueError("Ollama chat response has no message content. Response keys: %s" % list(response_data.keys()))
        return content

    ################ MODEL INFO ##################
    def extract_embedding_length(self, model_details: dict) -> int | None:
        """Read ``<family>.embedding_length`` from an /api/show response."""
        for key, value in (model_details.get("model_info") or {}).items():
            if key.endswith(".embedding_length"):
                return int(value)
        return None

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        """Ask ollama for the model's embedding length, embedding a sample text
        when the model details do not carry one."""
        try:
            response = await self.do_request(
                method="POST",
                endpoint=self._get_endpoint_model_details(),
                json={"model": self.embed_model},
                raise_on_error=True,
            )
            size = self.extract_embedding_length(response.json())
        except (httpx.HTTPError, ValueError) as e:
            self.logging.debug("Model details for '%s' unavailable (%s), probing instead", self.embed_model, e)
            size = None
        if size:
            return size, self.embed_distance
        return await super().do_fetch_embedding_vector_size()
