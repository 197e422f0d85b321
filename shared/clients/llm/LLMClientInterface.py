from abc import abstractmethod

import httpx
from typing import Tuple
from shared.clients.HttpClientInterface import HttpClientInterface
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(HttpClientInterface):
    """Embedding and completion model client.

    One engine serves both concerns: chunk/question embeddings and the chat
    completion that writes grounded answers.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # embedding config
        self.embed_distance = helper_config.get_string_val(f"{self.get_client_type().upper()}_DISTANCE", default="Cosine")
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=None)

        # chat / completion config
        self.chat_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_CHAT_MODEL", default="") or self.embed_model
        self.chat_temperature = helper_config.get_number_val(f"{self.get_client_type().upper()}_CHAT_TEMPERATURE", default=0.2)

    def _get_client_type(self) -> str:
        return "llm"

    ################ ENGINE HOOKS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        pass

    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        pass

    @abstractmethod
    def get_chat_payload(self, messages: list[dict], json_mode: bool = False) -> dict:
        """Request body for one non-streaming completion. With ``json_mode`` the
        engine must ask the backend for a single JSON object as reply."""
        pass

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str:
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict | list) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Providers wrap their vectors differently, all of these are accepted:
        - OpenAI-compatible: {"data": [{"embedding": [...], "index": 0}]} (sorted by index)
        - Ollama /api/embed: {"embeddings": [[...], [...]]}
        - {"vectors": [[...], [...]]}
        - a bare list of vectors, or one bare vector

        Args:
            response_data (dict | list): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ValueError: If no vectors can be found in the response.
        """
        if isinstance(response_data, dict):
            if isinstance(response_data.get("data"), list):
                items = sorted(response_data["data"], key=lambda item: item.get("index", 0))
                vectors = [item.get("embedding") for item in items]
            elif "embeddings" in response_data:
                vectors = response_data.get("embeddings")
            elif "vectors" in response_data:
                vectors = response_data.get("vectors")
            elif "embedding" in response_data:
                vectors = [response_data.get("embedding")]
            else:
                vectors = None
        else:
            vectors = response_data

        if not isinstance(vectors, list) or not vectors:
            raise ValueError("Embedding response does not contain any vectors.")
        # single bare vector
        if all(isinstance(value, (int, float)) for value in vectors):
            return [[float(value) for value in vectors]]
        if any(not isinstance(vector, list) or not vector for vector in vectors):
            raise ValueError("Embedding response contains an empty or malformed vector.")
        return [[float(value) for value in vector] for vector in vectors]

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        """Determine the output dimension of the embedding model by embedding a sample text.

        Returns:
            Tuple[int, str]: (vector_dimension, distance_metric)
        """
        vectors = await self.do_embed("dimension check")
        return len(vectors[0]), self.embed_distance

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Embed one or more texts in a single request, preserving input order.

        Raises:
            httpx.HTTPError: If the request fails.
            ValueError: If the response does not contain usable vectors.
        """
        texts = [texts] if isinstance(texts, str) else texts
        body = self.get_embed_payload(texts)
        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_embedding(),
            json=body,
            raise_on_error=True,
        )
        return self.extract_embeddings_from_response(response.json())

    async def do_chat(self, messages: list[dict], json_mode: bool = False) -> str:
        """Run one completion over OpenAI-format ``messages`` and return the reply text."""
        body = self.get_chat_payload(messages, json_mode=json_mode)
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_chat(),
            json=body,
            raise_on_error=True,
        )
        return self.extract_chat_response(response.json())
