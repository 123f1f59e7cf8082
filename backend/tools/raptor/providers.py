"""
Collaborator contracts for the tree builder, plus LLM-server adapters.

    EmbeddingProvider.embed(texts) -> vectors   (same length, same order)
    TextGenerator.generate(prompt) -> text
"""

import logging
from typing import List, Optional, Protocol

from config import get_config
from errors import LLMError

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    def embed(self, texts: List[str]) -> List[List[float]]: ...


class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str: ...


class LLMEmbeddingProvider:
    """Embeds through the OpenAI-compatible /v1/embeddings endpoint."""

    def __init__(self, client=None, model: Optional[str] = None, config=None):
        config = config or get_config()
        self.model = model or config.llm_embed_model
        self._client = client

    @property
    def client(self):
        """Lazy-load LLM client."""
        if self._client is None:
            from services.llm_client import get_llm_client

            self._client = get_llm_client()
        return self._client

    def embed(self, texts: List[str]) -> List[List[float]]:
        vectors = self.client.embed(texts, model=self.model)
        logger.debug(f"Embedded {len(texts)} texts with {self.model}")
        return vectors


class LLMTextGenerator:
    """Generates text through the chat completions endpoint."""

    def __init__(
        self,
        client=None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        config=None,
    ):
        config = config or get_config()
        self.model = model or config.llm_chat_model
        self.temperature = config.summary_temperature if temperature is None else temperature
        self.max_tokens = max_tokens or config.summary_max_tokens
        self._client = client

    @property
    def client(self):
        """Lazy-load LLM client."""
        if self._client is None:
            from services.llm_client import get_llm_client

            self._client = get_llm_client()
        return self._client

    def generate(self, prompt: str) -> str:
        response = self.client.chat(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            options={
                "temperature": self.temperature,  # Lower for factual accuracy
                "num_predict": self.max_tokens,
            },
        )
        content = response.get("message", {}).get("content", "")
        if not content.strip():
            raise LLMError("LLM returned empty content", model=self.model, error_type="invalid")
        return content
