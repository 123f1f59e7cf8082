"""
LLM Client: OpenAI SDK pointed at an OpenAI-compatible server
(llama-server, vLLM, Ollama's /v1 API, ...).

Response format:
    {"message": {"content": "...", "thinking": "..."}}

Key translations:
- Thinking: <think>...</think> inline tags → separate "thinking" field
- Options: num_predict→max_tokens, num_ctx→ignored (set at server startup)
- Failures: SDK exceptions → LLMError / ExternalServiceError
"""

import logging
import re
import time
from typing import Any, Dict, List, Optional

import httpx
import openai
from openai import OpenAI

from errors import ExternalServiceError, LLMError
from logging_config import log_llm

logger = logging.getLogger(__name__)

_THINK_PATTERN = re.compile(r"<think>(.*?)</think>", re.DOTALL)

# Generation option -> chat.completions parameter, first match wins
_OPTION_PARAMS = (
    ("temperature", "temperature"),
    ("top_p", "top_p"),
    ("num_predict", "max_tokens"),
    ("max_tokens", "max_tokens"),
)


def _extract_thinking(content: str) -> tuple:
    """Extract <think>...</think> tags from content.

    Reasoning models return thinking inline in content as <think> tags.

    Returns:
        (clean_content, thinking_text)
    """
    if not content:
        return "", ""

    thinking = "\n".join(_THINK_PATTERN.findall(content)).strip()
    clean = _THINK_PATTERN.sub("", content).strip()
    return clean, thinking


class LLMClient:
    """Wraps OpenAI SDK pointing at an OpenAI-compatible server."""

    def __init__(self, base_url: str, timeout: float = 180.0, api_key: str = "not-needed"):
        """
        Args:
            base_url: Server URL (e.g., "http://localhost:8081")
            timeout: Request timeout in seconds
            api_key: Bearer token, local servers usually ignore it
        """
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._openai = OpenAI(
            base_url=f"{self.base_url}/v1",
            api_key=api_key,
            timeout=timeout,
        )

    def is_healthy(self, timeout: float = 3.0) -> bool:
        """Sync health check against the server's /health endpoint."""
        try:
            resp = httpx.get(f"{self.base_url}/health", timeout=timeout)
            return resp.status_code == 200
        except httpx.HTTPError:
            return False

    def chat(
        self,
        model: str = "",
        messages: List[Dict] = None,
        options: Optional[Dict] = None,
    ) -> Dict[str, Any]:
        """Call the chat completions endpoint.

        Args:
            model: Model name ("default" lets the server pick)
            messages: List of {"role", "content"} dicts
            options: Generation options (num_predict, temperature, top_p)

        Returns:
            dict with "message" key

        Raises:
            LLMError: On timeout or an empty/invalid response
            ExternalServiceError: If the server is unreachable or returns an error
        """
        options = options or {}
        model = model or "default"

        kwargs = {"model": model, "messages": messages or []}
        for option, param in _OPTION_PARAMS:
            if option in options and param not in kwargs:
                kwargs[param] = options[option]

        log_llm(logger, "start", model)
        start = time.time()
        response = self._call(self._openai.chat.completions.create, "llm", stream=False, **kwargs)
        log_llm(logger, "end", model, time.time() - start)

        if not response.choices:
            raise LLMError("LLM returned no choices", model=model, error_type="invalid")

        content, thinking = _extract_thinking(response.choices[0].message.content or "")
        message = {"role": "assistant", "content": content}
        if thinking:
            message["thinking"] = thinking
        return {"message": message}

    def embed(self, texts: List[str], model: str = "") -> List[List[float]]:
        """Embed texts via /v1/embeddings, preserving input order.

        Raises:
            LLMError: If the response does not carry one vector per input
            ExternalServiceError: If the server is unreachable or returns an error
        """
        if not texts:
            return []
        model = model or "default"

        response = self._call(self._openai.embeddings.create, "embedding", model=model, input=texts)

        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(texts):
            raise LLMError(
                "Embedding count mismatch",
                details=f"sent {len(texts)} texts, got {len(data)} vectors",
                model=model,
                error_type="invalid",
            )
        return [list(item.embedding) for item in data]

    def _call(self, fn, service: str, **kwargs):
        try:
            return fn(**kwargs)
        except openai.APITimeoutError as e:
            raise LLMError(f"{service} request timed out", details=str(e), model=kwargs.get("model"), error_type="timeout") from e
        except openai.APIStatusError as e:
            raise ExternalServiceError(
                f"{service} server returned an error",
                details=str(e),
                service=service,
                status_code=e.status_code,
            ) from e
        except openai.APIConnectionError as e:
            raise ExternalServiceError(
                f"{service} server unreachable at {self.base_url}",
                details=str(e),
                service=service,
            ) from e


_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get the shared client, built from the runtime config on first use."""
    global _client
    if _client is None:
        from config import get_config

        config = get_config()
        _client = LLMClient(config.llm_base_url, timeout=config.llm_timeout)
    return _client
