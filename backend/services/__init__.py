"""
RAPTOR Services - Shared infrastructure services.

- llm_client: OpenAI-compatible chat + embeddings client with health check
"""

from .llm_client import LLMClient, get_llm_client

__all__ = ["LLMClient", "get_llm_client"]
