"""LLM client."""

from .client import VertexRestClient, LLMError

__all__ = ["VertexRestClient", "LLMError"]
