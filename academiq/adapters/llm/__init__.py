"""
LLM Adapter - Structured-output model access.

This is the ONLY place that calls the model provider.

Usage:
    from academiq.adapters.llm import OpenAIClient

    client = OpenAIClient()
    response = await client.complete(request)
"""

from .client import OpenAIClient

__all__ = ["OpenAIClient"]
