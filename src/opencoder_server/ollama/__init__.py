"""Ollama client wrapper and integration layer.

This package provides the async client for the Ollama API and the streaming
completion client the orchestration loop talks to.
"""

from opencoder_server.ollama.client import OllamaClient
from opencoder_server.ollama.completion import OllamaCompletionClient, to_ollama_messages

__all__ = ["OllamaClient", "OllamaCompletionClient", "to_ollama_messages"]
