"""opencoder-server: Headless FastAPI server for tool-using LLM conversations.

This package aggregates capabilities from independent tool providers, streams
model completions via Ollama and runs the tool calls the model requests until
it produces a final answer.
"""

from opencoder_server.app import create_app

__version__ = "0.1.0"

__all__ = ["create_app", "__version__"]
