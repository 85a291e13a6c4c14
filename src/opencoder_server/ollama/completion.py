"""Streaming completion client backed by Ollama.

Converts the conversation transcript to Ollama's chat format and turns the
streamed chunks into text and capability call fragments. Ollama delivers each
tool call whole, so every call becomes a single fragment.
"""

import json
import logging
from typing import Any, AsyncIterator, Sequence

from opencoder_server.conversation.types import AssistantMessage, Message, ToolMessage
from opencoder_server.ollama.client import OllamaClient
from opencoder_server.orchestration.types import CallFragment, Fragment, TextFragment

logger = logging.getLogger(__name__)


def _arguments_object(raw: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw) if raw.strip() else {}
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def to_ollama_messages(messages: Sequence[Message]) -> list[dict[str, Any]]:
    """Convert transcript messages to Ollama API format.

    Args:
        messages: Transcript messages (system, user, assistant, tool)

    Returns:
        List of message dicts: [{"role": "...", "content": "..."}, ...]
    """
    ollama_messages = []

    for msg in messages:
        ollama_msg: dict[str, Any] = {
            "role": msg.role,
            "content": msg.content,
        }

        if isinstance(msg, AssistantMessage) and msg.tool_calls:
            ollama_msg["tool_calls"] = [
                {
                    "function": {
                        "name": call.name,
                        "arguments": _arguments_object(call.arguments),
                    }
                }
                for call in msg.tool_calls
            ]

        if isinstance(msg, ToolMessage):
            ollama_msg["tool_name"] = msg.tool_name

        ollama_messages.append(ollama_msg)

    return ollama_messages


class OllamaCompletionClient:
    """CompletionClient implementation for one Ollama model."""

    def __init__(
        self,
        client: OllamaClient,
        model: str,
        options: dict[str, Any] | None = None,
    ):
        self.client = client
        self.model = model
        self.options = options

    async def stream(
        self,
        messages: Sequence[Message],
        tools: list[dict[str, Any]],
    ) -> AsyncIterator[Fragment]:
        call_index = 0

        async for chunk in self.client.chat_stream(
            model=self.model,
            messages=to_ollama_messages(messages),
            tools=tools,
            options=self.options,
        ):
            message = chunk.get("message") or {}

            content = message.get("content") or ""
            if content:
                yield TextFragment(content=content)

            for tool_call in message.get("tool_calls") or []:
                function = tool_call.get("function") or {}
                arguments = function.get("arguments")
                if arguments is None:
                    arguments = {}
                if not isinstance(arguments, str):
                    arguments = json.dumps(arguments)

                yield CallFragment(
                    index=call_index,
                    id=tool_call.get("id"),
                    name=function.get("name"),
                    arguments_delta=arguments,
                )
                call_index += 1

            if chunk.get("done"):
                logger.debug(
                    f"Completion done: eval_count={chunk.get('eval_count')}, "
                    f"prompt_eval_count={chunk.get('prompt_eval_count')}"
                )
                break
