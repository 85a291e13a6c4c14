"""ConversationState: the append-only transcript sent to the model.

This module provides the ConversationState class which handles:
- Creating a transcript with a fixed system prompt
- Appending messages while enforcing the transcript invariants
- Tracking which capability calls still wait for a tool message
- Resetting the transcript back to the system prompt
"""

import logging
from typing import Iterator

from opencoder_server.conversation.types import (
    AssistantMessage,
    Message,
    SystemMessage,
    ToolMessage,
    UserMessage,
)
from opencoder_server.errors import InvalidMessageError

logger = logging.getLogger(__name__)


class ConversationState:
    """Ordered transcript of one conversation.

    Invariants:
    - exactly one system message, always first
    - every tool message answers an earlier, still unresolved call id
    - assistant messages are never empty

    Messages are only ever appended. ``reset`` is the one explicit way to
    start over and keeps the original system prompt.
    """

    def __init__(self, system_prompt: str):
        self.system_prompt = system_prompt
        self._messages: list[Message] = [SystemMessage(content=system_prompt)]
        self._pending_calls: dict[str, str] = {}

    @property
    def messages(self) -> tuple[Message, ...]:
        """Read-only view of the transcript."""
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    @property
    def last(self) -> Message:
        return self._messages[-1]

    def unresolved_call_ids(self) -> list[str]:
        """Ids of requested calls that have no tool message yet."""
        return list(self._pending_calls)

    def append(self, message: Message) -> None:
        """Append a message to the transcript.

        Args:
            message: The message to append

        Raises:
            InvalidMessageError: If the message breaks a transcript invariant
        """
        if isinstance(message, SystemMessage):
            raise InvalidMessageError("The system message can only be set at creation")

        if isinstance(message, AssistantMessage):
            if message.is_empty:
                raise InvalidMessageError("Assistant message has no content and no calls")
            ids = [call.id for call in message.tool_calls]
            if len(set(ids)) != len(ids):
                raise InvalidMessageError("Duplicate call ids in assistant message")
            # Calls left unanswered by a previous round can never be answered now
            self._pending_calls = {call.id: call.name for call in message.tool_calls}

        elif isinstance(message, ToolMessage):
            if message.tool_call_id not in self._pending_calls:
                raise InvalidMessageError(
                    f"Tool message for unknown or resolved call {message.tool_call_id}"
                )
            del self._pending_calls[message.tool_call_id]

        elif isinstance(message, UserMessage):
            self._pending_calls = {}

        else:
            raise InvalidMessageError(f"Unknown message type: {type(message).__name__}")

        self._messages.append(message)

    def reset(self) -> None:
        """Start over with only the original system prompt."""
        self._messages = [SystemMessage(content=self.system_prompt)]
        self._pending_calls = {}
        logger.debug("Conversation state reset")
