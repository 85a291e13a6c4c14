"""Conversation transcripts.

This package provides the message types and the append-only conversation
state sent to the model.
"""

from opencoder_server.conversation.state import ConversationState
from opencoder_server.conversation.types import (
    AssistantMessage,
    Message,
    SystemMessage,
    ToolMessage,
    UserMessage,
)

__all__ = [
    "ConversationState",
    # Message types
    "Message",
    "UserMessage",
    "SystemMessage",
    "AssistantMessage",
    "ToolMessage",
]
