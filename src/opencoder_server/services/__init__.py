"""Business logic services for opencoder-server.

This package contains service classes that sit between the API routers and
the orchestration core.
"""

from opencoder_server.services.conversations import Conversation, ConversationManager

__all__ = [
    "Conversation",
    "ConversationManager",
]
