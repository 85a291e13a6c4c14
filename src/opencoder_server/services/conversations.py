"""ConversationManager service for the conversations held by the server.

This module provides the ConversationManager class which handles:
- Creating conversations, each with its own orchestrator and transcript
- Listing and retrieving conversations
- Resetting a conversation back to its system prompt
- Deleting conversations

Conversations live in memory until they are deleted or the process ends.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable

from opencoder_server.capabilities.catalog import CapabilityCatalog
from opencoder_server.capabilities.dispatcher import CapabilityDispatcher
from opencoder_server.conversation.state import ConversationState
from opencoder_server.conversation.types import utc_timestamp
from opencoder_server.errors import TurnInProgress
from opencoder_server.orchestration.loop import Orchestrator
from opencoder_server.orchestration.types import CompletionClient, TurnState

logger = logging.getLogger(__name__)


@dataclass
class Conversation:
    """A conversation and the orchestrator that owns its transcript."""

    conversation_id: str
    model: str
    orchestrator: Orchestrator
    created_at: str = field(default_factory=utc_timestamp)

    @property
    def state(self) -> ConversationState:
        return self.orchestrator.conversation


class ConversationManager:
    """Creates and tracks conversations.

    Every conversation gets its own Orchestrator and ConversationState. The
    capability catalog and dispatcher are shared and read-only during turns.
    """

    def __init__(
        self,
        client_factory: Callable[[str], CompletionClient],
        catalog: CapabilityCatalog,
        dispatcher: CapabilityDispatcher,
        default_model: str,
        default_system_prompt: str,
        capability_timeout: float | None = None,
        max_rounds: int | None = None,
    ):
        """Initialize the ConversationManager.

        Args:
            client_factory: Builds a completion client for a model name
            catalog: Shared capability catalog
            dispatcher: Shared capability dispatcher
            default_model: Model used when a conversation does not name one
            default_system_prompt: Prompt used when a conversation does not set one
            capability_timeout: Deadline for each capability dispatch
            max_rounds: Maximum completion rounds per turn
        """
        self.client_factory = client_factory
        self.catalog = catalog
        self.dispatcher = dispatcher
        self.default_model = default_model
        self.default_system_prompt = default_system_prompt
        self.capability_timeout = capability_timeout
        self.max_rounds = max_rounds
        self._conversations: dict[str, Conversation] = {}

    def create(
        self, system_prompt: str | None = None, model: str | None = None
    ) -> Conversation:
        """Create a new conversation.

        Args:
            system_prompt: Optional system prompt, fixed for the conversation's lifetime
            model: Optional model name

        Returns:
            The newly created Conversation
        """
        conversation_id = uuid.uuid4().hex[:10]
        model = model or self.default_model

        orchestrator = Orchestrator(
            conversation=ConversationState(system_prompt or self.default_system_prompt),
            client=self.client_factory(model),
            catalog=self.catalog,
            dispatcher=self.dispatcher,
            model=model,
            capability_timeout=self.capability_timeout,
            max_rounds=self.max_rounds,
        )
        conversation = Conversation(
            conversation_id=conversation_id, model=model, orchestrator=orchestrator
        )
        self._conversations[conversation_id] = conversation

        logger.info(f"Created conversation {conversation_id} with model {model}")
        return conversation

    def list(self) -> list[Conversation]:
        """List all conversations, newest first."""
        return sorted(
            self._conversations.values(), key=lambda c: c.created_at, reverse=True
        )

    def get(self, conversation_id: str) -> Conversation:
        """Get a conversation by ID.

        Raises:
            KeyError: If the conversation doesn't exist
        """
        try:
            return self._conversations[conversation_id]
        except KeyError:
            raise KeyError(f"Conversation {conversation_id} not found") from None

    def reset(self, conversation_id: str) -> Conversation:
        """Reset a conversation to its system prompt.

        Raises:
            KeyError: If the conversation doesn't exist
            TurnInProgress: If a turn is running
        """
        conversation = self.get(conversation_id)
        if conversation.orchestrator.busy:
            raise TurnInProgress(f"Conversation {conversation_id} has a turn in progress")

        conversation.state.reset()
        conversation.orchestrator.state = TurnState.IDLE
        logger.info(f"Reset conversation {conversation_id}")
        return conversation

    def delete(self, conversation_id: str) -> None:
        """Delete a conversation.

        Raises:
            KeyError: If the conversation doesn't exist
        """
        self.get(conversation_id)
        del self._conversations[conversation_id]
        logger.info(f"Deleted conversation {conversation_id}")

    def __len__(self) -> int:
        return len(self._conversations)
