"""Types shared by the orchestration loop and its collaborators.

This module defines the completion stream fragments, the rendering events a
turn produces, the turn states, and the protocol of the streaming completion
client.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Protocol, Sequence

from opencoder_server.conversation.types import AssistantMessage, Message


class TurnState(str, Enum):
    """States of the orchestration loop for one turn."""

    IDLE = "idle"
    AWAITING_COMPLETION = "awaiting_completion"
    EXECUTING_CAPABILITIES = "executing_capabilities"
    DONE = "done"
    FAILED = "failed"


# --- Completion stream fragments ---


@dataclass
class TextFragment:
    """An incremental piece of assistant text."""

    content: str


@dataclass
class CallFragment:
    """A partial capability call, merged with other fragments by index.

    Attributes:
        index: Position of the call within the response
        id: Call id, usually only present on the first fragment
        name: Capability name, usually only present on the first fragment
        arguments_delta: Next piece of the argument JSON text
    """

    index: int
    id: str | None = None
    name: str | None = None
    arguments_delta: str = ""


Fragment = TextFragment | CallFragment


class CompletionClient(Protocol):
    """Streaming completion channel to the model.

    ``stream`` yields fragments lazily. Raising from the iterator ends the
    sequence with a transport error.
    """

    def stream(
        self,
        messages: Sequence[Message],
        tools: list[dict[str, Any]],
    ) -> AsyncIterator[Fragment]: ...


# --- Rendering events ---


@dataclass
class AssistantTextDelta:
    content: str
    event: str = "assistant_text_delta"


@dataclass
class CapabilityCallStarted:
    call_id: str
    name: str
    arguments: dict[str, Any] | None = None
    event: str = "capability_call_started"


@dataclass
class CapabilityCallFinished:
    """Outcome of one capability call. Exactly one of result/error is set."""

    call_id: str
    name: str
    result: str | None = None
    error: str | None = None
    event: str = "capability_call_finished"


@dataclass
class TurnComplete:
    message: AssistantMessage | None = None
    rounds: int = 0
    event: str = "turn_complete"


@dataclass
class TurnFailed:
    reason: str
    error_type: str = ""
    event: str = "turn_failed"


TurnEvent = (
    AssistantTextDelta
    | CapabilityCallStarted
    | CapabilityCallFinished
    | TurnComplete
    | TurnFailed
)


@dataclass
class TurnResult:
    """Everything a collected turn produced."""

    state: TurnState
    message: AssistantMessage | None = None
    calls: list[CapabilityCallFinished] = field(default_factory=list)
    error: str | None = None
    error_type: str | None = None
