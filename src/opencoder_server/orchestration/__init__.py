"""Conversation orchestration engine.

This package contains the turn state machine, the completion stream
accumulator and the event types rendered by the API layer.
"""

from opencoder_server.orchestration.accumulator import StreamAccumulator
from opencoder_server.orchestration.loop import Orchestrator, parse_arguments
from opencoder_server.orchestration.types import (
    AssistantTextDelta,
    CallFragment,
    CapabilityCallFinished,
    CapabilityCallStarted,
    CompletionClient,
    Fragment,
    TextFragment,
    TurnComplete,
    TurnEvent,
    TurnFailed,
    TurnResult,
    TurnState,
)

__all__ = [
    "AssistantTextDelta",
    "CallFragment",
    "CapabilityCallFinished",
    "CapabilityCallStarted",
    "CompletionClient",
    "Fragment",
    "Orchestrator",
    "StreamAccumulator",
    "TextFragment",
    "TurnComplete",
    "TurnEvent",
    "TurnFailed",
    "TurnResult",
    "TurnState",
    "parse_arguments",
]
