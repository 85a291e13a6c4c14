"""Pydantic models for chat API requests, responses and SSE events.

The streaming endpoint emits one SSE event per turn event:
assistant_text_delta, capability_call_started, capability_call_finished,
turn_complete and turn_failed.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from opencoder_server.models.conversations import MessageResponse


class ChatRequest(BaseModel):
    """Request body for chat endpoints.

    Used by both POST /api/v1/chat/{conversation_id} (non-streaming)
    and POST /api/v1/chat/{conversation_id}/stream (streaming).
    """

    message: str = Field(description="The user utterance to send")

    model_config = ConfigDict(
        json_schema_extra={"examples": [{"message": "Read x.txt and summarize it"}]}
    )


class CapabilityCallResponse(BaseModel):
    """Outcome of one capability call executed during a turn."""

    call_id: str = Field(description="Call identifier")
    name: str = Field(description="Capability name")
    result: str | None = Field(default=None, description="Result text on success")
    error: str | None = Field(default=None, description="Error text on failure")


class ChatResponse(BaseModel):
    """Response body for the non-streaming chat endpoint."""

    conversation_id: str = Field(description="Conversation identifier")
    message: MessageResponse | None = Field(
        default=None, description="The final assistant message, if any"
    )
    capability_calls: list[CapabilityCallResponse] = Field(
        default_factory=list,
        description="Capability calls executed during the turn, in order",
    )


# --- SSE events ---


class AssistantTextDeltaEvent(BaseModel):
    """SSE event: a piece of assistant text."""

    content: str


class CapabilityCallStartedEvent(BaseModel):
    """SSE event: a capability call is about to run."""

    call_id: str
    name: str
    arguments: dict[str, Any] | None = None


class CapabilityCallFinishedEvent(BaseModel):
    """SSE event: a capability call finished."""

    call_id: str
    name: str
    result: str | None = None
    error: str | None = None


class TurnCompleteEvent(BaseModel):
    """SSE event: the turn finished with a final answer."""

    conversation_id: str
    message: MessageResponse | None = None
    rounds: int = 0


class TurnFailedEvent(BaseModel):
    """SSE event: the turn failed."""

    conversation_id: str
    reason: str
    error_type: str = ""
