"""Pydantic models for conversation API requests and responses."""

from pydantic import BaseModel, Field

from opencoder_server.conversation.types import AssistantMessage, Message, ToolMessage


class CreateConversationRequest(BaseModel):
    """Request body for creating a new conversation."""

    system_prompt: str | None = Field(
        None, description="Optional system prompt, fixed for the conversation"
    )
    model: str | None = Field(None, description="Optional model name")


class ToolCallResponse(BaseModel):
    """A capability call requested by the assistant."""

    id: str = Field(description="Call identifier")
    name: str = Field(description="Capability name")
    arguments: str = Field(description="Raw JSON arguments as produced by the model")


class MessageResponse(BaseModel):
    """A single transcript message."""

    role: str = Field(description="Message role (system, user, assistant, tool)")
    content: str = Field(description="Message content")
    message_id: str = Field(description="Unique message identifier")
    timestamp: str = Field(description="ISO 8601 timestamp")
    model: str | None = Field(default=None, description="Model (assistant only)")
    tool_calls: list[ToolCallResponse] | None = Field(
        default=None, description="Capability calls (assistant only)"
    )
    tool_call_id: str | None = Field(
        default=None, description="Answered call id (tool only)"
    )
    tool_name: str | None = Field(default=None, description="Capability name (tool only)")


class ConversationResponse(BaseModel):
    """Summary of a conversation."""

    conversation_id: str = Field(description="Conversation identifier")
    model: str = Field(description="Model used by the conversation")
    created_at: str = Field(description="ISO 8601 creation timestamp")
    message_count: int = Field(description="Number of transcript messages")
    state: str = Field(description="State of the last turn")


class ConversationListResponse(BaseModel):
    """Response for listing conversations."""

    conversations: list[ConversationResponse]


class ConversationDetailResponse(ConversationResponse):
    """A conversation with its full transcript."""

    messages: list[MessageResponse]


def message_to_response(message: Message) -> MessageResponse:
    """Convert a transcript message to its API representation."""
    response = MessageResponse(
        role=message.role,
        content=message.content,
        message_id=message.message_id,
        timestamp=message.timestamp,
    )
    if isinstance(message, AssistantMessage):
        response.model = message.model
        if message.tool_calls:
            response.tool_calls = [
                ToolCallResponse(id=c.id, name=c.name, arguments=c.arguments)
                for c in message.tool_calls
            ]
    elif isinstance(message, ToolMessage):
        response.tool_call_id = message.tool_call_id
        response.tool_name = message.tool_name
    return response
